from __future__ import annotations
"""Admin navigation declaration and its permission filter.

ADMIN_NAV is immutable; visible_nav() builds a new tree per distinct set of
role grants and never touches the declaration. Items with no permissions are
shown to every signed-in user; otherwise ANY listed permission reveals them.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Tuple

from posauthz.constants.permissions import PermissionCode as P
from posauthz.services.guard import require_codes
from posauthz.services.policy import grant_of, is_allowed_any


@dataclass(frozen=True)
class NavItem:
    title: str
    href: str
    permissions: Tuple[str, ...] = ()

    def to_dict(self):
        return {'title': self.title, 'href': self.href}


@dataclass(frozen=True)
class NavSection:
    label: str
    items: Tuple[NavItem, ...]

    def to_dict(self):
        return {'label': self.label, 'items': [i.to_dict() for i in self.items]}


def item(title: str, href: str, *perms) -> NavItem:
    return NavItem(title, href, require_codes(perms) if perms else ())


ADMIN_NAV: Tuple[NavSection, ...] = (
    NavSection('Dashboard', (
        item('Dashboard', '/admin/dashboard'),
    )),
    NavSection('Sales', (
        item('Sales', '/admin/sales', P.VIEW_SALES),
        item('Returns & Refunds', '/admin/returns', P.PROCESS_RETURNS, P.AUTHORIZE_RETURNS),
        item('Payments & Reconciliation', '/admin/payments', P.ACCEPT_PAYMENTS),
    )),
    NavSection('Inventory', (
        item('Products', '/admin/products', P.VIEW_PRODUCTS),
        item('Categories & Brands', '/admin/categories', P.VIEW_CATEGORIES),
        item('Barcodes & Labels', '/admin/barcodes', P.UPDATE_PRODUCT),
    )),
    NavSection('Stock Management', (
        item('Stock Overview', '/admin/stock', P.VIEW_INVENTORY),
        item('Stock Adjustment', '/admin/stock/adjustment', P.EDIT_INVENTORY),
        item('Stock Transfer', '/admin/stock/transfer', P.INVENTORY_TRANSFER),
        item('Stock Audit', '/admin/stock/audit', P.INVENTORY_AUDIT),
    )),
    NavSection('Repairs & Service', (
        item('Repair Jobs', '/admin/repairs', P.VIEW_REPAIRS, P.VIEW_ASSIGNED_REPAIRS),
        item('Create Repair Job', '/admin/repairs/create-job', P.CREATE_REPAIR_JOB),
        item('Repair History', '/admin/repairs/history', P.VIEW_REPAIRS),
    )),
    NavSection('Pricing & Discounts', (
        item('Bulk Price Updates', '/admin/pricing/bulk', P.UPDATE_PRODUCT),
        item('Discount Rules', '/admin/discounts', P.APPROVE_DISCOUNTS),
    )),
    NavSection('Reports', (
        item('Reports', '/admin/reports', P.VIEW_SALES_REPORT, P.VIEW_ALL_REPORTS),
        item('Financial Reports', '/admin/reports/financial', P.VIEW_FINANCIAL_REPORTS),
        item('My Performance', '/admin/repairs/my-analytics', P.VIEW_OWN_PERFORMANCE),
    )),
    NavSection('Employees', (
        item('Employees', '/admin/employees', P.VIEW_EMPLOYEES),
        item('Attendance & Sessions', '/admin/attendance', P.MANAGE_EMPLOYEES),
        item('Performance', '/admin/performance', P.VIEW_EMPLOYEE_PERFORMANCE),
    )),
    NavSection('Permissions', (
        item('Users', '/admin/permissions/users', P.VIEW_USERS),
        item('Roles', '/admin/permissions/roles', P.VIEW_ROLES, P.MANAGE_ROLES),
        item('Permission Matrix', '/admin/permissions/matrix', P.MANAGE_ROLES),
    )),
    NavSection('Settings', (
        item('Company & Tax', '/admin/settings/company', P.MANAGE_SETTINGS),
        item('Notifications', '/admin/settings/notifications', P.VIEW_SETTINGS),
        item('Hardware & Integrations', '/admin/settings/integrations', P.MANAGE_INTEGRATIONS),
        item('Backup & Restore', '/admin/settings/backup', P.BACKUP_OPERATIONS),
    )),
)


@lru_cache(maxsize=256)
def _filter(grants: Tuple, nav: Tuple[NavSection, ...]) -> Tuple[NavSection, ...]:
    visible = []
    for section in nav:
        items = tuple(i for i in section.items if not i.permissions or is_allowed_any(grants, i.permissions))
        if items:
            visible.append(NavSection(section.label, items))
    return tuple(visible)


def visible_nav(roles: Iterable, nav: Tuple[NavSection, ...] = ADMIN_NAV) -> Tuple[NavSection, ...]:
    """Sections and items the given roles may see. Cached per distinct grant set."""
    key = tuple(sorted({grant_of(r) for r in roles}, key=lambda g: g.to_codes()))
    return _filter(key, nav)


__all__ = ['NavItem', 'NavSection', 'ADMIN_NAV', 'visible_nav']
