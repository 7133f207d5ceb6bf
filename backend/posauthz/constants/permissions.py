"""Central enum-like definitions to avoid typos in permission strings.
Extend cautiously; never rename codes silently. Add new ones and deprecate old via migration if needed.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PermissionCode(str, Enum):
    # Sales operations
    CREATE_SALE = 'CREATE_SALE'
    PROCESS_TRANSACTION = 'PROCESS_TRANSACTION'
    VIEW_SALES = 'VIEW_SALES'
    VOID_SALE = 'VOID_SALE'
    ACCEPT_PAYMENTS = 'ACCEPT_PAYMENTS'
    GENERATE_RECEIPTS = 'GENERATE_RECEIPTS'
    # Discounts
    APPLY_STANDARD_DISCOUNT = 'APPLY_STANDARD_DISCOUNT'
    APPLY_HIGH_VALUE_DISCOUNT = 'APPLY_HIGH_VALUE_DISCOUNT'
    APPROVE_DISCOUNTS = 'APPROVE_DISCOUNTS'
    # Returns & refunds
    AUTHORIZE_RETURNS = 'AUTHORIZE_RETURNS'
    AUTHORIZE_REFUNDS = 'AUTHORIZE_REFUNDS'
    PROCESS_RETURNS = 'PROCESS_RETURNS'
    # Reports
    VIEW_SALES_REPORT = 'VIEW_SALES_REPORT'
    VIEW_PROFIT_REPORT = 'VIEW_PROFIT_REPORT'
    VIEW_FINANCIAL_REPORTS = 'VIEW_FINANCIAL_REPORTS'
    VIEW_ALL_REPORTS = 'VIEW_ALL_REPORTS'
    VIEW_OWN_PERFORMANCE = 'VIEW_OWN_PERFORMANCE'
    VIEW_EMPLOYEE_PERFORMANCE = 'VIEW_EMPLOYEE_PERFORMANCE'
    EXPORT_REPORTS = 'EXPORT_REPORTS'
    # Users
    CREATE_USER = 'CREATE_USER'
    VIEW_USERS = 'VIEW_USERS'
    UPDATE_USER = 'UPDATE_USER'
    DELETE_USER = 'DELETE_USER'
    MANAGE_USERS = 'MANAGE_USERS'
    # Roles
    MANAGE_ROLES = 'MANAGE_ROLES'
    ASSIGN_ROLES = 'ASSIGN_ROLES'
    VIEW_ROLES = 'VIEW_ROLES'
    # Permissions
    MANAGE_PERMISSIONS = 'MANAGE_PERMISSIONS'
    ASSIGN_PERMISSIONS = 'ASSIGN_PERMISSIONS'
    VIEW_PERMISSIONS = 'VIEW_PERMISSIONS'
    # Employees
    VIEW_EMPLOYEES = 'VIEW_EMPLOYEES'
    MANAGE_EMPLOYEES = 'MANAGE_EMPLOYEES'
    # Products & categories
    CREATE_PRODUCT = 'CREATE_PRODUCT'
    VIEW_PRODUCTS = 'VIEW_PRODUCTS'
    UPDATE_PRODUCT = 'UPDATE_PRODUCT'
    DELETE_PRODUCT = 'DELETE_PRODUCT'
    CREATE_CATEGORY = 'CREATE_CATEGORY'
    VIEW_CATEGORIES = 'VIEW_CATEGORIES'
    UPDATE_CATEGORY = 'UPDATE_CATEGORY'
    DELETE_CATEGORY = 'DELETE_CATEGORY'
    # Inventory
    MANAGE_INVENTORY = 'MANAGE_INVENTORY'
    VIEW_INVENTORY = 'VIEW_INVENTORY'
    ADD_INVENTORY = 'ADD_INVENTORY'
    EDIT_INVENTORY = 'EDIT_INVENTORY'
    DELETE_INVENTORY = 'DELETE_INVENTORY'
    INVENTORY_TRANSFER = 'INVENTORY_TRANSFER'
    INVENTORY_AUDIT = 'INVENTORY_AUDIT'
    # Device repairs
    CREATE_REPAIR_JOB = 'CREATE_REPAIR_JOB'
    MANAGE_REPAIR_JOBS = 'MANAGE_REPAIR_JOBS'
    VIEW_REPAIRS = 'VIEW_REPAIRS'
    VIEW_ASSIGNED_REPAIRS = 'VIEW_ASSIGNED_REPAIRS'
    UPDATE_REPAIR_STATUS = 'UPDATE_REPAIR_STATUS'
    SET_REPAIR_PRICING = 'SET_REPAIR_PRICING'
    # System settings
    MANAGE_SETTINGS = 'MANAGE_SETTINGS'
    VIEW_SETTINGS = 'VIEW_SETTINGS'
    SYSTEM_CONFIGURATION = 'SYSTEM_CONFIGURATION'
    MANAGE_INTEGRATIONS = 'MANAGE_INTEGRATIONS'
    # Database & backup
    DATABASE_MANAGEMENT = 'DATABASE_MANAGEMENT'
    BACKUP_OPERATIONS = 'BACKUP_OPERATIONS'
    RESTORE_OPERATIONS = 'RESTORE_OPERATIONS'
    # System access
    FULL_SYSTEM_ACCESS = 'FULL_SYSTEM_ACCESS'
    OVERRIDE_CASHIER_RESTRICTIONS = 'OVERRIDE_CASHIER_RESTRICTIONS'


# Wire spelling of the unrestricted grant
FULL_SYSTEM_ACCESS = PermissionCode.FULL_SYSTEM_ACCESS.value


@dataclass(frozen=True)
class Permission:
    code: str
    description: str
    category: str


@dataclass(frozen=True)
class PermissionCategory:
    key: str
    name: str
    description: str
    permissions: Tuple[Permission, ...]

    @property
    def codes(self) -> List[str]:
        return [p.code for p in self.permissions]


# key -> (display name, description, [(code, description), ...])
_CATEGORY_TABLE = [
    ('SALES', 'Sales Operations', 'Manage sales transactions and operations', [
        ('CREATE_SALE', 'Create and process sales'),
        ('PROCESS_TRANSACTION', 'Process transactions'),
        ('VIEW_SALES', 'View sales records'),
        ('VOID_SALE', 'Void or cancel sales'),
        ('ACCEPT_PAYMENTS', 'Accept payments'),
        ('GENERATE_RECEIPTS', 'Generate receipts'),
    ]),
    ('DISCOUNTS', 'Discounts', 'Manage discount operations', [
        ('APPLY_STANDARD_DISCOUNT', 'Apply standard discounts'),
        ('APPLY_HIGH_VALUE_DISCOUNT', 'Apply high-value discounts'),
        ('APPROVE_DISCOUNTS', 'Approve discount requests'),
    ]),
    ('RETURNS', 'Returns & Refunds', 'Handle returns and refund operations', [
        ('AUTHORIZE_RETURNS', 'Authorize product returns'),
        ('AUTHORIZE_REFUNDS', 'Authorize refunds'),
        ('PROCESS_RETURNS', 'Process returns'),
    ]),
    ('REPORTS', 'Reports', 'Access and manage reports', [
        ('VIEW_SALES_REPORT', 'View sales reports'),
        ('VIEW_PROFIT_REPORT', 'View profit reports'),
        ('VIEW_FINANCIAL_REPORTS', 'View financial reports'),
        ('VIEW_ALL_REPORTS', 'View all reports'),
        ('VIEW_OWN_PERFORMANCE', 'View own performance'),
        ('VIEW_EMPLOYEE_PERFORMANCE', 'View employee performance'),
        ('EXPORT_REPORTS', 'Export reports'),
    ]),
    ('USERS', 'User Management', 'Manage user accounts', [
        ('CREATE_USER', 'Create new users'),
        ('VIEW_USERS', 'View users'),
        ('UPDATE_USER', 'Update user information'),
        ('DELETE_USER', 'Delete users'),
        ('MANAGE_USERS', 'Full user management'),
    ]),
    ('ROLES', 'Role Management', 'Manage user roles', [
        ('MANAGE_ROLES', 'Manage roles'),
        ('ASSIGN_ROLES', 'Assign roles to users'),
        ('VIEW_ROLES', 'View roles'),
    ]),
    ('PERMISSIONS', 'Permission Management', 'Manage system permissions', [
        ('MANAGE_PERMISSIONS', 'Manage permissions'),
        ('ASSIGN_PERMISSIONS', 'Assign permissions'),
        ('VIEW_PERMISSIONS', 'View permissions'),
    ]),
    ('EMPLOYEES', 'Employee Management', 'Manage employee information', [
        ('VIEW_EMPLOYEES', 'View employees'),
        ('MANAGE_EMPLOYEES', 'Manage employees'),
    ]),
    ('PRODUCTS', 'Product Management', 'Manage product catalog', [
        ('CREATE_PRODUCT', 'Add new products'),
        ('VIEW_PRODUCTS', 'View products'),
        ('UPDATE_PRODUCT', 'Update products'),
        ('DELETE_PRODUCT', 'Delete products'),
    ]),
    ('CATEGORIES', 'Category Management', 'Manage product categories', [
        ('CREATE_CATEGORY', 'Create categories'),
        ('VIEW_CATEGORIES', 'View categories'),
        ('UPDATE_CATEGORY', 'Update categories'),
        ('DELETE_CATEGORY', 'Delete categories'),
    ]),
    ('INVENTORY', 'Inventory Management', 'Manage inventory and stock', [
        ('MANAGE_INVENTORY', 'Full inventory management'),
        ('VIEW_INVENTORY', 'View inventory'),
        ('ADD_INVENTORY', 'Add inventory'),
        ('EDIT_INVENTORY', 'Edit inventory'),
        ('DELETE_INVENTORY', 'Delete inventory'),
        ('INVENTORY_TRANSFER', 'Transfer inventory'),
        ('INVENTORY_AUDIT', 'Perform audits'),
    ]),
    ('DEVICES', 'Device Repairs', 'Manage repair operations', [
        ('CREATE_REPAIR_JOB', 'Create repair jobs'),
        ('MANAGE_REPAIR_JOBS', 'Manage repair jobs'),
        ('VIEW_REPAIRS', 'View repairs'),
        ('VIEW_ASSIGNED_REPAIRS', 'View assigned repairs'),
        ('UPDATE_REPAIR_STATUS', 'Update repair status'),
        ('SET_REPAIR_PRICING', 'Set repair pricing'),
    ]),
    ('SETTINGS', 'System Settings', 'Manage system configuration', [
        ('MANAGE_SETTINGS', 'Manage settings'),
        ('VIEW_SETTINGS', 'View settings'),
        ('SYSTEM_CONFIGURATION', 'System configuration'),
        ('MANAGE_INTEGRATIONS', 'Manage integrations'),
    ]),
    ('DATABASE', 'Database Operations', 'Manage database and backups', [
        ('DATABASE_MANAGEMENT', 'Database management'),
        ('BACKUP_OPERATIONS', 'Backup operations'),
        ('RESTORE_OPERATIONS', 'Restore operations'),
    ]),
    ('SYSTEM', 'System Access', 'System-level permissions', [
        ('FULL_SYSTEM_ACCESS', 'Full system access'),
        ('OVERRIDE_CASHIER_RESTRICTIONS', 'Override restrictions'),
    ]),
]


def build_permission_categories() -> Dict[str, PermissionCategory]:
    categories: Dict[str, PermissionCategory] = {}
    for key, name, description, entries in _CATEGORY_TABLE:
        perms = tuple(Permission(code=PermissionCode(code).value, description=desc, category=name) for code, desc in entries)
        categories[key] = PermissionCategory(key=key, name=name, description=description, permissions=perms)
    return categories


PERMISSION_CATEGORIES = build_permission_categories()

_BY_CODE: Dict[str, Permission] = {
    p.code: p for cat in PERMISSION_CATEGORIES.values() for p in cat.permissions
}

ALL_PERMISSION_CODES: List[str] = [p.code for cat in PERMISSION_CATEGORIES.values() for p in cat.permissions]

# Every enum member must be placed in exactly one category
assert set(_BY_CODE) == {c.value for c in PermissionCode}, 'registry categories out of sync with PermissionCode'
assert len(ALL_PERMISSION_CODES) == len(_BY_CODE), 'duplicate permission code in categories'


def get_permission(code: str) -> Optional[Permission]:
    return _BY_CODE.get(str(code.value if isinstance(code, PermissionCode) else code))


def is_registered(code: str) -> bool:
    return get_permission(code) is not None


def permissions_by_category() -> Dict[str, List[Permission]]:
    """Category display name -> ordered permissions (presentation grouping only)."""
    return {cat.name: list(cat.permissions) for cat in PERMISSION_CATEGORIES.values()}


def permission_display_name(code: str) -> str:
    """VIEW_SALES -> 'View Sales'."""
    raw = code.value if isinstance(code, PermissionCode) else code
    return ' '.join(word[:1] + word[1:].lower() for word in raw.split('_') if word)


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    label: str
    description: str
    permissions: Tuple[str, ...]
    color: Optional[str] = None


ADMIN_ROLE = 'ADMIN'

# System roles seeded on first run; ADMIN carries the unrestricted grant.
ROLE_DEFINITIONS: Dict[str, RoleDefinition] = {
    'ADMIN': RoleDefinition(
        name='ADMIN',
        label='Admin',
        description='Full system access including user creation, system configuration, all reports access, '
                    'database management, and backup operations',
        color='red',
        permissions=(FULL_SYSTEM_ACCESS,),
    ),
    'MANAGER': RoleDefinition(
        name='MANAGER',
        label='Manager',
        description='Authorize returns/refunds, approve high-value discounts, view employee performance, '
                    'manage inventory, access financial reports, override cashier restrictions',
        color='blue',
        permissions=(
            'AUTHORIZE_RETURNS', 'AUTHORIZE_REFUNDS', 'PROCESS_RETURNS',
            'APPLY_STANDARD_DISCOUNT', 'APPLY_HIGH_VALUE_DISCOUNT', 'APPROVE_DISCOUNTS',
            'VIEW_EMPLOYEE_PERFORMANCE', 'VIEW_OWN_PERFORMANCE',
            'MANAGE_INVENTORY', 'VIEW_INVENTORY', 'ADD_INVENTORY', 'EDIT_INVENTORY',
            'DELETE_INVENTORY', 'INVENTORY_TRANSFER', 'INVENTORY_AUDIT',
            'CREATE_PRODUCT', 'VIEW_PRODUCTS', 'UPDATE_PRODUCT', 'DELETE_PRODUCT',
            'CREATE_CATEGORY', 'VIEW_CATEGORIES', 'UPDATE_CATEGORY', 'DELETE_CATEGORY',
            'VIEW_FINANCIAL_REPORTS', 'VIEW_SALES_REPORT', 'VIEW_PROFIT_REPORT', 'EXPORT_REPORTS',
            'OVERRIDE_CASHIER_RESTRICTIONS',
            'CREATE_SALE', 'PROCESS_TRANSACTION', 'VIEW_SALES', 'ACCEPT_PAYMENTS', 'GENERATE_RECEIPTS',
            'VIEW_USERS', 'VIEW_EMPLOYEES', 'VIEW_ROLES',
        ),
    ),
    'CASHIER': RoleDefinition(
        name='CASHIER',
        label='Cashier',
        description='Process sales transactions, accept payments, generate receipts, apply standard discounts, '
                    'view own performance. No return/refund authorization',
        color='green',
        permissions=(
            'CREATE_SALE', 'PROCESS_TRANSACTION', 'VIEW_SALES',
            'ACCEPT_PAYMENTS', 'GENERATE_RECEIPTS',
            'APPLY_STANDARD_DISCOUNT',
            'VIEW_OWN_PERFORMANCE',
            'VIEW_PRODUCTS', 'VIEW_CATEGORIES', 'VIEW_INVENTORY',
        ),
    ),
    'TECHNICIAN': RoleDefinition(
        name='TECHNICIAN',
        label='Technician',
        description='Create and manage repair jobs, set repair pricing, update job status, view assigned repairs, '
                    'view own performance. No sales or inventory functions',
        color='purple',
        permissions=(
            'CREATE_REPAIR_JOB', 'MANAGE_REPAIR_JOBS',
            'SET_REPAIR_PRICING', 'UPDATE_REPAIR_STATUS',
            'VIEW_ASSIGNED_REPAIRS', 'VIEW_REPAIRS',
            'VIEW_OWN_PERFORMANCE',
        ),
    ),
}

SYSTEM_ROLE_NAMES = tuple(ROLE_DEFINITIONS.keys())


def _definition_grant(name: str):
    # grants imports this module, so resolve it at call time
    from posauthz.services import grants
    definition = ROLE_DEFINITIONS.get((name or '').strip().upper()) if isinstance(name, str) else None
    return grants.grant_from_codes(definition.permissions) if definition else None


def role_definition_codes(name: str) -> List[str]:
    """Sorted codes a built-in role ships with; ADMIN reads as [FULL_SYSTEM_ACCESS], unknown names as []."""
    grant = _definition_grant(name)
    return grant.to_codes() if grant is not None else []


def role_definition_allows(name: str, code) -> bool:
    """Whether the built-in role ``name`` grants ``code`` as defined, before any admin edits."""
    grant = _definition_grant(name)
    return grant is not None and grant.grants(code)
