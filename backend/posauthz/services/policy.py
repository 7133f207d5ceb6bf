from __future__ import annotations
from typing import Iterable, List
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from posauthz.models.authz import Role, RolePermission, User, UserRole
from posauthz.constants.permissions import ADMIN_ROLE
from posauthz.services import grants
from posauthz.services.grants import GrantedRole, RoleGrant
from posauthz.errors import ValidationError
from posauthz import get_db


def grant_of(role) -> RoleGrant:
    if isinstance(role, (grants.Explicit, grants.Unrestricted)):
        return role
    return role.grant


def is_allowed(roles: Iterable, code) -> bool:
    """True when any role grants ``code``.

    Unrestricted roles pass for every code, registered or not. The code is
    never checked against the registry here, so an unknown code simply denies.
    """
    for role in roles:
        if grant_of(role).grants(code):
            return True
    return False


def is_allowed_any(roles: Iterable, codes: Iterable) -> bool:
    roles = list(roles)
    return any(is_allowed(roles, c) for c in codes)


def effective_grant(roles: Iterable) -> RoleGrant:
    return grants.union(grant_of(r) for r in roles)


def effective_permissions(roles: Iterable) -> List[str]:
    return grants.expand(effective_grant(roles))


def _user_roles_query(user_id: int):
    # populate_existing: reload rows and collections even when the session already holds them
    return (
        select(Role)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
        .order_by(Role.id)
        .options(selectinload(Role.permissions).selectinload(RolePermission.permission))
        .execution_options(populate_existing=True)
    )


def resolve_user_roles(user_id: int, session=None) -> List[GrantedRole]:
    """Snapshot the user's roles from committed state. Never cached."""
    session = session or get_db()
    rows = session.execute(_user_roles_query(user_id)).scalars().all()
    return [r.snapshot() for r in rows]


def compute_effective_permissions(user_id: int, session=None):
    session = session or get_db()
    rows = session.execute(_user_roles_query(user_id)).scalars().all()
    grant = effective_grant(rows)
    return {
        'roles': [{'id': r.id, 'name': r.name, 'description': r.description} for r in rows],
        'unrestricted': grants.is_unrestricted(grant),
        'perms': grants.expand(grant),
    }


def count_admin_users(session=None) -> int:
    """Number of distinct active users holding the ADMIN role."""
    session = session or get_db()
    admin_role = session.execute(select(Role).where(Role.name == ADMIN_ROLE)).scalar_one_or_none()
    if not admin_role:
        return 0
    return session.execute(
        select(func.count(func.distinct(UserRole.user_id)))
        .join(User, User.id == UserRole.user_id)
        .where(UserRole.role_id == admin_role.id, User.is_active.is_(True))
    ).scalar_one()


def assert_not_removing_last_admin(
    target_user_id: int,
    new_role_ids: set,
    session=None,
    field: str = 'role_ids',
    message: str = f'Cannot remove last {ADMIN_ROLE} role',
):
    """Ensure at least one active ADMIN holder remains after replacing target_user_id's roles.

    Deactivation passes an empty ``new_role_ids`` with its own field and message.
    """
    session = session or get_db()
    admin_role = session.execute(select(Role).where(Role.name == ADMIN_ROLE)).scalar_one_or_none()
    if not admin_role:
        return
    if admin_role.id in new_role_ids:
        return
    active_admin = session.execute(
        select(UserRole)
        .join(User, User.id == UserRole.user_id)
        .where(UserRole.user_id == target_user_id, UserRole.role_id == admin_role.id, User.is_active.is_(True))
    ).scalar_one_or_none() is not None
    if active_admin and count_admin_users(session) <= 1:
        raise ValidationError(field, message)

