"""Test seeding utilities to reduce duplication.

Helpers return primary keys rather than ORM objects: each test-client request
closes the scoped session, so objects held across requests are detached.
"""
import itertools
from typing import Dict, Iterable
from sqlalchemy import delete, select
from posauthz import get_db
from posauthz.constants.permissions import ADMIN_ROLE
from posauthz.models.authz import User, Role, RolePermission, UserRole
from posauthz.services import grants
from posauthz.services.permissions import permission_rows

_seq = itertools.count(1)


def unique_role_name(prefix: str = 'TEST_ROLE') -> str:
    # letters and underscores only, so map the counter onto A-Z
    n = next(_seq)
    suffix = ''
    while n:
        n, rem = divmod(n - 1, 26)
        suffix = chr(ord('A') + rem) + suffix
    return f'{prefix}_{suffix}'


def ensure_user(email: str, name: str = None, password: str = 'pw', active: bool = True) -> int:
    session = get_db()
    u = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not u:
        u = User(name=name or email.split('@')[0], email=email, password_hash='', is_active=active)
        u.set_password(password)
        session.add(u); session.commit()
    return u.id


def ensure_role(name: str, perm_codes: Iterable[str] = ()) -> int:
    """Role with exactly ``perm_codes``; FULL_SYSTEM_ACCESS makes it unrestricted."""
    session = get_db()
    role = session.execute(select(Role).where(Role.name == name)).scalar_one_or_none()
    if not role:
        role = Role(name=name, description=f'{name} test role', is_system=False)
        session.add(role); session.flush()
    grant = grants.grant_from_codes(perm_codes)
    role.unrestricted = grants.is_unrestricted(grant)
    session.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
    if isinstance(grant, grants.Explicit):
        for p in permission_rows(session, grant.codes):
            session.add(RolePermission(role_id=role.id, permission_id=p.id))
    session.commit()
    session.expire(role)
    return role.id


def role_id(name: str) -> int:
    return get_db().execute(select(Role.id).where(Role.name == name)).scalar_one()


def assign_roles(user_id: int, *role_ids: int):
    session = get_db()
    for rid in role_ids:
        exists = session.execute(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == rid)
        ).scalar_one_or_none()
        if not exists:
            session.add(UserRole(user_id=user_id, role_id=rid))
    session.commit()


def user_with_permissions(email: str, *codes: str) -> int:
    """User holding one fresh role that grants exactly ``codes``."""
    uid = ensure_user(email)
    assign_roles(uid, ensure_role(unique_role_name(), codes))
    return uid


def admin_user(email: str) -> int:
    uid = ensure_user(email)
    assign_roles(uid, role_id(ADMIN_ROLE))
    return uid


def make_sole_admin(user_id: int):
    """Strip ADMIN from everyone except ``user_id`` (who gets it if missing)."""
    session = get_db()
    rid = role_id(ADMIN_ROLE)
    session.execute(delete(UserRole).where(UserRole.role_id == rid, UserRole.user_id != user_id))
    session.commit()
    assign_roles(user_id, rid)


def login(client, email: str, password: str = 'pw') -> Dict[str, str]:
    resp = client.post('/api/v1/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


__all__ = [
    'unique_role_name', 'ensure_user', 'ensure_role', 'role_id', 'assign_roles', 'user_with_permissions',
    'admin_user', 'make_sole_admin', 'login',
]
