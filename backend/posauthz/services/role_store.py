from __future__ import annotations
"""Role definitions store.

CRUD over roles with the validation rules of the role editor:

- name: required, at least 3 characters, letters and underscores only,
  stored upper-cased, unique
- description: required
- permissions: at least one registered code

System roles cannot be deleted or renamed; the ADMIN role's permission set
cannot be edited at all. Checks run before any write, so a failed call leaves
the database untouched.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select

from posauthz import get_db
from posauthz.constants.permissions import ADMIN_ROLE, SYSTEM_ROLE_NAMES, is_registered
from posauthz.errors import NotFoundError, ProtectedRoleError, ValidationError
from posauthz.models.authz import Role, RolePermission, UserRole
from posauthz.services import grants
from posauthz.services.permissions import permission_rows

logger = logging.getLogger(__name__)

ROLE_NAME_PATTERN = re.compile(r'^[A-Z_]+$')
MIN_NAME_LENGTH = 3

# Field order used to pick the primary error
_FIELDS = ('name', 'description', 'permissions')


def _text(value) -> str:
    return value if isinstance(value, str) else ''


def _as_list(permissions):
    if isinstance(permissions, (str, bytes, dict)) or not hasattr(permissions, '__iter__'):
        return permissions
    return list(permissions)


def normalize_role_name(name) -> str:
    return _text(name).strip().upper()


def is_protected_admin(role: Role) -> bool:
    return bool(role.is_system) and role.name == ADMIN_ROLE


def serialize_role(role: Role) -> Dict[str, object]:
    return {
        'id': role.id,
        'name': role.name,
        'description': role.description,
        'permissions': role.grant.to_codes(),
        'unrestricted': bool(role.unrestricted),
        'is_system': bool(role.is_system),
        'color': role.color,
        'created_at': role.created_at.isoformat() if role.created_at else None,
        'updated_at': role.updated_at.isoformat() if role.updated_at else None,
    }


class RoleStore:
    def __init__(self, session=None):
        self.session = session or get_db()

    # --- reads ---
    def get(self, role_id: int) -> Role:
        role = self.session.execute(select(Role).where(Role.id == role_id)).scalar_one_or_none()
        if role is None:
            raise NotFoundError(f'Role {role_id} not found')
        return role

    def get_by_name(self, name: str) -> Optional[Role]:
        return self.session.execute(select(Role).where(Role.name == normalize_role_name(name))).scalar_one_or_none()

    def list(self) -> List[Role]:
        rows = self.session.execute(select(Role)).scalars().all()
        order = {n: i for i, n in enumerate(SYSTEM_ROLE_NAMES)}

        def key(r: Role):
            if r.is_system:
                return (0, order.get(r.name, len(order)), r.name)
            return (1, 0, r.name)
        return sorted(rows, key=key)

    def holder_count(self, role_id: int) -> int:
        return self.session.execute(
            select(func.count(UserRole.id)).where(UserRole.role_id == role_id)
        ).scalar_one()

    # --- validation ---
    def _name_error(self, name, exclude_id: Optional[int] = None) -> Optional[str]:
        raw = _text(name).strip()
        if not raw:
            return 'Role name is required'
        if len(raw) < MIN_NAME_LENGTH:
            return f'Role name must be at least {MIN_NAME_LENGTH} characters'
        if not ROLE_NAME_PATTERN.match(raw.upper()):
            return 'Role name should contain only letters and underscores'
        existing = self.get_by_name(raw)
        if existing is not None and existing.id != exclude_id:
            return 'Role name already exists'
        return None

    @staticmethod
    def _description_error(description) -> Optional[str]:
        if not _text(description).strip():
            return 'Description is required'
        return None

    @staticmethod
    def _permissions_error(permissions) -> Optional[str]:
        if not isinstance(permissions, list) or not permissions:
            return 'Please select at least one permission'
        unknown = sorted({str(getattr(c, 'value', c)) for c in permissions if not is_registered(c)})
        if unknown:
            return f'Unknown permission codes: {unknown}'
        return None

    def _validate(self, fields: Dict[str, object], exclude_id: Optional[int] = None):
        errors: Dict[str, str] = {}
        if 'name' in fields:
            msg = self._name_error(fields['name'], exclude_id)
            if msg:
                errors['name'] = msg
        if 'description' in fields:
            msg = self._description_error(fields['description'])
            if msg:
                errors['description'] = msg
        if 'permissions' in fields:
            msg = self._permissions_error(fields['permissions'])
            if msg:
                errors['permissions'] = msg
        if errors:
            first = next(f for f in _FIELDS if f in errors)
            raise ValidationError(first, errors[first], errors)

    # --- writes ---
    def _apply_grant(self, role: Role, codes: Iterable):
        grant = grants.grant_from_codes(codes)
        role.unrestricted = grants.is_unrestricted(grant)
        wanted = grant.codes if isinstance(grant, grants.Explicit) else frozenset()
        # Diff instead of clear-and-refill so the unique (role, permission) pair never collides mid-flush
        for rp in list(role.permissions):
            if rp.permission.code not in wanted:
                role.permissions.remove(rp)
        have = {rp.permission.code for rp in role.permissions}
        for perm in permission_rows(self.session, wanted - have):
            role.permissions.append(RolePermission(permission=perm))

    def _commit(self):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def create(self, name, description, permissions, *, is_system: bool = False, color: Optional[str] = None) -> Role:
        permissions = _as_list(permissions)
        self._validate({'name': name, 'description': description, 'permissions': permissions})
        role = Role(
            name=normalize_role_name(name),
            description=description.strip(),
            is_system=is_system,
            color=color,
        )
        self.session.add(role)
        self._apply_grant(role, permissions)
        self._commit()
        logger.info('Role created: %s (%d codes, unrestricted=%s)', role.name, len(role.permissions), role.unrestricted)
        return role

    def update(self, role_id: int, *, name=None, description=None, permissions=None) -> Role:
        permissions = _as_list(permissions)
        role = self.get(role_id)
        if permissions is not None and is_protected_admin(role):
            raise ProtectedRoleError(f'{ADMIN_ROLE} permissions cannot be modified')
        if name is not None and role.is_system and normalize_role_name(name) != role.name:
            raise ProtectedRoleError('System roles cannot be renamed')
        fields = {}
        if name is not None:
            fields['name'] = name
        if description is not None:
            fields['description'] = description
        if permissions is not None:
            fields['permissions'] = permissions
        self._validate(fields, exclude_id=role.id)
        if name is not None:
            role.name = normalize_role_name(name)
        if description is not None:
            role.description = description.strip()
        if permissions is not None:
            self._apply_grant(role, permissions)
        self._commit()
        logger.info('Role updated: %s fields=%s', role.name, sorted(fields))
        return role

    def assign_permissions(self, role_id: int, permissions) -> Role:
        return self.update(role_id, permissions=permissions)

    def delete(self, role_id: int) -> None:
        role = self.get(role_id)
        if role.is_system:
            raise ProtectedRoleError('System roles cannot be deleted')
        holders = self.holder_count(role.id)
        if holders:
            logger.warning('Deleting role %s still held by %d user(s); assignments removed', role.name, holders)
        self.session.delete(role)
        self._commit()
        logger.info('Role deleted: %s', role.name)


__all__ = ['RoleStore', 'serialize_role', 'normalize_role_name', 'is_protected_admin', 'ROLE_NAME_PATTERN']
