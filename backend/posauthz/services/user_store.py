from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select

from posauthz import get_db
from posauthz.constants.permissions import ADMIN_ROLE
from posauthz.errors import NotFoundError, ValidationError
from posauthz.models.authz import Role, User, UserRole
from posauthz.services.policy import assert_not_removing_last_admin, compute_effective_permissions

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> Dict[str, object]:
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'is_active': bool(user.is_active),
        'roles': [{'id': r.id, 'name': r.name} for r in sorted(user.roles, key=lambda r: r.id)],
    }


def _role_id_set(role_ids) -> set:
    if not isinstance(role_ids, (list, tuple, set)):
        raise ValidationError('role_ids', 'role_ids must be a list of role ids')
    if any(isinstance(r, bool) or not isinstance(r, int) for r in role_ids):
        raise ValidationError('role_ids', 'role_ids must be a list of role ids')
    return set(role_ids)


class UserStore:
    def __init__(self, session=None):
        self.session = session or get_db()

    def get(self, user_id: int) -> User:
        user = self.session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
        if user is None:
            raise NotFoundError(f'User {user_id} not found')
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.execute(select(User).where(User.email == (email or '').strip().lower())).scalar_one_or_none()

    def list(self, limit: int, offset: int) -> Tuple[List[User], int]:
        total = self.session.execute(select(func.count(User.id))).scalar_one()
        rows = self.session.execute(select(User).order_by(User.id.asc()).offset(offset).limit(limit)).scalars().all()
        return rows, total

    def _existing_roles(self, role_ids: set) -> List[Role]:
        roles = self.session.execute(select(Role).where(Role.id.in_(list(role_ids)))).scalars().all() if role_ids else []
        missing = role_ids - {r.id for r in roles}
        if missing:
            raise ValidationError('role_ids', f'Unknown role ids: {sorted(missing)}')
        return roles

    @staticmethod
    def _clean_name(name) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError('name', 'Name is required')
        return name.strip()

    def _clean_email(self, email, exclude_id: Optional[int] = None) -> str:
        email = email.strip().lower() if isinstance(email, str) else ''
        if not email or '@' not in email:
            raise ValidationError('email', 'A valid email is required')
        other = self.get_by_email(email)
        if other is not None and other.id != exclude_id:
            raise ValidationError('email', 'Email already in use')
        return email

    @staticmethod
    def _check_password(password):
        if not isinstance(password, str) or not password:
            raise ValidationError('password', 'Password is required')

    def _commit(self):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def create(self, name: str, email: str, password: str, role_ids: Iterable[int]) -> User:
        name = self._clean_name(name)
        email = self._clean_email(email)
        self._check_password(password)
        ids = _role_id_set(role_ids if role_ids is not None else [])
        if not ids:
            raise ValidationError('role_ids', 'At least one role is required')
        roles = self._existing_roles(ids)
        user = User(name=name, email=email, password_hash='')
        user.set_password(password)
        self.session.add(user)
        for role in roles:
            user.user_roles.append(UserRole(role=role))
        self._commit()
        logger.info('User created: %s roles=%s', user.email, sorted(ids))
        return user

    def update(self, user_id: int, *, name=None, email=None, password=None, is_active=None) -> User:
        """Apply the given fields; deactivating the last active ADMIN holder is refused."""
        user = self.get(user_id)
        changes = {}
        if name is not None:
            changes['name'] = self._clean_name(name)
        if email is not None:
            changes['email'] = self._clean_email(email, exclude_id=user.id)
        if password is not None:
            self._check_password(password)
        if is_active is not None:
            if not isinstance(is_active, bool):
                raise ValidationError('is_active', 'is_active must be true or false')
            if not is_active:
                assert_not_removing_last_admin(
                    user.id, set(), self.session, field='is_active', message=f'Cannot deactivate the last {ADMIN_ROLE} user',
                )
            changes['is_active'] = is_active
        for key, value in changes.items():
            setattr(user, key, value)
        if password is not None:
            user.set_password(password)
        self._commit()
        logger.info('User %s updated: %s', user.id, sorted(changes) + (['password'] if password is not None else []))
        return user

    def deactivate(self, user_id: int) -> User:
        """Soft delete: the account stays for audit history but can no longer sign in."""
        return self.update(user_id, is_active=False)

    def set_roles(self, user_id: int, role_ids) -> List[int]:
        """Replace the user's role assignments; the last ADMIN holder cannot drop ADMIN."""
        user = self.get(user_id)
        ids = _role_id_set(role_ids)
        self._existing_roles(ids)
        assert_not_removing_last_admin(user.id, ids, self.session)
        try:
            self.session.execute(delete(UserRole).where(UserRole.user_id == user.id))
            for rid in ids:
                self.session.add(UserRole(user_id=user.id, role_id=rid))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.expire(user)
        logger.info('User %s roles set to %s', user.id, sorted(ids))
        return sorted(ids)

    def effective_permissions(self, user_id: int):
        user = self.get(user_id)
        return compute_effective_permissions(user.id, self.session)


__all__ = ['UserStore', 'serialize_user']
