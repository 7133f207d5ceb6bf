from __future__ import annotations
"""In-process guard.

Wraps a protected action or piece of content and lets it through only when the
user's current roles grant ANY of the declared permission codes. Roles are
resolved on every check; a denied check yields nothing (or the caller's
fallback), never a disabled copy of the protected content.

Usage:
    guard = Guard()                      # resolves roles from the database
    guard.allows(user_id, 'VOID_SALE')
    guard.render(user_id, ['VIEW_PROFIT_REPORT'], report_rows)

    @guard.protect(PermissionCode.VOID_SALE)
    def void_sale(user_id, sale_id): ...
"""
from functools import wraps
from typing import Callable, Iterable, Optional, Tuple

from posauthz.constants.permissions import PermissionCode, is_registered
from posauthz.errors import AuthorizationDenied, UnknownPermissionError
from posauthz.services.policy import is_allowed_any, resolve_user_roles


def require_codes(codes: Iterable) -> Tuple[str, ...]:
    """Normalize declared codes, failing loudly on anything outside the registry."""
    out = []
    for code in codes:
        if isinstance(code, (list, tuple, set, frozenset)):
            out.extend(require_codes(code))
            continue
        plain = code.value if isinstance(code, PermissionCode) else code
        if not isinstance(plain, str) or not is_registered(plain):
            raise UnknownPermissionError(str(plain))
        out.append(plain)
    if not out:
        raise ValueError('at least one permission code is required')
    return tuple(out)


def database_resolver(user):
    """Resolve roles for a user id or an object with an ``id`` attribute."""
    # bool is an int subclass but never a user id
    if isinstance(user, bool):
        return []
    user_id = user if isinstance(user, int) else getattr(user, 'id', None)
    if user_id is None:
        return []
    return resolve_user_roles(user_id)


class Guard:
    def __init__(self, resolve_roles: Optional[Callable] = None):
        self.resolve_roles = resolve_roles or database_resolver

    def allows(self, user, *codes) -> bool:
        required = require_codes(codes)
        if user is None:
            return False
        return is_allowed_any(self.resolve_roles(user), required)

    def render(self, user, codes, content, fallback=None):
        if isinstance(codes, (str, PermissionCode)):
            codes = (codes,)
        return content if self.allows(user, *codes) else fallback

    def protect(self, *codes):
        required = require_codes(codes)

        def outer(fn):
            @wraps(fn)
            def wrapper(user, *args, **kwargs):
                if not self.allows(user, *required):
                    raise AuthorizationDenied()
                return fn(user, *args, **kwargs)
            wrapper.required_permissions = required
            return wrapper
        return outer


__all__ = ['Guard', 'require_codes', 'database_resolver']
