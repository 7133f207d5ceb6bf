from functools import wraps
from flask import abort, g
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from sqlalchemy import select
from posauthz import get_db
from posauthz.models.authz import User
from posauthz.services.guard import require_codes
from posauthz.services.policy import is_allowed_any, resolve_user_roles


def current_user():
    """Load the authenticated, active user for this request or abort 401."""
    verify_jwt_in_request()
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        abort(401, description='Authentication required')
    user = get_db().execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user or not user.is_active:
        abort(401, description='Authentication required')
    g.current_user_id = user.id
    return user


def require_permissions(*codes):
    """Allow the request when the caller's roles grant ANY of ``codes``.

    Codes are checked against the registry when the route is declared. Roles are
    re-read on every request so role edits apply immediately.
    """
    required = require_codes(codes)

    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            roles = resolve_user_roles(user.id)
            g.current_roles = [r.name for r in roles]
            if not is_allowed_any(roles, required):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        wrapper.required_permissions = required
        return wrapper
    return outer
