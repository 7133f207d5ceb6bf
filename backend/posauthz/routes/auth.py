from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token
from posauthz.decorators.auth import current_user
from posauthz.services.navigation import visible_nav
from posauthz.services.policy import compute_effective_permissions, resolve_user_roles
from posauthz.services.user_store import UserStore, serialize_user
from posauthz.utils.responses import success

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email'); password = data.get('password')
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        abort(400, description='email & password required')
    user = UserStore().get_by_email(email)
    # same answer for unknown email, bad password and deactivated account
    if not user or not user.is_active or not user.verify_password(password):
        abort(401, description='Invalid email or password')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id))
    return {'access_token': token}


@auth_bp.get('/me')
def me():
    user = current_user()
    eff = compute_effective_permissions(user.id)
    return success({
        'user': serialize_user(user),
        'roles': eff['roles'],
        'unrestricted': eff['unrestricted'],
        'perms': eff['perms'],
    })


@auth_bp.get('/nav')
def nav():
    user = current_user()
    sections = visible_nav(resolve_user_roles(user.id))
    return success({'sections': [s.to_dict() for s in sections]})
