from flask import Blueprint, request
from posauthz.constants.permissions import PermissionCode as P
from posauthz.decorators.audit import audit_log
from posauthz.decorators.auth import require_permissions
from posauthz.errors import NotFoundError
from posauthz.services.user_store import UserStore, serialize_user
from posauthz.utils.responses import page_args, pagination_meta, success

users_bp = Blueprint('users', __name__)


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _user_before(args, kwargs):  # pre_fetch for USER.UPDATE diffs
    try:
        return serialize_user(UserStore().get(kwargs['user_id']))
    except NotFoundError:
        return None


@users_bp.get('')
@require_permissions(P.VIEW_USERS)
def list_users():
    limit, offset = page_args()
    rows, total = UserStore().list(limit, offset)
    return success(
        {'users': [serialize_user(u) for u in rows]},
        pagination=pagination_meta(total, limit, offset, len(rows)),
    )


@users_bp.post('')
@require_permissions(P.CREATE_USER, P.MANAGE_USERS)
@audit_log('USER.CREATE', entity='User', entity_id_key='data.user.id', meta_keys=['data.user.email'])
def create_user():
    data = _body()
    user = UserStore().create(data.get('name'), data.get('email'), data.get('password'), data.get('role_ids'))
    return success({'user': serialize_user(user)}, 201)


@users_bp.get('/<int:user_id>')
@require_permissions(P.VIEW_USERS)
def get_user(user_id: int):
    return success({'user': serialize_user(UserStore().get(user_id))})


@users_bp.put('/<int:user_id>')
@require_permissions(P.UPDATE_USER)
@audit_log(
    'USER.UPDATE',
    entity='User',
    entity_id_arg='user_id',
    diff_keys=['name', 'email', 'is_active'],
    pre_fetch=_user_before,
    after_key='data.user',
)
def update_user(user_id: int):
    data = _body()
    user = UserStore().update(
        user_id,
        name=data.get('name'),
        email=data.get('email'),
        password=data.get('password'),
        is_active=data.get('is_active'),
    )
    return success({'user': serialize_user(user)})


@users_bp.delete('/<int:user_id>')
@require_permissions(P.DELETE_USER)
@audit_log('USER.DELETE', entity='User', entity_id_arg='user_id', meta_keys=['data.user.email'])
def delete_user(user_id: int):
    user = UserStore().deactivate(user_id)
    return success({'message': f'User {user.email} deactivated', 'user': serialize_user(user)})


@users_bp.get('/<int:user_id>/permissions')
@require_permissions(P.VIEW_USERS)
def user_permissions(user_id: int):
    return success(UserStore().effective_permissions(user_id))


@users_bp.put('/<int:user_id>/roles')
@require_permissions(P.ASSIGN_ROLES)
@audit_log('USER.ROLES.SET', entity='User', entity_id_key='data.user_id', meta_keys=['data.role_ids'])
def set_user_roles(user_id: int):
    data = _body()
    role_ids = UserStore().set_roles(user_id, data.get('role_ids'))
    return success({'user_id': user_id, 'role_ids': role_ids})
