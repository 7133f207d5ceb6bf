from flask import Blueprint, request
from posauthz.constants.permissions import PERMISSION_CATEGORIES, PermissionCode as P
from posauthz.decorators.audit import audit_log
from posauthz.decorators.auth import require_permissions
from posauthz.errors import NotFoundError
from posauthz.services.role_store import RoleStore, serialize_role
from posauthz.utils.responses import success

roles_bp = Blueprint('roles', __name__)


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _role_before(args, kwargs):  # pre_fetch for ROLE.UPDATE diffs
    try:
        return serialize_role(RoleStore().get(kwargs['role_id']))
    except NotFoundError:
        return None


@roles_bp.get('')
@require_permissions(P.VIEW_ROLES, P.MANAGE_ROLES)
def list_roles():
    rows = [serialize_role(r) for r in RoleStore().list()]
    return success({'roles': rows}, results=len(rows))


@roles_bp.get('/matrix')
@require_permissions(P.VIEW_PERMISSIONS, P.MANAGE_ROLES)
def role_matrix():
    roles = RoleStore().list()
    role_grants = [(r.name, r.grant) for r in roles]
    categories = []
    for cat in PERMISSION_CATEGORIES.values():
        categories.append({
            'key': cat.key,
            'name': cat.name,
            'permissions': [
                {
                    'code': p.code,
                    'description': p.description,
                    'roles': {name: grant.grants(p.code) for name, grant in role_grants},
                }
                for p in cat.permissions
            ],
        })
    return success({
        'roles': [{'id': r.id, 'name': r.name, 'unrestricted': bool(r.unrestricted)} for r in roles],
        'categories': categories,
    })


@roles_bp.get('/<int:role_id>')
@require_permissions(P.VIEW_ROLES, P.MANAGE_ROLES)
def get_role(role_id: int):
    role = RoleStore().get(role_id)
    return success({'role': serialize_role(role), 'holders': RoleStore().holder_count(role.id)})


@roles_bp.post('')
@require_permissions(P.MANAGE_ROLES)
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='data.role.id', meta_keys=['data.role.name', 'data.role.permissions'])
def create_role():
    data = _body()
    role = RoleStore().create(
        data.get('name'),
        data.get('description'),
        data.get('permissions'),
        color=data.get('color') if isinstance(data.get('color'), str) else None,
    )
    return success({'role': serialize_role(role)}, 201)


@roles_bp.put('/<int:role_id>')
@require_permissions(P.MANAGE_ROLES)
@audit_log(
    'ROLE.UPDATE',
    entity='Role',
    entity_id_arg='role_id',
    diff_keys=['name', 'description', 'permissions'],
    pre_fetch=_role_before,
    after_key='data.role',
)
def update_role(role_id: int):
    data = _body()
    role = RoleStore().update(
        role_id,
        name=data.get('name'),
        description=data.get('description'),
        permissions=data.get('permissions'),
    )
    return success({'role': serialize_role(role)})


@roles_bp.put('/<int:role_id>/permissions')
@require_permissions(P.MANAGE_ROLES)
@audit_log(
    'ROLE.PERM.REPLACE',
    entity='Role',
    entity_id_arg='role_id',
    meta_builder=lambda data, rv, a, kw: {'count': len(data['data']['role']['permissions'])},
)
def replace_role_permissions(role_id: int):
    data = _body()
    role = RoleStore().assign_permissions(role_id, data.get('permissions') or [])
    return success({'role': serialize_role(role)})


@roles_bp.delete('/<int:role_id>')
@require_permissions(P.MANAGE_ROLES)
@audit_log(
    'ROLE.DELETE',
    entity='Role',
    entity_id_arg='role_id',
    meta_keys=['data.name'],
)
def delete_role(role_id: int):
    store = RoleStore()
    name = store.get(role_id).name
    store.delete(role_id)
    return success({'message': f'Role {name} deleted', 'name': name})
