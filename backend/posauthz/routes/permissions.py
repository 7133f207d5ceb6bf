from flask import Blueprint
from posauthz.constants.permissions import ALL_PERMISSION_CODES, PermissionCode as P, get_permission
from posauthz.decorators.auth import require_permissions
from posauthz.errors import NotFoundError
from posauthz.services.permissions import grouped_permissions_json, permission_json
from posauthz.utils.responses import success

perms_bp = Blueprint('permissions', __name__)


@perms_bp.get('')
@require_permissions(P.VIEW_PERMISSIONS, P.MANAGE_PERMISSIONS)
def list_permissions():
    return success({
        'permissions': [permission_json(c) for c in ALL_PERMISSION_CODES],
        'grouped': grouped_permissions_json(),
    }, results=len(ALL_PERMISSION_CODES))


@perms_bp.get('/<code>')
@require_permissions(P.VIEW_PERMISSIONS, P.MANAGE_PERMISSIONS)
def get_permission_detail(code: str):
    if get_permission(code) is None:
        raise NotFoundError(f'Permission {code} not found')
    return success({'permission': permission_json(code)})
