from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from asset_transfer import get_db
from asset_transfer.constants.permissions import ROLE_ADMIN
from asset_transfer.decorators.auth import require_roles
from asset_transfer.services import permissions as perm_service
from asset_transfer.services import users as user_service
from asset_transfer.services.audit import add_audit
from asset_transfer.services.permissions import resolver, role_json, permission_json

iam_bp = Blueprint('iam', __name__)


def _current_user_id() -> int:
    # Identity stored as string, cast back to int for DB lookup
    return int(get_jwt_identity())


def _names_from_body(data):
    names = data.get('permissions')
    if not isinstance(names, list):
        abort(400, description='permissions must be a list')
    return names


# --- Auth ---

@iam_bp.post('/auth/register')
def register():
    data = request.json or {}
    user = user_service.register_user(
        full_name=data.get('full_name') or '',
        username=data.get('username') or '',
        email=data.get('email') or '',
        password=data.get('password') or '',
        department=data.get('department') or '',
        position=data.get('position') or '',
    )
    return user_service.user_json(user), 201


@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    login_name = data.get('username') or data.get('email')
    user = user_service.authenticate(login_name, data.get('password'))
    roles = user_service.get_roles_for_user(user.id)
    claims = {
        'roles': roles,
        'perms': sorted(resolver.resolve_permissions(roles)),
        'department': user.department,
    }
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=claims)
    return {'access_token': token}


@iam_bp.get('/auth/me')
@jwt_required()
def me():
    user = user_service.get_user(_current_user_id())
    return user_service.user_json(user)


# --- Roles & permissions ---

@iam_bp.get('/roles')
@require_roles(ROLE_ADMIN)
def list_roles():
    return {'data': [role_json(r) for r in perm_service.list_roles()]}


@iam_bp.post('/roles')
@require_roles(ROLE_ADMIN)
def create_role():
    data = request.json or {}
    role = perm_service.create_role(data.get('name'), data.get('description') or '', data.get('permissions') or [])
    add_audit('ROLE.CREATE', _current_user_id(), 'Role', role.id, meta={'name': role.name})
    get_db().commit()
    return role_json(role), 201


@iam_bp.get('/roles/<int:role_id>')
@require_roles(ROLE_ADMIN)
def get_role(role_id: int):
    return role_json(perm_service.get_role(role_id))


@iam_bp.post('/roles/<int:role_id>/permissions')
@require_roles(ROLE_ADMIN)
def add_role_permissions(role_id: int):
    role = perm_service.get_role(role_id)
    names = _names_from_body(request.json or {})
    perms = resolver.add_permissions_to_role(role.name, names)
    add_audit('ROLE.PERM.ADD', _current_user_id(), 'Role', role.id, meta={'permissions': sorted(names)})
    get_db().commit()
    return {'id': role.id, 'name': role.name, 'permissions': sorted(perms)}


@iam_bp.delete('/roles/<int:role_id>/permissions')
@require_roles(ROLE_ADMIN)
def remove_role_permissions(role_id: int):
    role = perm_service.get_role(role_id)
    names = _names_from_body(request.json or {})
    perms = resolver.remove_permissions_from_role(role.name, names)
    add_audit('ROLE.PERM.REMOVE', _current_user_id(), 'Role', role.id, meta={'permissions': sorted(names)})
    get_db().commit()
    return {'id': role.id, 'name': role.name, 'permissions': sorted(perms)}


@iam_bp.get('/permissions')
@require_roles(ROLE_ADMIN)
def list_permissions():
    return {'data': [permission_json(p) for p in perm_service.list_permissions()]}


# --- Users ---

@iam_bp.get('/users')
@require_roles(ROLE_ADMIN)
def list_users():
    return {'data': [user_service.user_json(u) for u in user_service.list_users()]}


@iam_bp.get('/users/<int:user_id>')
@require_roles(ROLE_ADMIN)
def get_user(user_id: int):
    return user_service.user_json(user_service.get_user(user_id))


@iam_bp.get('/users/by-role/<role_name>')
@require_roles(ROLE_ADMIN)
def users_by_role(role_name: str):
    return {'data': [user_service.user_json(u) for u in user_service.users_by_role(role_name)]}


@iam_bp.put('/users/<int:user_id>/roles')
@require_roles(ROLE_ADMIN)
def set_user_roles(user_id: int):
    data = request.json or {}
    roles = data.get('roles')
    if not isinstance(roles, list):
        abort(400, description='roles must be a list')
    names = user_service.assign_roles(user_id, roles, actor_id=_current_user_id())
    return {'user_id': user_id, 'roles': names}
