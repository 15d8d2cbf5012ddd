from __future__ import annotations
"""User directory: registration, credential checks, lookups and role assignment."""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, delete, or_

from asset_transfer import get_db
from asset_transfer.errors import AuthenticationError, ForbiddenError, NotFoundError, ValidationError
from asset_transfer.models.authz import Role, User, UserRole
from asset_transfer.services.audit import add_audit
from asset_transfer.utils.validation import require_fields

logger = logging.getLogger(__name__)


def get_user(user_id: int, session=None) -> User:
    session = session or get_db()
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    return user


def get_roles_for_user(user_id: int, session=None) -> List[str]:
    session = session or get_db()
    return sorted(session.execute(
        select(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
    ).scalars().all())


def list_users() -> List[User]:
    return get_db().execute(select(User).order_by(User.id.asc())).scalars().all()


def users_by_role(role_name: str) -> List[User]:
    session = get_db()
    if not session.execute(select(Role.id).where(Role.name == role_name)).scalar_one_or_none():
        raise NotFoundError(f"Role '{role_name}' not found")
    return session.execute(
        select(User)
        .join(UserRole, UserRole.user_id == User.id)
        .join(Role, Role.id == UserRole.role_id)
        .where(Role.name == role_name)
        .order_by(User.id.asc())
    ).scalars().all()


def register_user(full_name: str, username: str, email: str, password: str,
                  department: str = '', position: str = '', roles: Optional[Iterable[str]] = None) -> User:
    data = {'full_name': full_name, 'username': username, 'email': email, 'password': password}
    require_fields(data, ['full_name', 'username', 'email', 'password'])
    session = get_db()
    clash = session.execute(
        select(User.id).where(or_(User.username == username, User.email == email))
    ).first()
    if clash:
        raise ValidationError('username or email already registered')
    user = User(
        full_name=full_name.strip(),
        username=username.strip(),
        email=email.strip(),
        department=(department or '').strip(),
        position=(position or '').strip(),
    )
    user.set_password(password)
    session.add(user)
    session.flush()
    if roles:
        _replace_roles(session, user, roles)
    session.commit()
    logger.info('user %s registered', user.username)
    return user


def authenticate(login: str, password: str) -> User:
    """Look a user up by username or email and check the password."""
    if not login or not password:
        raise ValidationError('login & password required')
    session = get_db()
    user = session.execute(
        select(User).where(or_(User.username == login, User.email == login))
    ).scalar_one_or_none()
    if not user or not user.verify_password(password):
        logger.warning('failed login for %s', login)
        raise AuthenticationError('invalid credentials')
    if not user.is_active:
        raise ForbiddenError('User is inactive')
    return user


def _replace_roles(session, user: User, role_names: Iterable[str]) -> List[str]:
    if isinstance(role_names, str):
        raise ValidationError('roles must be a list')
    wanted = {n for n in role_names if n}
    roles = session.execute(select(Role).where(Role.name.in_(list(wanted)))).scalars().all() if wanted else []
    missing = wanted - {r.name for r in roles}
    if missing:
        raise ValidationError(f'Unknown roles: {sorted(missing)}', roles=sorted(missing))
    current = {ur.role_id for ur in session.execute(
        select(UserRole).where(UserRole.user_id == user.id)
    ).scalars().all()}
    target = {r.id for r in roles}
    if current - target:
        session.execute(
            delete(UserRole)
            .where(UserRole.user_id == user.id, UserRole.role_id.in_(list(current - target)))
            .execution_options(synchronize_session=False)
        )
    for rid in target - current:
        session.add(UserRole(user_id=user.id, role_id=rid))
    return sorted(wanted)


def assign_roles(user_id: int, role_names: Iterable[str], actor_id: int) -> List[str]:
    """Replace the user's role set with role_names."""
    session = get_db()
    user = get_user(user_id, session=session)
    names = _replace_roles(session, user, role_names)
    add_audit('USER.ROLES.SET', actor_id, 'User', user.id, meta={'roles': names})
    session.commit()
    session.expire(user, ['user_roles'])
    logger.info('user %s roles set to %s', user.id, names)
    return names


def user_json(user: User):
    from asset_transfer.services.permissions import resolver
    roles = get_roles_for_user(user.id)
    return {
        'id': user.id,
        'full_name': user.full_name,
        'username': user.username,
        'email': user.email,
        'department': user.department,
        'position': user.position,
        'is_active': user.is_active,
        'roles': roles,
        'permissions': sorted(resolver.resolve_permissions(roles)),
    }
