from __future__ import annotations
"""Authorization gate for transfer actions.

Two kinds of rules are kept apart:
  * role rules: is the actor a member of role X (by role name, not permission)
  * data rules: is the actor the requestor / recipient stored on the record

Visibility follows the same two kinds: the parties named on the record, Admin and
members of an approver role see a transfer. Everyone else gets NotFound so existence
is not leaked. Resolved permissions play no part in any of these checks.
"""
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

from flask import current_app, has_app_context
from flask_jwt_extended import get_jwt

from asset_transfer.constants.permissions import ROLE_ADMIN, ROLE_REQUESTOR, WORKFLOW_ROLES
from asset_transfer.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

# Feature flag name (must align with config.settings)
FLAG_DEPARTMENT_SCOPE = 'ENFORCE_DEPARTMENT_SCOPE'


@dataclass(frozen=True)
class Actor:
    user_id: int
    roles: FrozenSet[str] = frozenset()
    permissions: FrozenSet[str] = frozenset()
    department: Optional[str] = None
    is_active: bool = field(default=True, compare=False)

    def has_role(self, name: str) -> bool:
        return name in self.roles

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles


def load_actor(user_id: int, session=None) -> Actor:
    """Materialize an actor from the user store: role names plus resolved permissions."""
    from asset_transfer.services.users import get_user, get_roles_for_user
    from asset_transfer.services.permissions import resolver
    user = get_user(user_id, session=session)
    if not user.is_active:
        raise ForbiddenError('User is inactive')
    roles = frozenset(get_roles_for_user(user.id, session=session))
    return Actor(
        user_id=user.id,
        roles=roles,
        permissions=frozenset(resolver.resolve_permissions(roles, session=session)),
        department=user.department,
        is_active=user.is_active,
    )


def department_scope_enabled(app_config=None) -> bool:
    if app_config is None:
        if not has_app_context():
            return False
        app_config = current_app.config
    return bool(app_config.get(FLAG_DEPARTMENT_SCOPE, False))


# --- Role rules ---

def assert_has_role(actor: Actor, role_name: str):
    if not actor.has_role(role_name):
        logger.warning('user %s denied: role %s required', actor.user_id, role_name)
        raise ForbiddenError(f'Role {role_name} required', role=role_name)


def assert_can_create(actor: Actor):
    if not (actor.has_role(ROLE_REQUESTOR) or actor.is_admin):
        logger.warning('user %s denied: cannot submit requests', actor.user_id)
        raise ForbiddenError('Requestor role required')


# --- Data rules ---

def assert_owns_record(actor: Actor, owner_user_id: Optional[int], what: str = 'Record'):
    if owner_user_id is None or actor.user_id != owner_user_id:
        logger.warning('user %s denied: not the %s', actor.user_id, what.lower())
        raise ForbiddenError(f'{what} ownership required')


def assert_same_department(actor: Actor, department: Optional[str], what: str):
    if not department or actor.department != department:
        logger.warning('user %s denied: outside %s department', actor.user_id, what.lower())
        raise ForbiddenError(f'Must belong to the {what.lower()} department')


def can_view(transfer, actor: Actor) -> bool:
    if actor.user_id in (transfer.requestor_id, transfer.recipient_id):
        return True
    return actor.is_admin or not WORKFLOW_ROLES.isdisjoint(actor.roles)


def assert_can_view(transfer, actor: Actor):
    if not can_view(transfer, actor):
        raise NotFoundError('Transfer not found')


def authorize_action(rule, transfer, actor: Actor, departments: Optional[Mapping[int, str]] = None):
    """Check the actor precondition of rule against transfer.

    rule carries ``role`` (required role name), ``owner_attr`` (attribute holding the
    user id that must equal the actor) and ``department_attr`` (attribute holding the
    user whose department the actor must share, enforced only when departments is given).
    """
    if rule.role:
        assert_has_role(actor, rule.role)
    if rule.owner_attr:
        assert_owns_record(actor, getattr(transfer, rule.owner_attr), rule.owner_attr.replace('_id', '').title())
    if departments is not None and rule.department_attr:
        party_id = getattr(transfer, rule.department_attr)
        assert_same_department(actor, departments.get(party_id), rule.department_attr.replace('_id', '').title())
    return True


def current_roles():
    claims = get_jwt()
    return set(claims.get('roles', []))


def has_roles(*names: str) -> bool:
    roles = current_roles()
    return all(n in roles for n in names)
