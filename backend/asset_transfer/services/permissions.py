from __future__ import annotations
"""Role -> permission resolution and role/permission administration.

The resolver keeps a read-mostly cache of role name -> permission names. Every edit
made through it invalidates the affected role; a generation counter stops a reader
that queried before an edit from storing its (now stale) result afterwards.

Workflow gating does not consult this module; it checks role names
(see services.policy). Permissions feed visibility and what is shown to users.
"""
import logging
import threading
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from sqlalchemy import select, delete

from asset_transfer import get_db
from asset_transfer.errors import NotFoundError, ValidationError
from asset_transfer.models.authz import Permission, Role, RolePermission

logger = logging.getLogger(__name__)


class PermissionResolver:
    def __init__(self):
        self._lock = threading.RLock()
        self._cache: Dict[str, FrozenSet[str]] = {}
        self._generation = 0

    # --- cache ---
    def invalidate(self, role_name: Optional[str] = None):
        with self._lock:
            self._generation += 1
            if role_name is None:
                self._cache.clear()
            else:
                self._cache.pop(role_name, None)

    def _cached(self, role_name: str):
        with self._lock:
            return self._cache.get(role_name), self._generation

    def _store(self, role_name: str, perms: FrozenSet[str], generation: int):
        with self._lock:
            if generation == self._generation:
                self._cache[role_name] = perms

    # --- reads ---
    def permissions_for_role(self, role_name: str, session=None) -> FrozenSet[str]:
        """Permission names attached to role_name; empty for an unknown role."""
        hit, generation = self._cached(role_name)
        if hit is not None:
            return hit
        session = session or get_db()
        rows = session.execute(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .where(Role.name == role_name)
        ).scalars().all()
        perms = frozenset(rows)
        self._store(role_name, perms, generation)
        return perms

    def resolve_permissions(self, role_names: Iterable[str], session=None) -> Set[str]:
        """Union of the permissions of every role in role_names (deduplicated)."""
        out: Set[str] = set()
        for name in set(role_names or ()):
            out |= self.permissions_for_role(name, session=session)
        return out

    # --- edits ---
    def add_permissions_to_role(self, role_name: str, names: Iterable[str], session=None) -> FrozenSet[str]:
        """Attach names to the role. Already-attached names are skipped and unknown
        names are created on first reference."""
        session = session or get_db()
        role = _role_by_name(session, role_name)
        wanted = _clean_names(names)
        existing = set(session.execute(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role.id)
        ).scalars().all())
        added = []
        for name in sorted(wanted - existing):
            perm = session.execute(select(Permission).where(Permission.name == name)).scalar_one_or_none()
            if perm is None:
                perm = Permission(name=name, description='')
                session.add(perm)
                session.flush()
                logger.info('permission %s created on first reference', name)
            session.add(RolePermission(role_id=role.id, permission_id=perm.id))
            added.append(name)
        session.commit()
        self.invalidate(role.name)
        if added:
            logger.info('role %s gained permissions %s', role.name, added)
        return self.permissions_for_role(role.name, session=session)

    def remove_permissions_from_role(self, role_name: str, names: Iterable[str], session=None) -> FrozenSet[str]:
        """Detach names from the role; names the role does not carry are ignored."""
        session = session or get_db()
        role = _role_by_name(session, role_name)
        wanted = _clean_names(names)
        perm_ids = session.execute(select(Permission.id).where(Permission.name.in_(list(wanted)))).scalars().all() if wanted else []
        if perm_ids:
            session.execute(
                delete(RolePermission)
                .where(RolePermission.role_id == role.id, RolePermission.permission_id.in_(perm_ids))
                .execution_options(synchronize_session=False)
            )
        session.commit()
        self.invalidate(role.name)
        logger.info('role %s dropped permissions %s', role.name, sorted(wanted))
        return self.permissions_for_role(role.name, session=session)


resolver = PermissionResolver()


def resolve_permissions(role_names: Iterable[str]) -> Set[str]:
    return resolver.resolve_permissions(role_names)


# --- Role administration ---

def _clean_names(names: Iterable[str]) -> Set[str]:
    if isinstance(names, str):
        raise ValidationError('permission names must be a list')
    return {n.strip() for n in (names or []) if isinstance(n, str) and n.strip()}


def _role_by_name(session, role_name: str) -> Role:
    role = session.execute(select(Role).where(Role.name == role_name)).scalar_one_or_none()
    if not role:
        raise NotFoundError(f"Role '{role_name}' not found")
    return role


def get_role(role_id: int) -> Role:
    role = get_db().get(Role, role_id)
    if not role:
        raise NotFoundError('Role not found')
    return role


def list_roles() -> List[Role]:
    return get_db().execute(select(Role).order_by(Role.id.asc())).scalars().all()


def list_permissions() -> List[Permission]:
    return get_db().execute(select(Permission).order_by(Permission.id.asc())).scalars().all()


def create_role(name: str, description: str = '', permissions: Optional[Iterable[str]] = None) -> Role:
    name = (name or '').strip()
    if not name:
        raise ValidationError('name required')
    session = get_db()
    if session.execute(select(Role).where(Role.name == name)).scalar_one_or_none():
        raise ValidationError('role exists', name=name)
    role = Role(name=name, description=description or '')
    session.add(role)
    session.commit()
    logger.info('role %s created', name)
    if permissions:
        resolver.add_permissions_to_role(name, permissions, session=session)
    return role


def role_json(role: Role):
    return {
        'id': role.id,
        'name': role.name,
        'description': role.description,
        'permissions': sorted(resolver.permissions_for_role(role.name)),
    }


def permission_json(p: Permission):
    return {'id': p.id, 'name': p.name, 'description': p.description}
