from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import select
from asset_transfer import get_db
from asset_transfer.models.audit import AuditLog


def add_audit(
    action: str,
    actor_user_id: int,
    entity: Optional[str] = None,
    entity_id: Optional[Any] = None,
    roles: Optional[Iterable[str]] = None,
    meta: Optional[Dict[str, Any]] = None,
    session=None,
):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. TRANSFER.CREATE, TRANSFER.SUBMIT, ROLE.PERM.ADD
      actor_user_id: user the action is attributed to
      entity: optional entity name (AssetTransfer, Role, User)
      entity_id: optional primary key (stored as string)
      roles: role names the actor held at the time
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = session or get_db()
    log = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        roles_snapshot={'roles': sorted(roles or [])},
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def entries_for(entity: str, entity_id: Any, session=None) -> List[AuditLog]:
    session = session or get_db()
    return session.execute(
        select(AuditLog)
        .where(AuditLog.entity == entity, AuditLog.entity_id == str(entity_id))
        .order_by(AuditLog.id.asc())
    ).scalars().all()


def audit_json(log: AuditLog):
    return {
        'id': log.id,
        'action': log.action,
        'actor_user_id': log.actor_user_id,
        'roles': (log.roles_snapshot or {}).get('roles', []),
        'meta': log.meta or {},
        'created_at': log.created_at.isoformat() if log.created_at else None,
    }
