from __future__ import annotations
"""Transfer use cases: creation, lookup, listing and the approval transitions.

Each transition runs inside the request's session: load, check, mutate, commit.
The ``version`` column guards the commit; a row changed by someone else since it
was loaded surfaces as ConflictError and the session is rolled back.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, or_, and_
from sqlalchemy.orm.exc import StaleDataError

from asset_transfer import get_db
from asset_transfer.constants.permissions import (
    ROLE_MANAGER, ROLE_ACCOUNTANT, ROLE_RECIPIENT_MANAGER, ROLE_FINANCE_CONTROLLER,
)
from asset_transfer.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from asset_transfer.models.authz import User
from asset_transfer.models.transfer import AssetTransfer
from asset_transfer.services import workflow
from asset_transfer.services.audit import add_audit, entries_for
from asset_transfer.services.policy import (
    Actor, assert_can_create, assert_can_view, department_scope_enabled, load_actor,
)
from asset_transfer.utils.listing import paginate
from asset_transfer.utils.validation import optional_int, require_fields, validate_status

logger = logging.getLogger(__name__)

ENTITY = 'AssetTransfer'

REQUIRED_FIELDS = (
    'asset_description', 'asset_tag_number', 'current_location', 'current_cost_center',
    'current_owner', 'new_location', 'new_cost_center', 'new_owner', 'purpose', 'justification',
)

AUDIT_CODES = {
    workflow.SUBMIT: 'TRANSFER.SUBMIT',
    workflow.MANAGER_APPROVE: 'TRANSFER.MANAGER_APPROVE',
    workflow.UPDATE_FINANCIAL_DETAILS: 'TRANSFER.FINANCIALS_UPDATE',
    workflow.RECIPIENT_APPROVE: 'TRANSFER.RECIPIENT_APPROVE',
    workflow.RECIPIENT_MANAGER_APPROVE: 'TRANSFER.RECIPIENT_MANAGER_APPROVE',
    workflow.FINANCE_CONTROLLER_APPROVE: 'TRANSFER.FINANCE_APPROVE',
    workflow.REJECT: 'TRANSFER.REJECT',
}


# --- Persistence collaborators ---

def load_transfer(transfer_id: int, session=None) -> AssetTransfer:
    session = session or get_db()
    transfer = session.get(AssetTransfer, transfer_id)
    if not transfer:
        raise NotFoundError('Transfer not found')
    return transfer


def save_transfer(transfer: AssetTransfer, session=None) -> AssetTransfer:
    session = session or get_db()
    try:
        session.commit()
    except StaleDataError:
        session.rollback()
        logger.warning('transfer %s: concurrent update detected', transfer.id)
        raise ConflictError('Transfer was modified by another request', transfer_id=transfer.id)
    return transfer


# --- Creation / lookup ---

def create_transfer(requestor_id: int, **fields: Any) -> AssetTransfer:
    """Create a Draft transfer owned by requestor_id."""
    session = get_db()
    actor = load_actor(requestor_id, session=session)
    assert_can_create(actor)
    require_fields(fields, REQUIRED_FIELDS)
    recipient_id = optional_int(fields.get('recipient_id'), 'recipient_id')
    if recipient_id is not None and not session.get(User, recipient_id):
        raise ValidationError('recipient_id does not reference a user', recipient_id=recipient_id)
    purpose = str(fields['purpose']).strip()
    kind = fields.get('transfer_kind') or AssetTransfer.kind_for_purpose(purpose)
    validate_status(kind, AssetTransfer.ALL_KINDS, 'transfer_kind')

    transfer = AssetTransfer(
        requestor_id=actor.user_id,
        request_date=datetime.now(timezone.utc),
        recipient_id=recipient_id,
        transfer_kind=kind,
        status=AssetTransfer.STATUS_DRAFT,
        **{f: str(fields[f]).strip() for f in REQUIRED_FIELDS},
    )
    session.add(transfer)
    session.flush()
    add_audit('TRANSFER.CREATE', actor.user_id, ENTITY, transfer.id, roles=actor.roles,
              meta={'to': transfer.status, 'kind': kind})
    session.commit()
    logger.info('transfer %s created by user %s (%s)', transfer.id, actor.user_id, kind)
    return transfer


def get_transfer(transfer_id: int, actor_id: int) -> AssetTransfer:
    session = get_db()
    actor = load_actor(actor_id, session=session)
    transfer = load_transfer(transfer_id, session=session)
    assert_can_view(transfer, actor)
    return transfer


def history(transfer_id: int, actor_id: int):
    transfer = get_transfer(transfer_id, actor_id)
    return entries_for(ENTITY, transfer.id)


def can_user_submit_request(user_id: int) -> bool:
    try:
        assert_can_create(load_actor(user_id))
    except (NotFoundError, ForbiddenError):
        return False
    return True


def list_transfers_for_user(actor_id: int, limit: Optional[int] = None, offset: Optional[int] = None):
    """Transfers the actor owns or has work waiting on; Admin sees everything."""
    session = get_db()
    actor = load_actor(actor_id, session=session)
    stmt = select(AssetTransfer).order_by(AssetTransfer.id.asc())
    if not actor.is_admin:
        stmt = stmt.where(or_(*_work_queue_predicates(actor)))
    return paginate(session, stmt, limit, offset)


def _work_queue_predicates(actor: Actor):
    T = AssetTransfer
    same_department = select(User.id).where(User.department == actor.department)
    preds = [
        T.requestor_id == actor.user_id,
        and_(T.status == T.STATUS_PENDING_RECIPIENT, T.recipient_id == actor.user_id),
    ]
    if actor.has_role(ROLE_MANAGER):
        preds.append(and_(T.status == T.STATUS_PENDING_MANAGER, T.requestor_id.in_(same_department)))
    if actor.has_role(ROLE_ACCOUNTANT):
        preds.append(T.status == T.STATUS_PENDING_ACCOUNTANT)
    if actor.has_role(ROLE_RECIPIENT_MANAGER):
        preds.append(and_(T.status == T.STATUS_PENDING_RECIPIENT_MANAGER, T.recipient_id.in_(same_department)))
    if actor.has_role(ROLE_FINANCE_CONTROLLER):
        preds.append(T.status == T.STATUS_PENDING_FINANCE_CONTROLLER)
    return preds


# --- Transitions ---

def _departments_for(session, transfer: AssetTransfer) -> Dict[int, str]:
    ids = [i for i in (transfer.requestor_id, transfer.recipient_id) if i is not None]
    rows = session.execute(select(User.id, User.department).where(User.id.in_(ids))).all()
    return {uid: dept for uid, dept in rows}


def _transition(transfer_id: int, actor_id: int, action: str, expected_version: Optional[int] = None, **payload):
    session = get_db()
    actor = load_actor(actor_id, session=session)
    transfer = load_transfer(transfer_id, session=session)
    departments = _departments_for(session, transfer) if department_scope_enabled() else None
    before = transfer.status
    workflow.apply(transfer, action, actor, departments=departments, expected_version=expected_version, **payload)
    meta: Dict[str, Any] = {'from': before, 'to': transfer.status}
    if action == workflow.REJECT:
        meta['reason'] = transfer.rejection_reason
    add_audit(AUDIT_CODES[action], actor.user_id, ENTITY, transfer.id, roles=actor.roles, meta=meta)
    return save_transfer(transfer, session=session)


def submit(transfer_id: int, actor_id: int, expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(transfer_id, actor_id, workflow.SUBMIT, expected_version)


def manager_approve(transfer_id: int, actor_id: int, expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(transfer_id, actor_id, workflow.MANAGER_APPROVE, expected_version)


def update_financial_details(transfer_id: int, actor_id: int, cost, net_book_value,
                             expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(
        transfer_id, actor_id, workflow.UPDATE_FINANCIAL_DETAILS, expected_version,
        cost=cost, net_book_value=net_book_value,
    )


def recipient_approve(transfer_id: int, actor_id: int, expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(transfer_id, actor_id, workflow.RECIPIENT_APPROVE, expected_version)


def recipient_manager_approve(transfer_id: int, actor_id: int, expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(transfer_id, actor_id, workflow.RECIPIENT_MANAGER_APPROVE, expected_version)


def finance_controller_approve(transfer_id: int, actor_id: int, expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(transfer_id, actor_id, workflow.FINANCE_CONTROLLER_APPROVE, expected_version)


def reject(transfer_id: int, actor_id: int, reason: str, expected_version: Optional[int] = None) -> AssetTransfer:
    return _transition(transfer_id, actor_id, workflow.REJECT, expected_version, reason=reason)


# --- Serialization ---

def _iso(dt: Optional[datetime]):
    return dt.isoformat() if dt else None


def _money(value):
    return float(value) if value is not None else None


def transfer_json(t: AssetTransfer):
    return {
        'id': t.id,
        'requestor_id': t.requestor_id,
        'request_date': _iso(t.request_date),
        'asset_description': t.asset_description,
        'asset_tag_number': t.asset_tag_number,
        'current_location': t.current_location,
        'current_cost_center': t.current_cost_center,
        'current_owner': t.current_owner,
        'new_location': t.new_location,
        'new_cost_center': t.new_cost_center,
        'new_owner': t.new_owner,
        'purpose': t.purpose,
        'transfer_kind': t.transfer_kind,
        'justification': t.justification,
        'cost': _money(t.cost),
        'net_book_value': _money(t.net_book_value),
        'accountant_id': t.accountant_id,
        'accountant_sign_off_date': _iso(t.accountant_sign_off_date),
        'recipient_id': t.recipient_id,
        'status': t.status,
        'manager_approval_date': _iso(t.manager_approval_date),
        'recipient_approval_date': _iso(t.recipient_approval_date),
        'recipient_manager_approval_date': _iso(t.recipient_manager_approval_date),
        'finance_controller_approval_date': _iso(t.finance_controller_approval_date),
        'rejection_reason': t.rejection_reason,
        'rejected_by_id': t.rejected_by_id,
        'version': t.version,
        'available_actions': workflow.available_actions(t.status),
    }
