from __future__ import annotations
"""Transfer approval state machine.

Pure functions over an ``AssetTransfer`` instance; nothing here touches the session.
``apply`` runs every check (visibility, version, state, actor, payload) before
the first attribute is written, so a failed call leaves the entity exactly as it was.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import FrozenSet, List, Mapping, Optional

from asset_transfer.constants.permissions import (
    ROLE_MANAGER, ROLE_ACCOUNTANT, ROLE_RECIPIENT_MANAGER, ROLE_FINANCE_CONTROLLER,
)
from asset_transfer.errors import ConflictError, InvalidStateError, ValidationError
from asset_transfer.models.transfer import AssetTransfer
from asset_transfer.services.policy import Actor, assert_can_view, authorize_action
from asset_transfer.utils.fsm import TransitionValidator
from asset_transfer.utils.validation import parse_money

logger = logging.getLogger(__name__)

SUBMIT = 'Submit'
MANAGER_APPROVE = 'ManagerApprove'
UPDATE_FINANCIAL_DETAILS = 'UpdateFinancialDetails'
RECIPIENT_APPROVE = 'RecipientApprove'
RECIPIENT_MANAGER_APPROVE = 'RecipientManagerApprove'
FINANCE_CONTROLLER_APPROVE = 'FinanceControllerApprove'
REJECT = 'Reject'

S = AssetTransfer  # status constants live on the model


@dataclass(frozen=True)
class TransitionRule:
    action: str
    sources: FrozenSet[str]
    role: Optional[str] = None
    owner_attr: Optional[str] = None
    department_attr: Optional[str] = None
    stamp_attr: Optional[str] = None


RULES = {
    SUBMIT: TransitionRule(SUBMIT, frozenset({S.STATUS_DRAFT}), owner_attr='requestor_id'),
    MANAGER_APPROVE: TransitionRule(
        MANAGER_APPROVE, frozenset({S.STATUS_PENDING_MANAGER}),
        role=ROLE_MANAGER, department_attr='requestor_id', stamp_attr='manager_approval_date',
    ),
    UPDATE_FINANCIAL_DETAILS: TransitionRule(
        UPDATE_FINANCIAL_DETAILS, frozenset({S.STATUS_PENDING_ACCOUNTANT}),
        role=ROLE_ACCOUNTANT, stamp_attr='accountant_sign_off_date',
    ),
    RECIPIENT_APPROVE: TransitionRule(
        RECIPIENT_APPROVE, frozenset({S.STATUS_PENDING_RECIPIENT}),
        owner_attr='recipient_id', stamp_attr='recipient_approval_date',
    ),
    RECIPIENT_MANAGER_APPROVE: TransitionRule(
        RECIPIENT_MANAGER_APPROVE, frozenset({S.STATUS_PENDING_RECIPIENT_MANAGER}),
        role=ROLE_RECIPIENT_MANAGER, department_attr='recipient_id',
        stamp_attr='recipient_manager_approval_date',
    ),
    FINANCE_CONTROLLER_APPROVE: TransitionRule(
        FINANCE_CONTROLLER_APPROVE, frozenset({S.STATUS_PENDING_FINANCE_CONTROLLER}),
        role=ROLE_FINANCE_CONTROLLER, stamp_attr='finance_controller_approval_date',
    ),
    REJECT: TransitionRule(
        REJECT, frozenset(s for s in S.ALL_STATUSES if s not in S.TERMINAL_STATUSES),
    ),
}

TRANSFER_FSM = TransitionValidator({
    S.STATUS_DRAFT: {S.STATUS_PENDING_MANAGER, S.STATUS_REJECTED},
    S.STATUS_PENDING_MANAGER: {S.STATUS_PENDING_ACCOUNTANT, S.STATUS_REJECTED},
    S.STATUS_PENDING_ACCOUNTANT: {S.STATUS_PENDING_RECIPIENT, S.STATUS_PENDING_FINANCE_CONTROLLER, S.STATUS_REJECTED},
    S.STATUS_PENDING_RECIPIENT: {S.STATUS_PENDING_RECIPIENT_MANAGER, S.STATUS_REJECTED},
    S.STATUS_PENDING_RECIPIENT_MANAGER: {S.STATUS_PENDING_FINANCE_CONTROLLER, S.STATUS_REJECTED},
    S.STATUS_PENDING_FINANCE_CONTROLLER: {S.STATUS_APPROVED, S.STATUS_REJECTED},
    S.STATUS_APPROVED: set(),
    S.STATUS_REJECTED: set(),
})


def available_actions(status: str) -> List[str]:
    """Actions defined for status, forward action first; empty for terminal statuses."""
    forward = [a for a, r in RULES.items() if a != REJECT and status in r.sources]
    if status in RULES[REJECT].sources:
        forward.append(REJECT)
    return forward


def target_status(transfer: AssetTransfer, action: str) -> str:
    if action == SUBMIT:
        return S.STATUS_PENDING_MANAGER
    if action == MANAGER_APPROVE:
        return S.STATUS_PENDING_ACCOUNTANT
    if action == UPDATE_FINANCIAL_DETAILS:
        if transfer.transfer_kind == S.KIND_INTERCOMPANY:
            return S.STATUS_PENDING_RECIPIENT
        return S.STATUS_PENDING_FINANCE_CONTROLLER
    if action == RECIPIENT_APPROVE:
        return S.STATUS_PENDING_RECIPIENT_MANAGER
    if action == RECIPIENT_MANAGER_APPROVE:
        return S.STATUS_PENDING_FINANCE_CONTROLLER
    if action == FINANCE_CONTROLLER_APPROVE:
        return S.STATUS_APPROVED
    return S.STATUS_REJECTED


def apply(
    transfer: AssetTransfer,
    action: str,
    actor: Actor,
    *,
    cost=None,
    net_book_value=None,
    reason: Optional[str] = None,
    departments: Optional[Mapping[int, str]] = None,
    now: Optional[datetime] = None,
    expected_version: Optional[int] = None,
) -> AssetTransfer:
    """Move transfer forward by action on behalf of actor.

    departments maps user id -> department and switches on department scoping for
    the manager and recipient-manager stages; pass None to skip it.
    expected_version, when given, must equal transfer.version or ConflictError is raised.
    """
    rule = RULES.get(action)
    if rule is None:
        raise ValidationError(f'Unknown action {action}', action=action)
    assert_can_view(transfer, actor)
    if expected_version is not None and transfer.version != expected_version:
        logger.warning('transfer %s: stale version %s (current %s)', transfer.id, expected_version, transfer.version)
        raise ConflictError('Transfer version mismatch', expected=expected_version, current=transfer.version)
    current = transfer.status
    if current not in rule.sources:
        raise InvalidStateError(
            f'{action} is not allowed while transfer is {current}',
            current=current, action=action,
        )
    target = target_status(transfer, action)
    TRANSFER_FSM.assert_can_transition(current, target)
    authorize_action(rule, transfer, actor, departments)

    # payload checks, still before any write
    changes = {}
    if action == UPDATE_FINANCIAL_DETAILS:
        changes['cost'] = parse_money(cost, 'cost')
        changes['net_book_value'] = parse_money(net_book_value, 'net_book_value')
        if target == S.STATUS_PENDING_RECIPIENT and transfer.recipient_id is None:
            raise ValidationError('recipient_id required for intercompany transfers')
        changes['accountant_id'] = actor.user_id
    elif action == REJECT:
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError('reason required')
        changes['rejection_reason'] = reason
        changes['rejected_by_id'] = actor.user_id

    stamp = now or datetime.now(timezone.utc)
    if rule.stamp_attr:
        changes[rule.stamp_attr] = stamp
    for attr, value in changes.items():
        setattr(transfer, attr, value)
    transfer.status = target
    logger.info('transfer %s: %s -> %s by user %s', transfer.id, current, target, actor.user_id)
    return transfer


__all__ = [
    'SUBMIT', 'MANAGER_APPROVE', 'UPDATE_FINANCIAL_DETAILS', 'RECIPIENT_APPROVE',
    'RECIPIENT_MANAGER_APPROVE', 'FINANCE_CONTROLLER_APPROVE', 'REJECT',
    'TransitionRule', 'RULES', 'TRANSFER_FSM', 'available_actions', 'target_status', 'apply',
]
