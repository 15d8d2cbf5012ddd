"""Service-level lifecycle scenarios against the in-memory database."""
from decimal import Decimal
import pytest

from asset_transfer.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from asset_transfer.models.audit import AuditLog
from asset_transfer.models.transfer import AssetTransfer
from asset_transfer.services import transfers as svc
from asset_transfer.services.permissions import resolver
from tests.test_utils_seed import seed_cast, create_transfer, transfer_fields, ensure_user

S = AssetTransfer


@pytest.fixture()
def cast():
    return seed_cast()


def test_internal_transfer_skips_recipient_stages(cast):
    t = create_transfer(cast['requestor'])
    assert t.status == S.STATUS_DRAFT and t.version == 1
    assert t.transfer_kind == S.KIND_INTERNAL

    t = svc.submit(t.id, cast['requestor'].id)
    assert t.status == S.STATUS_PENDING_MANAGER
    t = svc.manager_approve(t.id, cast['manager'].id)
    assert t.status == S.STATUS_PENDING_ACCOUNTANT
    assert t.manager_approval_date is not None
    t = svc.update_financial_details(t.id, cast['accountant'].id, 100, 80)
    assert t.status == S.STATUS_PENDING_FINANCE_CONTROLLER
    assert t.cost == Decimal('100.00') and t.net_book_value == Decimal('80.00')
    assert t.recipient_approval_date is None and t.recipient_manager_approval_date is None
    t = svc.finance_controller_approve(t.id, cast['finance_controller'].id)
    assert t.status == S.STATUS_APPROVED
    assert t.finance_controller_approval_date is not None
    assert t.version == 5

    for call in (
        lambda: svc.submit(t.id, cast['requestor'].id),
        lambda: svc.finance_controller_approve(t.id, cast['finance_controller'].id),
        lambda: svc.reject(t.id, cast['admin'].id, 'too late'),
    ):
        with pytest.raises(InvalidStateError):
            call()


def test_intercompany_transfer_requires_recipient_stages(cast):
    t = create_transfer(cast['requestor'], intercompany=True, recipient=cast['recipient'])
    assert t.transfer_kind == S.KIND_INTERCOMPANY
    svc.submit(t.id, cast['requestor'].id)
    svc.manager_approve(t.id, cast['manager'].id)
    t = svc.update_financial_details(t.id, cast['accountant'].id, '2500.50', '1200')
    assert t.status == S.STATUS_PENDING_RECIPIENT

    with pytest.raises(InvalidStateError):
        svc.recipient_manager_approve(t.id, cast['recipient_manager'].id)
    with pytest.raises(InvalidStateError):
        svc.finance_controller_approve(t.id, cast['finance_controller'].id)

    t = svc.recipient_approve(t.id, cast['recipient'].id)
    assert t.status == S.STATUS_PENDING_RECIPIENT_MANAGER
    t = svc.recipient_manager_approve(t.id, cast['recipient_manager'].id)
    assert t.status == S.STATUS_PENDING_FINANCE_CONTROLLER
    t = svc.finance_controller_approve(t.id, cast['finance_controller'].id)
    assert t.status == S.STATUS_APPROVED
    assert all([t.manager_approval_date, t.accountant_sign_off_date, t.recipient_approval_date,
                t.recipient_manager_approval_date, t.finance_controller_approval_date])


def test_submit_by_someone_else_is_forbidden(cast):
    t = create_transfer(cast['requestor'])
    with pytest.raises(ForbiddenError):
        svc.submit(t.id, cast['manager'].id)
    assert svc.load_transfer(t.id).status == S.STATUS_DRAFT


@pytest.mark.parametrize('steps', [0, 1, 2, 3, 4, 5])
def test_reject_from_any_non_terminal_state(cast, steps):
    t = create_transfer(cast['requestor'], intercompany=True, recipient=cast['recipient'])
    advance = [
        lambda: svc.submit(t.id, cast['requestor'].id),
        lambda: svc.manager_approve(t.id, cast['manager'].id),
        lambda: svc.update_financial_details(t.id, cast['accountant'].id, 10, 5),
        lambda: svc.recipient_approve(t.id, cast['recipient'].id),
        lambda: svc.recipient_manager_approve(t.id, cast['recipient_manager'].id),
    ]
    for step in advance[:steps]:
        step()
    t = svc.reject(t.id, cast['finance_controller'].id, 'Asset is leased')
    assert t.status == S.STATUS_REJECTED
    assert t.rejection_reason == 'Asset is leased'
    assert t.rejected_by_id == cast['finance_controller'].id
    for call in (
        lambda: svc.submit(t.id, cast['requestor'].id),
        lambda: svc.manager_approve(t.id, cast['manager'].id),
        lambda: svc.update_financial_details(t.id, cast['accountant'].id, 1, 1),
        lambda: svc.recipient_approve(t.id, cast['recipient'].id),
        lambda: svc.recipient_manager_approve(t.id, cast['recipient_manager'].id),
        lambda: svc.finance_controller_approve(t.id, cast['finance_controller'].id),
    ):
        with pytest.raises(InvalidStateError):
            call()


def test_unknown_transfer_is_not_found(cast):
    with pytest.raises(NotFoundError):
        svc.submit(999, cast['requestor'].id)


def test_unknown_actor_is_not_found(cast):
    t = create_transfer(cast['requestor'])
    with pytest.raises(NotFoundError):
        svc.submit(t.id, 999)


def test_actor_without_visibility_gets_not_found(cast):
    stranger = ensure_user('sam', 'IT')
    t = create_transfer(cast['requestor'])
    with pytest.raises(NotFoundError):
        svc.get_transfer(t.id, stranger.id)
    with pytest.raises(NotFoundError):
        svc.reject(t.id, stranger.id, 'nope')
    assert svc.get_transfer(t.id, cast['requestor'].id).status == S.STATUS_DRAFT


def test_approvals_do_not_depend_on_role_permissions(cast):
    for role in ('Manager', 'Accountant', 'FinanceController'):
        left = resolver.remove_permissions_from_role(role, resolver.permissions_for_role(role))
        assert left == frozenset()
    t = create_transfer(cast['requestor'])
    svc.submit(t.id, cast['requestor'].id)
    t = svc.manager_approve(t.id, cast['manager'].id)
    assert t.status == S.STATUS_PENDING_ACCOUNTANT
    t = svc.update_financial_details(t.id, cast['accountant'].id, 100, 80)
    assert t.status == S.STATUS_PENDING_FINANCE_CONTROLLER
    assert svc.get_transfer(t.id, cast['finance_controller'].id).id == t.id
    t = svc.finance_controller_approve(t.id, cast['finance_controller'].id)
    assert t.status == S.STATUS_APPROVED


def test_stripped_manager_can_still_reject(cast):
    resolver.remove_permissions_from_role('Manager', ['ViewAssets', 'ApproveManager'])
    t = create_transfer(cast['requestor'])
    svc.submit(t.id, cast['requestor'].id)
    t = svc.reject(t.id, cast['manager'].id, 'Not budgeted')
    assert t.status == S.STATUS_REJECTED
    assert t.rejected_by_id == cast['manager'].id


def test_creation_requires_requestor_role(cast):
    with pytest.raises(ForbiddenError):
        create_transfer(cast['manager'])
    assert svc.can_user_submit_request(cast['requestor'].id)
    assert svc.can_user_submit_request(cast['admin'].id)
    assert not svc.can_user_submit_request(cast['manager'].id)
    assert not svc.can_user_submit_request(12345)


def test_creation_validates_fields(cast):
    fields = transfer_fields()
    del fields['asset_tag_number']
    fields['justification'] = '  '
    with pytest.raises(ValidationError) as exc:
        svc.create_transfer(cast['requestor'].id, **fields)
    assert exc.value.context['missing'] == ['asset_tag_number', 'justification']
    with pytest.raises(ValidationError):
        svc.create_transfer(cast['requestor'].id, recipient_id=4242, **transfer_fields())
    with pytest.raises(ValidationError):
        svc.create_transfer(cast['requestor'].id, transfer_kind='EXTERNAL', **transfer_fields())


def test_explicit_kind_overrides_purpose(cast):
    t = svc.create_transfer(
        cast['requestor'].id, transfer_kind=S.KIND_INTERCOMPANY, recipient_id=cast['recipient'].id,
        **transfer_fields('Move to subsidiary'),
    )
    assert t.transfer_kind == S.KIND_INTERCOMPANY


def test_intercompany_without_recipient_fails_at_accountant_stage(cast):
    t = create_transfer(cast['requestor'], intercompany=True)
    svc.submit(t.id, cast['requestor'].id)
    svc.manager_approve(t.id, cast['manager'].id)
    with pytest.raises(ValidationError):
        svc.update_financial_details(t.id, cast['accountant'].id, 10, 5)
    assert svc.load_transfer(t.id).status == S.STATUS_PENDING_ACCOUNTANT


def test_department_scope(cast, department_scope):
    outsider_manager = ensure_user('max', 'Sales', ['Manager'])
    t = create_transfer(cast['requestor'], intercompany=True, recipient=cast['recipient'])
    svc.submit(t.id, cast['requestor'].id)
    with pytest.raises(ForbiddenError):
        svc.manager_approve(t.id, outsider_manager.id)
    svc.manager_approve(t.id, cast['manager'].id)
    svc.update_financial_details(t.id, cast['accountant'].id, 10, 5)
    svc.recipient_approve(t.id, cast['recipient'].id)
    other_rm = ensure_user('ruth', 'Logistics', ['RecipientManager'])
    with pytest.raises(ForbiddenError):
        svc.recipient_manager_approve(t.id, other_rm.id)
    t = svc.recipient_manager_approve(t.id, cast['recipient_manager'].id)
    assert t.status == S.STATUS_PENDING_FINANCE_CONTROLLER


def test_transitions_are_audited(cast):
    t = create_transfer(cast['requestor'])
    svc.submit(t.id, cast['requestor'].id)
    svc.reject(t.id, cast['manager'].id, 'Duplicate request')
    entries = svc.history(t.id, cast['requestor'].id)
    assert [e.action for e in entries] == ['TRANSFER.CREATE', 'TRANSFER.SUBMIT', 'TRANSFER.REJECT']
    assert entries[1].meta == {'from': S.STATUS_DRAFT, 'to': S.STATUS_PENDING_MANAGER}
    assert entries[2].meta['reason'] == 'Duplicate request'
    assert entries[2].roles_snapshot == {'roles': ['Manager']}
    assert all(isinstance(e, AuditLog) for e in entries)


def test_failed_transition_writes_no_audit(cast):
    t = create_transfer(cast['requestor'])
    with pytest.raises(ForbiddenError):
        svc.submit(t.id, cast['manager'].id)
    assert [e.action for e in svc.history(t.id, cast['requestor'].id)] == ['TRANSFER.CREATE']


def test_listing_is_union_of_work_queues(cast):
    a = create_transfer(cast['requestor'])
    b = create_transfer(cast['requestor'])
    svc.submit(b.id, cast['requestor'].id)
    c = create_transfer(cast['requestor'], intercompany=True, recipient=cast['recipient'])
    svc.submit(c.id, cast['requestor'].id)
    svc.manager_approve(c.id, cast['manager'].id)
    svc.update_financial_details(c.id, cast['accountant'].id, 1, 1)

    def ids(user):
        rows, total, _, _ = svc.list_transfers_for_user(user.id)
        assert total == len(rows)
        return [t.id for t in rows]

    assert ids(cast['requestor']) == [a.id, b.id, c.id]
    assert ids(cast['admin']) == [a.id, b.id, c.id]
    assert ids(cast['manager']) == [b.id]
    assert ids(cast['accountant']) == []
    assert ids(cast['recipient']) == [c.id]
    assert ids(cast['finance_controller']) == []

    other_manager = ensure_user('max', 'Sales', ['Manager'])
    assert ids(other_manager) == []


def test_listing_pagination(cast):
    for _ in range(3):
        create_transfer(cast['requestor'])
    rows, total, limit, offset = svc.list_transfers_for_user(cast['requestor'].id, limit=2, offset=1)
    assert total == 3 and limit == 2 and offset == 1
    assert len(rows) == 2
