from typing import Optional
from flask import Blueprint, request, abort, make_response
from flask_jwt_extended import jwt_required, get_jwt_identity
from asset_transfer.services import transfers as svc
from asset_transfer.services.audit import audit_json
from asset_transfer.utils.listing import build_list_payload

transfers_bp = Blueprint('transfers', __name__)


def _actor_id() -> int:
    return int(get_jwt_identity())


def _if_match_version() -> Optional[int]:
    raw = request.headers.get('If-Match')
    if not raw or raw.strip() == '*':
        return None
    tag = raw.strip()
    if tag.startswith('W/'):
        tag = tag[2:]
    try:
        return int(tag.strip('"'))
    except ValueError:
        abort(400, description='If-Match must carry a transfer version')


def _transfer_response(transfer, status: int = 200):
    resp = make_response(svc.transfer_json(transfer), status)
    resp.headers['ETag'] = f'"{transfer.version}"'
    return resp


@transfers_bp.get('/')
@jwt_required()
def list_transfers():
    rows, total, limit, offset = svc.list_transfers_for_user(
        _actor_id(), request.args.get('limit'), request.args.get('offset'),
    )
    return build_list_payload([svc.transfer_json(t) for t in rows], total, limit, offset)


@transfers_bp.post('/')
@jwt_required()
def create_transfer():
    data = request.json or {}
    fields = {k: data.get(k) for k in svc.REQUIRED_FIELDS}
    transfer = svc.create_transfer(
        _actor_id(),
        recipient_id=data.get('recipient_id'),
        transfer_kind=data.get('transfer_kind'),
        **fields,
    )
    return _transfer_response(transfer, 201)


@transfers_bp.get('/<int:transfer_id>')
@jwt_required()
def get_transfer(transfer_id: int):
    return _transfer_response(svc.get_transfer(transfer_id, _actor_id()))


@transfers_bp.get('/<int:transfer_id>/history')
@jwt_required()
def transfer_history(transfer_id: int):
    return {'data': [audit_json(e) for e in svc.history(transfer_id, _actor_id())]}


@transfers_bp.post('/<int:transfer_id>/submit')
@jwt_required()
def submit(transfer_id: int):
    return _transfer_response(svc.submit(transfer_id, _actor_id(), expected_version=_if_match_version()))


@transfers_bp.post('/<int:transfer_id>/manager-approve')
@jwt_required()
def manager_approve(transfer_id: int):
    return _transfer_response(svc.manager_approve(transfer_id, _actor_id(), expected_version=_if_match_version()))


@transfers_bp.post('/<int:transfer_id>/financial-details')
@jwt_required()
def financial_details(transfer_id: int):
    data = request.json or {}
    transfer = svc.update_financial_details(
        transfer_id, _actor_id(), data.get('cost'), data.get('net_book_value'),
        expected_version=_if_match_version(),
    )
    return _transfer_response(transfer)


@transfers_bp.post('/<int:transfer_id>/recipient-approve')
@jwt_required()
def recipient_approve(transfer_id: int):
    return _transfer_response(svc.recipient_approve(transfer_id, _actor_id(), expected_version=_if_match_version()))


@transfers_bp.post('/<int:transfer_id>/recipient-manager-approve')
@jwt_required()
def recipient_manager_approve(transfer_id: int):
    transfer = svc.recipient_manager_approve(transfer_id, _actor_id(), expected_version=_if_match_version())
    return _transfer_response(transfer)


@transfers_bp.post('/<int:transfer_id>/finance-controller-approve')
@jwt_required()
def finance_controller_approve(transfer_id: int):
    transfer = svc.finance_controller_approve(transfer_id, _actor_id(), expected_version=_if_match_version())
    return _transfer_response(transfer)


@transfers_bp.post('/<int:transfer_id>/reject')
@jwt_required()
def reject(transfer_id: int):
    data = request.json or {}
    transfer = svc.reject(transfer_id, _actor_id(), data.get('reason'), expected_version=_if_match_version())
    return _transfer_response(transfer)
