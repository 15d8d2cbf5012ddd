from __future__ import annotations
from typing import Any, Optional, Tuple
from flask import current_app, has_app_context
from sqlalchemy import Select, func, select
from asset_transfer.errors import ValidationError

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _limits() -> Tuple[int, int]:
    if has_app_context():
        cfg = current_app.config
        return int(cfg.get('DEFAULT_PAGE_LIMIT', DEFAULT_LIMIT)), int(cfg.get('MAX_PAGE_LIMIT', MAX_LIMIT))
    return DEFAULT_LIMIT, MAX_LIMIT


def normalize_pagination(limit_raw: Any = None, offset_raw: Any = None) -> Tuple[int, int]:
    default_limit, max_limit = _limits()
    try:
        limit = int(limit_raw) if limit_raw not in (None, '') else default_limit
        offset = int(offset_raw) if offset_raw not in (None, '') else 0
    except (TypeError, ValueError):
        raise ValidationError('limit/offset must be int')
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset


def paginate(session, stmt: Select, limit: Optional[int] = None, offset: Optional[int] = None):
    """Run stmt with limit/offset applied; returns (rows, total, limit, offset)."""
    limit, offset = normalize_pagination(limit, offset)
    total = session.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = session.execute(stmt.offset(offset).limit(limit)).scalars().all()
    return rows, total, limit, offset


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }
