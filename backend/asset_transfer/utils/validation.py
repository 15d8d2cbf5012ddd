from __future__ import annotations
"""Reusable validation helpers for request payloads and domain values.

All helpers raise ValidationError (400) so services and routes share one error shape.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional
from asset_transfer.errors import ValidationError


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or raises ValidationError.
    """
    if new_status not in allowed:
        raise ValidationError(f"{field_name} invalid", **{field_name: new_status})
    return new_status


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if not str(data.get(f) or '').strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", missing=missing)


def parse_money(value: Any, field_name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    if amount < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return amount.quantize(Decimal('0.01'))


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be int")

__all__ = ['validate_status', 'require_fields', 'parse_money', 'optional_int']
