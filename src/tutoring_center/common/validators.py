from __future__ import annotations

from decimal import Decimal, InvalidOperation

from ..core.constants import MONEY_QUANTUM
from ..core.exceptions import ValidationError


def require_id(value, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if v <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return v


def require_month_year(month, year) -> tuple[int, int]:
    try:
        m = int(month)
        y = int(year)
    except (TypeError, ValueError):
        raise ValidationError("Month and year must be integers")
    if not 1 <= m <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not 2000 <= y <= 2100:
        raise ValidationError("Year must be between 2000 and 2100")
    return m, y


def to_money(value, field_name: str = "Amount") -> Decimal:
    """Convert user input into an exact 2-place Decimal.

    Floats go through `str` first so 0.1 stays 0.10 instead of its binary expansion.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} is invalid")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} is invalid")
    return amount.quantize(MONEY_QUANTUM)


def require_positive_money(value, field_name: str = "Amount") -> Decimal:
    amount = to_money(value, field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return amount


def require_non_negative_money(value, field_name: str = "Amount") -> Decimal:
    amount = to_money(value, field_name)
    if amount < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return amount
