# inventory/services/money.py

"""
======================================================
PATH: inventory/services/money.py
======================================================
DECIMAL ARITHMETIC LAYER

Purpose:
- One place that turns user / DB input into Decimal.
- One place that owns rounding (ROUND_HALF_UP).

Rules:
- Money totals: 2dp.
- Unit costs (WAC, prices) and quantities: 4dp.
- Round at OUTPUT only; intermediate results stay unrounded.
- Binary floats are converted through str() and never stored.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from inventory.services.exceptions import ValidationError

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value, *, field: str = "value") -> Decimal:
    if value is None or value == "" or value == "null":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)

    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise ValidationError(f"{field} must be a valid number", field=field) from exc

    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return d


def to_decimal_or_zero(value, *, field: str = "value") -> Decimal:
    if value is None or value == "":
        return ZERO
    return to_decimal(value, field=field)


def quantize_money(value) -> Decimal:
    return Decimal(str(value or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def quantize_cost(value) -> Decimal:
    return Decimal(str(value or "0")).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def quantize_qty(value) -> Decimal:
    return Decimal(str(value or "0")).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def require_non_negative(value, *, field: str) -> Decimal:
    d = to_decimal(value, field=field)
    if d < ZERO:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return d


def require_positive(value, *, field: str) -> Decimal:
    d = to_decimal(value, field=field)
    if d <= ZERO:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return d
