# reconciliation/services/calculator.py

"""
======================================================
PATH: reconciliation/services/calculator.py
======================================================
RECONCILIATION CALCULATOR ("implied usage" method)

    total_adjustments = back_charges - credits - condemnations + adjustments
    consumption       = opening + receipts + transfers_in - transfers_out
                        - closing + total_adjustments

Consumption is DERIVED (what must have been used given what came in and
what is left), not measured. issues is reported alongside for comparison
but does not enter the formula.

Rules:
- opening / receipts / transfers / issues / closing: finite and >= 0.
- adjustment fields: finite, any sign.
- Any violation raises ValidationError(field); nothing partial is returned.
- Money outputs rounded to 2dp at return; intermediates stay unrounded.

Pure: no DB access. Where the numbers come from is the caller's concern
(see reconciliation_service).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from inventory.services.exceptions import ValidationError
from inventory.services.money import (
    ZERO,
    quantize_money,
    require_non_negative,
    require_positive,
    to_decimal,
)

STOCK_FIELDS = (
    "opening_stock",
    "receipts",
    "transfers_in",
    "transfers_out",
    "issues",
    "closing_stock",
)
ADJUSTMENT_FIELDS = (
    "back_charges",
    "credits",
    "condemnations",
    "adjustments",
)


@dataclass(frozen=True)
class ConsumptionInput:
    opening_stock: object = ZERO
    receipts: object = ZERO
    transfers_in: object = ZERO
    transfers_out: object = ZERO
    closing_stock: object = ZERO
    issues: object = ZERO
    back_charges: object = ZERO
    credits: object = ZERO
    condemnations: object = ZERO
    adjustments: object = ZERO


@dataclass(frozen=True)
class ConsumptionResult:
    consumption: Decimal
    total_adjustments: Decimal
    breakdown: dict = field(default_factory=dict)


@dataclass(frozen=True)
class MandayCostResult:
    manday_cost: Decimal
    consumption: Decimal
    total_mandays: Decimal


@dataclass(frozen=True)
class ReconciliationResult:
    consumption: ConsumptionResult
    manday: MandayCostResult | None


def _validated(data: ConsumptionInput) -> dict:
    values = {}
    for name in STOCK_FIELDS:
        values[name] = require_non_negative(getattr(data, name), field=name)
    for name in ADJUSTMENT_FIELDS:
        values[name] = to_decimal(getattr(data, name), field=name)
    return values


def validate_reconciliation_inputs(
    data: ConsumptionInput, total_mandays=None
) -> tuple[bool, list[str]]:
    """
    Collects every problem instead of stopping at the first one.
    """
    errors: list[str] = []
    for name in STOCK_FIELDS:
        try:
            require_non_negative(getattr(data, name), field=name)
        except ValidationError as exc:
            errors.append(str(exc))
    for name in ADJUSTMENT_FIELDS:
        try:
            to_decimal(getattr(data, name), field=name)
        except ValidationError as exc:
            errors.append(str(exc))
    if total_mandays is not None:
        try:
            require_positive(total_mandays, field="total_mandays")
        except ValidationError as exc:
            errors.append(str(exc))
    return (not errors), errors


def calculate_consumption(data: ConsumptionInput) -> ConsumptionResult:
    v = _validated(data)

    total_adjustments = (
        v["back_charges"] - v["credits"] - v["condemnations"] + v["adjustments"]
    )
    consumption = (
        v["opening_stock"]
        + v["receipts"]
        + v["transfers_in"]
        - v["transfers_out"]
        - v["closing_stock"]
        + total_adjustments
    )

    breakdown = {name: quantize_money(value) for name, value in v.items()}
    breakdown["total_adjustments"] = quantize_money(total_adjustments)
    breakdown["consumption"] = quantize_money(consumption)

    return ConsumptionResult(
        consumption=quantize_money(consumption),
        total_adjustments=quantize_money(total_adjustments),
        breakdown=breakdown,
    )


def calculate_manday_cost(consumption, total_mandays) -> MandayCostResult:
    value = to_decimal(consumption, field="consumption")
    mandays = require_positive(total_mandays, field="total_mandays")

    return MandayCostResult(
        manday_cost=quantize_money(value / mandays),
        consumption=quantize_money(value),
        total_mandays=mandays,
    )


def calculate_reconciliation(data: ConsumptionInput, total_mandays=None) -> ReconciliationResult:
    """
    Consumption plus manday cost. Omitting total_mandays skips the manday
    part; a supplied value must be > 0.
    """
    consumption = calculate_consumption(data)

    manday = None
    if total_mandays is not None:
        manday = calculate_manday_cost(consumption.consumption, total_mandays)

    return ReconciliationResult(consumption=consumption, manday=manday)
