# inventory/services/wac.py

"""
======================================================
PATH: inventory/services/wac.py
======================================================
WEIGHTED AVERAGE COST ENGINE

    new_wac = (current_qty * current_wac + received_qty * receipt_price)
              / (current_qty + received_qty)

Guarantees:
- Pure: no DB access, no side effects.
- Zero stock on hand -> new_wac == receipt_price exactly.
- Rounded on output only: new_wac / new_quantity 4dp, values 2dp.
- new_value = new_quantity * unrounded new_wac (then 2dp).

Only receipts (deliveries, inbound transfers) move WAC. Issues and
outbound transfers leave it unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from inventory.services.exceptions import ValidationError
from inventory.services.money import (
    ZERO,
    quantize_cost,
    quantize_money,
    quantize_qty,
    require_non_negative,
    require_positive,
)


@dataclass(frozen=True)
class WACResult:
    new_wac: Decimal
    new_quantity: Decimal
    new_value: Decimal
    current_value: Decimal
    receipt_value: Decimal
    previous_wac: Decimal = ZERO


def _validated(current_qty, current_wac, received_qty, receipt_price):
    cq = require_non_negative(current_qty, field="current_quantity")
    cw = require_non_negative(current_wac, field="current_wac")
    rq = require_positive(received_qty, field="received_quantity")
    rp = require_non_negative(receipt_price, field="receipt_price")
    return cq, cw, rq, rp


def calculate_wac(current_qty, current_wac, received_qty, receipt_price) -> WACResult:
    cq, cw, rq, rp = _validated(current_qty, current_wac, received_qty, receipt_price)

    current_value = cq * cw
    receipt_value = rq * rp
    new_quantity = cq + rq

    if cq == ZERO:
        new_wac = rp
    else:
        new_wac = (current_value + receipt_value) / new_quantity

    return WACResult(
        new_wac=quantize_cost(new_wac),
        new_quantity=quantize_qty(new_quantity),
        new_value=quantize_money(new_quantity * new_wac),
        current_value=quantize_money(current_value),
        receipt_value=quantize_money(receipt_value),
        previous_wac=quantize_cost(cw),
    )


def preview_wac(current_qty, current_wac, received_qty, receipt_price) -> Decimal:
    """New WAC only (used by UI previews before a delivery is posted)."""
    return calculate_wac(current_qty, current_wac, received_qty, receipt_price).new_wac


def receipt_value_impact(current_qty, current_wac, received_qty, receipt_price) -> dict:
    """How much a receipt moves the unit cost, absolute and in percent."""
    result = calculate_wac(current_qty, current_wac, received_qty, receipt_price)
    old_wac = quantize_cost(current_wac)
    change = result.new_wac - old_wac

    if old_wac > ZERO:
        change_percent = quantize_money(change / old_wac * Decimal("100"))
    else:
        change_percent = ZERO

    return {
        "old_wac": old_wac,
        "new_wac": result.new_wac,
        "wac_change": quantize_cost(change),
        "wac_change_percent": change_percent,
        "value_added": result.receipt_value,
    }


def validate_wac_inputs(
    current_qty, current_wac, received_qty, receipt_price
) -> tuple[bool, str | None]:
    try:
        _validated(current_qty, current_wac, received_qty, receipt_price)
    except ValidationError as exc:
        return False, str(exc)
    return True, None
