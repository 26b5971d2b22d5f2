# inventory/services/stock_ledger.py

"""
======================================================
PATH: inventory/services/stock_ledger.py
======================================================
LOCATION STOCK LEDGER (the ONLY writer of LocationStock)

Purpose:
- receive_stock(): inbound movement, recalculates WAC.
- deduct_stock(): outbound movement at current WAC, WAC unchanged.
- set_stock(): opening balances only.

Guarantees:
- Every mutation runs inside transaction.atomic with the (location, item)
  row locked via select_for_update().
- Sufficiency is re-checked on the LOCKED row; on_hand never goes negative.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import transaction

from inventory.models import LocationStock
from inventory.services.exceptions import InsufficientStockError
from inventory.services.money import (
    ZERO,
    quantize_cost,
    quantize_qty,
    require_non_negative,
)
from inventory.services.stock_validation import (
    check_stock_sufficiency,
    validate_positive_quantity,
)
from inventory.services.wac import WACResult, calculate_wac


def _locked_row(*, location, item) -> LocationStock | None:
    return (
        LocationStock.objects.select_for_update()
        .filter(location=location, item=item)
        .first()
    )


@transaction.atomic
def receive_stock(*, location, item, quantity, unit_cost) -> tuple[LocationStock, WACResult]:
    """
    Inbound: delivery lines and the destination leg of a transfer.
    """
    stock, _ = LocationStock.objects.select_for_update().get_or_create(
        location=location,
        item=item,
        defaults={"on_hand": ZERO, "wac": ZERO},
    )

    result = calculate_wac(stock.on_hand, stock.wac, quantity, unit_cost)

    stock.on_hand = result.new_quantity
    stock.wac = result.new_wac
    stock.save(update_fields=["on_hand", "wac", "updated_at"])
    return stock, result


@transaction.atomic
def deduct_stock(*, location, item, quantity) -> LocationStock:
    """
    Outbound: issues and the source leg of a transfer.
    """
    qty = validate_positive_quantity(quantity)
    stock = _locked_row(location=location, item=item)
    available = stock.on_hand if stock else ZERO

    result = check_stock_sufficiency(available, qty, item=item)
    if not result.is_valid:
        raise InsufficientStockError(
            location_id=location.id,
            location_name=location.name,
            items=[result],
        )

    stock.on_hand = quantize_qty(stock.on_hand - qty)
    stock.save(update_fields=["on_hand", "updated_at"])
    return stock


def current_wac(*, location, item) -> Decimal:
    wac = (
        LocationStock.objects.filter(location=location, item=item)
        .values_list("wac", flat=True)
        .first()
    )
    return wac if wac is not None else ZERO


def lock_location_stock(location_ids) -> list[LocationStock]:
    """
    Lock every stock row of the given locations (period close snapshot).
    Must be called inside transaction.atomic.
    """
    return list(
        LocationStock.objects.select_for_update()
        .filter(location_id__in=list(location_ids))
        .select_related("item")
        .order_by("location_id", "item__code")
    )


@transaction.atomic
def set_stock(*, location, item, quantity, wac) -> LocationStock:
    """
    Overwrite on-hand and WAC (opening balances, stock-take load).
    Not used by document posting.
    """
    qty = quantize_qty(require_non_negative(quantity, field="quantity"))
    cost = quantize_cost(require_non_negative(wac, field="wac"))

    stock, _ = LocationStock.objects.select_for_update().get_or_create(
        location=location,
        item=item,
        defaults={"on_hand": qty, "wac": cost},
    )
    stock.on_hand = qty
    stock.wac = cost
    stock.save(update_fields=["on_hand", "wac", "updated_at"])
    return stock
