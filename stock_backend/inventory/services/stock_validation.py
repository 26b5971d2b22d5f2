# inventory/services/stock_validation.py

"""
======================================================
PATH: inventory/services/stock_validation.py
======================================================
STOCK SUFFICIENCY VALIDATOR

Purpose:
- Answer "can this location give out this much?" for one or many items.
- Report ALL insufficient lines at once (bulk), never just the first.

Rules:
- A missing LocationStock row means 0 available.
- The same item listed twice in one request is checked on its total.
- When lock=True the stock rows are read with select_for_update(); callers
  that mutate stock MUST run this inside the same transaction.atomic block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from inventory.models import Item, Location, LocationStock
from inventory.services.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from inventory.services.money import ZERO, require_positive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockValidationResult:
    is_valid: bool
    item_id: object
    item_code: str
    item_name: str
    unit: str
    requested_quantity: Decimal
    available_quantity: Decimal
    shortfall: Decimal | None = None


def validate_positive_quantity(quantity, *, field: str = "quantity") -> Decimal:
    return require_positive(quantity, field=field)


def _item_attr(item, name: str, default=""):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def check_stock_sufficiency(available, requested, *, item) -> StockValidationResult:
    """
    Pure comparison of a requested quantity against what is available.
    """
    available = Decimal(str(available if available is not None else ZERO))
    requested = validate_positive_quantity(requested)

    is_valid = available >= requested
    item_id = _item_attr(item, "id", None)
    if item_id is None:
        item_id = _item_attr(item, "item_id", None)

    return StockValidationResult(
        is_valid=is_valid,
        item_id=item_id,
        item_code=_item_attr(item, "code"),
        item_name=_item_attr(item, "name"),
        unit=_item_attr(item, "unit"),
        requested_quantity=requested,
        available_quantity=available,
        shortfall=None if is_valid else requested - available,
    )


def _line_value(line, name: str):
    if isinstance(line, dict):
        return line.get(name)
    return getattr(line, name, None)


def _aggregate_lines(lines) -> dict:
    """
    {item_id: total_quantity} in first-seen order.
    """
    totals: dict = {}
    for idx, line in enumerate(lines or []):
        item_id = _line_value(line, "item_id")
        if item_id is None:
            raise ValidationError(f"lines[{idx}].item_id is required", field="item_id")
        qty = validate_positive_quantity(
            _line_value(line, "quantity"), field=f"lines[{idx}].quantity"
        )
        totals[item_id] = totals.get(item_id, ZERO) + qty

    if not totals:
        raise ValidationError("At least one line is required", field="lines")
    return totals


def _stock_map(location_id, item_ids, *, lock: bool) -> dict:
    qs = LocationStock.objects.filter(location_id=location_id, item_id__in=item_ids)
    if lock:
        qs = qs.select_for_update().order_by("item_id")
    return {row.item_id: row.on_hand for row in qs}


def get_current_stock_level(location_id, item_id, *, lock: bool = False) -> Decimal:
    qs = LocationStock.objects.filter(location_id=location_id, item_id=item_id)
    if lock:
        qs = qs.select_for_update()
    on_hand = qs.values_list("on_hand", flat=True).first()
    return on_hand if on_hand is not None else ZERO


def has_stock(location_id, item_id, quantity) -> bool:
    return get_current_stock_level(location_id, item_id) >= validate_positive_quantity(
        quantity
    )


def validate_sufficient_stock(location_id, item_id, quantity) -> StockValidationResult:
    item = Item.objects.filter(id=item_id).first()
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")

    available = get_current_stock_level(location_id, item_id)
    return check_stock_sufficiency(available, quantity, item=item)


def validate_sufficient_stock_bulk(
    location_id, lines, *, lock: bool = False
) -> list[StockValidationResult]:
    totals = _aggregate_lines(lines)
    item_ids = list(totals.keys())

    items = Item.objects.in_bulk(item_ids)
    missing = [str(i) for i in item_ids if i not in items]
    if missing:
        raise NotFoundError(f"Items not found: {', '.join(missing)}")

    stock = _stock_map(location_id, item_ids, lock=lock)

    return [
        check_stock_sufficiency(stock.get(item_id, ZERO), qty, item=items[item_id])
        for item_id, qty in totals.items()
    ]


def validate_and_raise_if_insufficient(
    location_id, lines, *, lock: bool = True
) -> list[StockValidationResult]:
    """
    Bulk validation that raises InsufficientStockError listing every
    insufficient item. Returns the (all valid) results otherwise.
    """
    location = Location.objects.filter(id=location_id).first()
    if location is None:
        raise NotFoundError(f"Location {location_id} not found")

    results = validate_sufficient_stock_bulk(location_id, lines, lock=lock)
    insufficient = [r for r in results if not r.is_valid]

    if insufficient:
        logger.warning(
            "Insufficient stock at %s for %s item(s): %s",
            location.code,
            len(insufficient),
            ", ".join(r.item_code for r in insufficient),
        )
        raise InsufficientStockError(
            location_id=location.id,
            location_name=location.name,
            items=insufficient,
        )

    return results
