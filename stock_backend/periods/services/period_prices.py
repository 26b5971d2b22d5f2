# periods/services/period_prices.py

"""
PERIOD PRICES

Expected item prices per period. Editable while the period is DRAFT only.
"""

from __future__ import annotations

from django.db import transaction

from inventory.services.exceptions import PeriodConflictError
from inventory.services.money import quantize_cost, require_non_negative
from periods.models import ItemPrice, Period


def _require_draft(period: Period) -> None:
    if period.status != Period.Status.DRAFT:
        raise PeriodConflictError(
            f"Prices for period {period.name} are locked (status {period.status})"
        )


@transaction.atomic
def set_item_price(*, period: Period, item, price) -> ItemPrice:
    _require_draft(period)
    value = quantize_cost(require_non_negative(price, field="price"))

    obj, _ = ItemPrice.objects.update_or_create(
        period=period, item=item, defaults={"price": value}
    )
    return obj


@transaction.atomic
def copy_prices(*, source: Period, target: Period) -> int:
    _require_draft(target)

    copied = 0
    for row in ItemPrice.objects.filter(period=source).select_related("item"):
        ItemPrice.objects.update_or_create(
            period=target, item=row.item, defaults={"price": row.price}
        )
        copied += 1
    return copied


def price_map(*, period: Period, item_ids) -> dict:
    """{item_id: locked price} for the given items; unpriced items are absent."""
    return dict(
        ItemPrice.objects.filter(period=period, item_id__in=list(item_ids)).values_list(
            "item_id", "price"
        )
    )
