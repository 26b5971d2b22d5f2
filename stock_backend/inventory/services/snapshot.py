# inventory/services/snapshot.py

"""
STOCK VALUATION SNAPSHOT

value per item = quantity * wac, rounded to 2dp
total_value    = sum of the rounded item values

Used for the live closing figure of a reconciliation and for the frozen
snapshot written by the period close, so both agree to the cent.
"""

from __future__ import annotations

from decimal import Decimal

from inventory.models import LocationStock
from inventory.services.money import ZERO, quantize_money


def build_snapshot(rows) -> dict:
    items = []
    total = ZERO
    for row in rows:
        if row.on_hand <= ZERO:
            continue
        value = quantize_money(row.on_hand * row.wac)
        total += value
        items.append(
            {
                "item_id": str(row.item_id),
                "item_code": row.item.code,
                "item_name": row.item.name,
                "unit": row.item.unit,
                "quantity": str(row.on_hand),
                "wac": str(row.wac),
                "value": str(value),
            }
        )

    return {"items": items, "total_value": str(quantize_money(total))}


def current_stock_value(*, location) -> Decimal:
    rows = (
        LocationStock.objects.filter(location=location, on_hand__gt=0)
        .only("on_hand", "wac")
    )
    return quantize_money(sum((quantize_money(r.on_hand * r.wac) for r in rows), ZERO))
