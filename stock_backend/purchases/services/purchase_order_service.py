# purchases/services/purchase_order_service.py

"""
PURCHASE ORDERS

Orders are plain commitments: no stock moves until a delivery is posted.
Delivered quantities and auto-close are maintained by delivery_service.
"""

from __future__ import annotations

from django.db import transaction

from inventory.services.exceptions import ValidationError
from inventory.services.money import quantize_cost, quantize_qty, require_non_negative, require_positive
from inventory.services.numbering import next_document_number
from purchases.models import PurchaseOrder, PurchaseOrderLine


@transaction.atomic
def create_purchase_order(*, location, supplier, lines: list[dict], order_date=None, user=None) -> PurchaseOrder:
    """
    Each line: {"item": Item, "quantity": ..., "unit_price": ...}
    An item may appear only once per order.
    """
    if not lines:
        raise ValidationError("A purchase order needs at least one line", field="lines")

    seen = set()
    for idx, raw in enumerate(lines):
        item = raw.get("item")
        if item is None:
            raise ValidationError(f"lines[{idx}].item is required", field="item")
        if item.id in seen:
            raise ValidationError(f"Item {item.code} appears twice", field="lines")
        seen.add(item.id)

    kwargs = {}
    if order_date is not None:
        kwargs["order_date"] = order_date

    po = PurchaseOrder.objects.create(
        po_no=next_document_number(model=PurchaseOrder, field="po_no", prefix="PO"),
        supplier=supplier,
        location=location,
        created_by=user,
        **kwargs,
    )
    PurchaseOrderLine.objects.bulk_create(
        [
            PurchaseOrderLine(
                purchase_order=po,
                item=raw["item"],
                quantity=quantize_qty(require_positive(raw.get("quantity"), field="quantity")),
                unit_price=quantize_cost(
                    require_non_negative(raw.get("unit_price") or 0, field="unit_price")
                ),
            )
            for raw in lines
        ]
    )
    return po
