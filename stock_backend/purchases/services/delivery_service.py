# purchases/services/delivery_service.py

"""
======================================================
PATH: purchases/services/delivery_service.py
======================================================
DELIVERY POSTING SERVICE

Posting flow (single transaction):
1) Lock the delivery and its period
2) Validate transition + period/location OPEN
3) Lock the PO and its lines; over-delivery?  -> PENDING_APPROVAL, notify, stop
4) Per line: WAC receipt, price-variance check (NCR when flagged)
5) Update PO delivered quantities, auto-close a fully delivered PO
6) Mark the delivery POSTED

Steps 3-5 read and write the same locked PO lines.

Approval of an over-delivery re-enters step 4 with the excess accepted.
Rejection is terminal and never touches stock.
Only DRAFT deliveries can be edited or deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from inventory.services.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StateTransitionError,
    ValidationError,
)
from inventory.services.money import (
    ZERO,
    quantize_cost,
    quantize_money,
    quantize_qty,
    require_non_negative,
    require_positive,
)
from inventory.services.numbering import next_document_number
from inventory.services.stock_ledger import receive_stock
from notifications.services.outbox import enqueue
from periods.models import Period
from periods.services.period_guard import assert_period_open_for_location
from periods.services.period_prices import price_map
from permissions.roles import is_approver
from purchases.models import Delivery, DeliveryLine, PurchaseOrder, PurchaseOrderLine
from purchases.services.delivery_lifecycle import validate_editable, validate_transition
from purchases.services.price_variance import (
    check_price_variance,
    create_price_variance_ncr,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverDeliveryLine:
    po_line_id: object
    item_id: object
    item_code: str
    ordered_qty: Decimal
    remaining_qty: Decimal
    delivered_qty: Decimal
    excess_qty: Decimal

    def to_dict(self) -> dict:
        return {
            "po_line_id": str(self.po_line_id),
            "item_id": str(self.item_id),
            "item_code": self.item_code,
            "ordered_qty": str(self.ordered_qty),
            "remaining_qty": str(self.remaining_qty),
            "delivered_qty": str(self.delivered_qty),
            "excess_qty": str(self.excess_qty),
        }


# ============================================================
# CREATE
# ============================================================


@transaction.atomic
def create_delivery(
    *,
    location,
    supplier,
    lines: list[dict],
    purchase_order: PurchaseOrder | None = None,
    invoice_no: str = "",
    delivery_date=None,
    user=None,
) -> Delivery:
    """
    Creates a DRAFT delivery in the OPEN period.

    Each line: {"item": Item, "quantity": ..., "unit_price": ..., "po_line": optional}
    """
    if not lines:
        raise ValidationError("A delivery needs at least one line", field="lines")

    period_location = assert_period_open_for_location(location=location)
    period = period_location.period

    if purchase_order is not None:
        if purchase_order.status != PurchaseOrder.STATUS_OPEN:
            raise ValidationError(
                f"Purchase order {purchase_order.po_no} is CLOSED", field="purchase_order"
            )
        if purchase_order.location_id != location.id:
            raise ValidationError(
                "Purchase order belongs to another location", field="purchase_order"
            )

    delivery = Delivery.objects.create(
        delivery_no=next_document_number(model=Delivery, field="delivery_no", prefix="DLV"),
        location=location,
        supplier=supplier,
        purchase_order=purchase_order,
        period=period,
        invoice_no=(invoice_no or "").strip(),
        delivery_date=delivery_date or timezone.localdate(),
        created_by=user,
    )

    _create_lines(delivery=delivery, lines=lines, purchase_order=purchase_order)
    return delivery


def _create_lines(*, delivery: Delivery, lines: list[dict], purchase_order) -> None:
    for idx, raw in enumerate(lines):
        if raw.get("item") is None:
            raise ValidationError(f"lines[{idx}].item is required", field="item")

    prices = price_map(period=delivery.period, item_ids={raw["item"].id for raw in lines})

    for idx, raw in enumerate(lines):
        item = raw["item"]
        po_line = raw.get("po_line")
        if po_line is not None and po_line.purchase_order_id != getattr(purchase_order, "id", None):
            raise ValidationError(
                f"lines[{idx}].po_line does not belong to the delivery's purchase order",
                field="po_line",
            )

        DeliveryLine.objects.create(
            delivery=delivery,
            item=item,
            po_line=po_line,
            quantity=quantize_qty(require_positive(raw.get("quantity"), field="quantity")),
            unit_price=quantize_cost(
                require_non_negative(raw.get("unit_price"), field="unit_price")
            ),
            period_price=prices.get(item.id),
        )


def _require_owner_or_approver(delivery: Delivery, user, action: str) -> None:
    if user is None or is_approver(user):
        return
    if delivery.created_by_id and delivery.created_by_id != user.pk:
        raise PermissionDeniedError(f"Only the creator or a supervisor can {action} this draft")


# ============================================================
# EDIT / DELETE (DRAFT only)
# ============================================================


@transaction.atomic
def update_delivery(
    *,
    delivery: Delivery,
    user=None,
    lines: list[dict] | None = None,
    invoice_no: str | None = None,
    delivery_date=None,
    supplier=None,
) -> Delivery:
    """
    Edits a DRAFT delivery. Omitted fields keep their value; `lines`
    replaces every line.
    """
    delivery, _ = _lock(delivery)
    validate_editable(delivery=delivery)
    _require_owner_or_approver(delivery, user, "edit")

    if invoice_no is not None:
        delivery.invoice_no = invoice_no.strip()
    if delivery_date is not None:
        delivery.delivery_date = delivery_date
    if supplier is not None:
        delivery.supplier = supplier
    delivery.save()

    if lines is not None:
        if not lines:
            raise ValidationError("A delivery needs at least one line", field="lines")
        delivery.lines.all().delete()
        _create_lines(delivery=delivery, lines=lines, purchase_order=delivery.purchase_order)

    logger.info("Delivery %s draft updated", delivery.delivery_no)
    return delivery


@transaction.atomic
def delete_delivery(*, delivery: Delivery, user=None) -> None:
    delivery, _ = _lock(delivery)
    validate_editable(delivery=delivery)
    _require_owner_or_approver(delivery, user, "delete")

    delivery_no = delivery.delivery_no
    delivery.delete()
    logger.info("Delivery %s draft deleted", delivery_no)


# ============================================================
# OVER-DELIVERY
# ============================================================


def _resolve_po_line(line: DeliveryLine, po_lines: list[PurchaseOrderLine]):
    if line.po_line_id:
        return next((p for p in po_lines if p.id == line.po_line_id), None)
    return next((p for p in po_lines if p.item_id == line.item_id), None)


def detect_over_delivery(
    delivery: Delivery, po_lines: list[PurchaseOrderLine] | None = None
) -> list[OverDeliveryLine]:
    """
    Lines whose quantity exceeds what remains on the PO. Lines already
    approved for over-delivery are accepted as-is. Items not on the PO at
    all are not over-deliveries.

    Posting passes the PO lines it holds locked; without them the check is
    a read-only preview.
    """
    if not delivery.purchase_order_id:
        return []

    if po_lines is None:
        po_lines = list(
            PurchaseOrderLine.objects.filter(purchase_order_id=delivery.purchase_order_id)
            .select_related("item")
        )

    delivered: dict = {}
    for line in delivery.lines.all():
        if line.over_delivery_approved:
            continue
        po_line = _resolve_po_line(line, po_lines)
        if po_line is None:
            continue
        delivered[po_line] = delivered.get(po_line, ZERO) + line.quantity

    flagged = []
    for po_line, qty in delivered.items():
        remaining = po_line.remaining_qty
        if qty > remaining:
            flagged.append(
                OverDeliveryLine(
                    po_line_id=po_line.id,
                    item_id=po_line.item_id,
                    item_code=po_line.item.code,
                    ordered_qty=po_line.quantity,
                    remaining_qty=remaining,
                    delivered_qty=qty,
                    excess_qty=qty - remaining,
                )
            )

    return sorted(flagged, key=lambda o: o.item_code)


# ============================================================
# POST
# ============================================================


def _lock(delivery: Delivery) -> tuple[Delivery, Period]:
    try:
        locked = Delivery.objects.select_for_update().get(pk=delivery.pk)
    except Delivery.DoesNotExist as exc:
        raise NotFoundError("Delivery not found") from exc

    period = Period.objects.select_for_update().get(pk=locked.period_id)
    return locked, period


def _lock_purchase_order(delivery: Delivery) -> tuple[PurchaseOrder | None, list[PurchaseOrderLine]]:
    if not delivery.purchase_order_id:
        return None, []

    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=delivery.purchase_order_id)
    po_lines = list(
        PurchaseOrderLine.objects.select_for_update()
        .filter(purchase_order_id=purchase_order.pk)
        .order_by("id")
    )
    return purchase_order, po_lines


def _apply_posting(
    *, delivery: Delivery, period: Period, po_lines: list[PurchaseOrderLine], user=None
) -> Delivery:
    lines = list(delivery.lines.select_related("item", "po_line").order_by("item__code", "id"))
    if not lines:
        raise ValidationError("Delivery has no lines", field="lines")

    prices = price_map(period=period, item_ids={line.item_id for line in lines})
    total = ZERO
    has_variance = False

    for line in lines:
        _, wac = receive_stock(
            location=delivery.location,
            item=line.item,
            quantity=line.quantity,
            unit_cost=line.unit_price,
        )
        line.wac_before = wac.previous_wac
        line.wac_after = wac.new_wac

        period_price = prices.get(line.item_id)
        line.period_price = period_price

        variance = None
        if period_price is not None:
            variance = check_price_variance(line.unit_price, period_price, line.quantity)
            line.price_variance = variance.variance

        line.save()

        if variance is not None and variance.exceeds_threshold:
            has_variance = True
            create_price_variance_ncr(delivery=delivery, line=line, result=variance, user=user)

        po_line = _resolve_po_line(line, po_lines)
        if po_line is not None:
            po_line.delivered_qty = quantize_qty(po_line.delivered_qty + line.quantity)
            po_line.save(update_fields=["delivered_qty"])

        total += line.line_value

    if delivery.purchase_order_id and po_lines and all(p.is_fully_delivered for p in po_lines):
        PurchaseOrder.objects.filter(
            pk=delivery.purchase_order_id, status=PurchaseOrder.STATUS_OPEN
        ).update(status=PurchaseOrder.STATUS_CLOSED, closed_at=timezone.now())
        logger.info("Purchase order %s fully delivered and closed", delivery.purchase_order_id)

    delivery.total_amount = quantize_money(total)
    delivery.has_variance = has_variance
    delivery.status = Delivery.STATUS_POSTED
    delivery.posted_at = timezone.now()
    delivery.save()

    logger.info(
        "Delivery %s posted at %s (%s)",
        delivery.delivery_no,
        delivery.location.code,
        delivery.total_amount,
    )
    return delivery


@transaction.atomic
def post_delivery(*, delivery: Delivery, user=None) -> Delivery:
    """
    Returns the delivery as POSTED, or as PENDING_APPROVAL when the PO was
    over-delivered (nothing posted in that case).
    """
    delivery, period = _lock(delivery)
    validate_transition(delivery=delivery, target_status=Delivery.STATUS_POSTED)
    if delivery.status != Delivery.STATUS_DRAFT:
        raise StateTransitionError(
            f"Delivery {delivery.delivery_no} is awaiting over-delivery approval "
            "and is posted through approval"
        )

    assert_period_open_for_location(location=delivery.location, period=period)

    purchase_order, po_lines = _lock_purchase_order(delivery)
    if purchase_order is not None and purchase_order.status != PurchaseOrder.STATUS_OPEN:
        raise ValidationError("Purchase order is CLOSED", field="purchase_order")

    over = detect_over_delivery(delivery, po_lines=po_lines)
    if over:
        validate_transition(delivery=delivery, target_status=Delivery.STATUS_PENDING_APPROVAL)
        delivery.status = Delivery.STATUS_PENDING_APPROVAL
        delivery.save()

        enqueue(
            event_type="delivery.over_delivery_flagged",
            aggregate_type="delivery",
            aggregate_id=delivery.id,
            payload={
                "reference": delivery.delivery_no,
                "location": delivery.location.code,
                "lines": [o.to_dict() for o in over],
            },
        )
        logger.warning(
            "Delivery %s exceeds PO quantities on %d line(s); awaiting approval",
            delivery.delivery_no,
            len(over),
        )
        return delivery

    return _apply_posting(delivery=delivery, period=period, po_lines=po_lines, user=user)


@transaction.atomic
def approve_over_delivery(*, delivery: Delivery, user) -> Delivery:
    if not is_approver(user):
        raise PermissionDeniedError("Only supervisors or admins can approve over-deliveries")

    delivery, period = _lock(delivery)
    validate_transition(delivery=delivery, target_status=Delivery.STATUS_POSTED)
    if delivery.status != Delivery.STATUS_PENDING_APPROVAL:
        raise StateTransitionError(f"Delivery {delivery.delivery_no} is not awaiting approval")

    assert_period_open_for_location(location=delivery.location, period=period)
    _, po_lines = _lock_purchase_order(delivery)

    delivery.lines.update(over_delivery_approved=True)
    delivery.approved_by = user
    delivery.approved_at = timezone.now()

    delivery = _apply_posting(delivery=delivery, period=period, po_lines=po_lines, user=user)

    enqueue(
        event_type="delivery.over_delivery_approved",
        aggregate_type="delivery",
        aggregate_id=delivery.id,
        payload={"reference": delivery.delivery_no, "approved_by": str(user)},
    )
    return delivery


@transaction.atomic
def reject_over_delivery(*, delivery: Delivery, user, reason: str) -> Delivery:
    if not is_approver(user):
        raise PermissionDeniedError("Only supervisors or admins can reject over-deliveries")
    if not (reason or "").strip():
        raise ValidationError("A rejection reason is required", field="reason")

    delivery, _ = _lock(delivery)
    validate_transition(delivery=delivery, target_status=Delivery.STATUS_REJECTED)

    delivery.status = Delivery.STATUS_REJECTED
    delivery.rejection_reason = reason.strip()
    delivery.approved_by = user
    delivery.approved_at = timezone.now()
    delivery.save()

    enqueue(
        event_type="delivery.over_delivery_rejected",
        aggregate_type="delivery",
        aggregate_id=delivery.id,
        payload={"reference": delivery.delivery_no, "reason": delivery.rejection_reason},
    )
    logger.info("Delivery %s over-delivery rejected", delivery.delivery_no)
    return delivery
