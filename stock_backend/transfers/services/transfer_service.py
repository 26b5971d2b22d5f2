# transfers/services/transfer_service.py

"""
======================================================
PATH: transfers/services/transfer_service.py
======================================================
TRANSFER SERVICE

Approval (atomic, both legs or neither):
1) Lock the transfer and its period; period + both locations OPEN
2) Re-validate source stock under lock (stock may have moved since the request)
3) Source: deduct at its WAC (WAC unchanged)
4) Destination: receive through the WAC engine at the source WAC
5) Mark APPROVED

Any failure in 2-5 rolls back every row touched.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from inventory.services.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from inventory.services.money import ZERO, quantize_money, quantize_qty, require_positive
from inventory.services.numbering import next_document_number
from inventory.services.stock_ledger import current_wac, deduct_stock, receive_stock
from inventory.services.stock_validation import validate_and_raise_if_insufficient
from notifications.services.outbox import enqueue
from periods.models import Period
from periods.services.period_guard import assert_period_open_for_location
from permissions.roles import is_approver
from transfers.models import Transfer, TransferLine
from transfers.services.transfer_lifecycle import validate_transition

logger = logging.getLogger(__name__)


@transaction.atomic
def create_transfer(
    *,
    from_location,
    to_location,
    lines: list[dict],
    transfer_date=None,
    notes: str = "",
    user=None,
) -> Transfer:
    """
    Creates a DRAFT transfer in the OPEN period. Each line:
    {"item": Item, "quantity": ...}. wac_at_transfer is the source WAC now
    and is refreshed at approval.
    """
    if from_location.id == to_location.id:
        raise ValidationError("Source and destination must differ", field="to_location")
    if not lines:
        raise ValidationError("A transfer needs at least one line", field="lines")

    source = assert_period_open_for_location(location=from_location)
    assert_period_open_for_location(location=to_location, period=source.period)

    prepared = []
    for idx, raw in enumerate(lines):
        item = raw.get("item")
        if item is None:
            raise ValidationError(f"lines[{idx}].item is required", field="item")
        qty = quantize_qty(require_positive(raw.get("quantity"), field="quantity"))
        prepared.append({"item": item, "item_id": item.id, "quantity": qty})

    validate_and_raise_if_insufficient(from_location.id, prepared, lock=False)

    transfer = Transfer.objects.create(
        transfer_no=next_document_number(model=Transfer, field="transfer_no", prefix="TRF"),
        from_location=from_location,
        to_location=to_location,
        period=source.period,
        transfer_date=transfer_date or timezone.localdate(),
        notes=notes or "",
        requested_by=user,
    )

    total = ZERO
    for p in prepared:
        wac = current_wac(location=from_location, item=p["item"])
        value = quantize_money(p["quantity"] * wac)
        TransferLine.objects.create(
            transfer=transfer,
            item=p["item"],
            quantity=p["quantity"],
            wac_at_transfer=wac,
            line_value=value,
        )
        total += value

    transfer.total_value = quantize_money(total)
    transfer.save(update_fields=["total_value"])
    return transfer


def _lock(transfer: Transfer) -> Transfer:
    try:
        return Transfer.objects.select_for_update().get(pk=transfer.pk)
    except Transfer.DoesNotExist as exc:
        raise NotFoundError("Transfer not found") from exc


@transaction.atomic
def submit_transfer(*, transfer: Transfer, user=None) -> Transfer:
    transfer = _lock(transfer)
    validate_transition(transfer=transfer, target_status=Transfer.Status.PENDING_APPROVAL)

    transfer.status = Transfer.Status.PENDING_APPROVAL
    transfer.save(update_fields=["status"])

    enqueue(
        event_type="transfer.submitted",
        aggregate_type="transfer",
        aggregate_id=transfer.id,
        payload={
            "reference": transfer.transfer_no,
            "from": transfer.from_location.code,
            "to": transfer.to_location.code,
            "value": str(transfer.total_value),
        },
    )
    return transfer


@transaction.atomic
def approve_transfer(*, transfer: Transfer, user) -> Transfer:
    if not is_approver(user):
        raise PermissionDeniedError("Only supervisors or admins can approve transfers")

    transfer = _lock(transfer)
    validate_transition(transfer=transfer, target_status=Transfer.Status.APPROVED)

    period = Period.objects.select_for_update().get(pk=transfer.period_id)
    assert_period_open_for_location(location=transfer.from_location, period=period)
    assert_period_open_for_location(location=transfer.to_location, period=period)

    lines = list(transfer.lines.select_related("item").order_by("item__code", "id"))
    if not lines:
        raise ValidationError("Transfer has no lines", field="lines")

    validate_and_raise_if_insufficient(transfer.from_location_id, lines, lock=True)

    total = ZERO
    for line in lines:
        source = deduct_stock(
            location=transfer.from_location, item=line.item, quantity=line.quantity
        )
        receive_stock(
            location=transfer.to_location,
            item=line.item,
            quantity=line.quantity,
            unit_cost=source.wac,
        )

        line.wac_at_transfer = source.wac
        line.line_value = quantize_money(line.quantity * source.wac)
        line.save(update_fields=["wac_at_transfer", "line_value"])
        total += line.line_value

    transfer.total_value = quantize_money(total)
    transfer.status = Transfer.Status.APPROVED
    transfer.approved_by = user
    transfer.approval_date = timezone.now()
    transfer.save(update_fields=["total_value", "status", "approved_by", "approval_date"])

    enqueue(
        event_type="transfer.approved",
        aggregate_type="transfer",
        aggregate_id=transfer.id,
        payload={"reference": transfer.transfer_no, "value": str(transfer.total_value)},
    )
    logger.info(
        "Transfer %s approved: %s -> %s (%s)",
        transfer.transfer_no,
        transfer.from_location.code,
        transfer.to_location.code,
        transfer.total_value,
    )
    return transfer


@transaction.atomic
def reject_transfer(*, transfer: Transfer, user, reason: str) -> Transfer:
    if not is_approver(user):
        raise PermissionDeniedError("Only supervisors or admins can reject transfers")
    if not (reason or "").strip():
        raise ValidationError("A rejection reason is required", field="reason")

    transfer = _lock(transfer)
    validate_transition(transfer=transfer, target_status=Transfer.Status.REJECTED)

    transfer.status = Transfer.Status.REJECTED
    transfer.rejection_reason = reason.strip()
    transfer.approved_by = user
    transfer.approval_date = timezone.now()
    transfer.save(update_fields=["status", "rejection_reason", "approved_by", "approval_date"])

    enqueue(
        event_type="transfer.rejected",
        aggregate_type="transfer",
        aggregate_id=transfer.id,
        payload={"reference": transfer.transfer_no, "reason": transfer.rejection_reason},
    )
    logger.info("Transfer %s rejected", transfer.transfer_no)
    return transfer
