# ncr/services/ncr_lifecycle.py

"""
NCR LIFECYCLE

    OPEN -> SENT -> CREDITED | REJECTED | RESOLVED
    OPEN ---------> CREDITED | REJECTED | RESOLVED

RESOLVED requires a financial_impact; no other status may carry one.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from inventory.services.exceptions import StateTransitionError, ValidationError
from inventory.services.money import quantize_money, require_non_negative
from inventory.services.numbering import next_document_number
from ncr.models import NCR
from notifications.services.outbox import enqueue

logger = logging.getLogger(__name__)

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    NCR.Status.CREDITED,
    NCR.Status.REJECTED,
    NCR.Status.RESOLVED,
}

ALLOWED_TRANSITIONS = {
    NCR.Status.OPEN: {
        NCR.Status.SENT,
        NCR.Status.CREDITED,
        NCR.Status.REJECTED,
        NCR.Status.RESOLVED,
    },
    NCR.Status.SENT: {
        NCR.Status.CREDITED,
        NCR.Status.REJECTED,
        NCR.Status.RESOLVED,
    },
}


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, ncr: NCR, target_status: str):
    if not can_transition(from_status=ncr.status, to_status=target_status):
        raise StateTransitionError(
            f"NCR {ncr.ncr_no} cannot transition from '{ncr.status}' to '{target_status}'"
        )


# ============================================================
# OPERATIONS
# ============================================================


def next_ncr_number() -> str:
    return next_document_number(model=NCR, field="ncr_no", prefix="NCR")


def notify_ncr_created(ncr: NCR) -> None:
    enqueue(
        event_type="ncr.created",
        aggregate_type="ncr",
        aggregate_id=ncr.id,
        payload={
            "reference": ncr.ncr_no,
            "type": ncr.type,
            "location": ncr.location.code,
            "value": str(ncr.value),
            "reason": ncr.reason,
        },
    )


@transaction.atomic
def create_manual_ncr(
    *,
    location,
    reason: str,
    value,
    quantity=None,
    delivery=None,
    delivery_line=None,
    user=None,
) -> NCR:
    if not (reason or "").strip():
        raise ValidationError("reason is required", field="reason")

    amount = quantize_money(require_non_negative(value, field="value"))
    if quantity is not None:
        quantity = require_non_negative(quantity, field="quantity")

    if delivery_line is not None and delivery is None:
        delivery = delivery_line.delivery

    ncr = NCR.objects.create(
        ncr_no=next_ncr_number(),
        location=location,
        type=NCR.NCRType.MANUAL,
        status=NCR.Status.OPEN,
        value=amount,
        quantity=quantity,
        reason=reason.strip(),
        delivery=delivery,
        delivery_line=delivery_line,
        auto_generated=False,
        created_by=user,
    )
    notify_ncr_created(ncr)

    logger.info("Manual NCR %s raised at %s for %s", ncr.ncr_no, location.code, amount)
    return ncr


@transaction.atomic
def update_ncr_status(
    *,
    ncr: NCR,
    status: str,
    financial_impact: str | None = None,
    resolution_notes: str | None = None,
) -> NCR:
    ncr = NCR.objects.select_for_update().get(pk=ncr.pk)
    validate_transition(ncr=ncr, target_status=status)

    if status == NCR.Status.RESOLVED:
        if financial_impact not in NCR.FinancialImpact.values:
            raise ValidationError(
                "financial_impact (CREDIT, LOSS or NONE) is required to resolve an NCR",
                field="financial_impact",
            )
    elif financial_impact:
        raise ValidationError(
            "financial_impact may only be set when status is RESOLVED",
            field="financial_impact",
        )

    ncr.status = status
    ncr.financial_impact = financial_impact if status == NCR.Status.RESOLVED else None
    if resolution_notes is not None:
        ncr.resolution_notes = resolution_notes
    if status in TERMINAL_STATES:
        ncr.resolved_at = timezone.now()

    ncr.save()

    logger.info("NCR %s moved to %s", ncr.ncr_no, status)
    return ncr
