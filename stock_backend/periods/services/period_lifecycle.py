# periods/services/period_lifecycle.py

"""
======================================================
PATH: periods/services/period_lifecycle.py
======================================================
PERIOD LIFECYCLE + ATOMIC CLOSE ORCHESTRATOR

    DRAFT -> OPEN -> PENDING_CLOSE -> CLOSED       (linear, CLOSED terminal)

Rules:
- open_period(): only one OPEN period (row lock + partial unique constraint).
  Opening locks the period prices.
- request_close(): enforced preconditions, not advisory. Any DRAFT or
  awaiting-approval document, or a location not READY, blocks. OPEN NCRs
  are warnings only.
- execute_close(): every location of the period in ONE transaction.
  Snapshot, final reconciliation, PeriodLocation CLOSED, next-period opening
  values, period CLOSED. Any failure rolls everything back and raises
  PartialCloseError; the period stays PENDING_CLOSE.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from inventory.models import Location
from inventory.services.exceptions import (
    CloseNotReadyError,
    EngineError,
    NotFoundError,
    PartialCloseError,
    PeriodConflictError,
    StateTransitionError,
    ValidationError,
)
from inventory.services.money import ZERO, quantize_money
from inventory.services.snapshot import build_snapshot, current_stock_value
from inventory.services.stock_ledger import lock_location_stock
from issues.models import Issue
from ncr.services.ncr_summary import get_open_ncrs_for_period
from notifications.services.outbox import enqueue
from periods.models import Period, PeriodLocation
from purchases.models import Delivery
from reconciliation.models import Reconciliation
from reconciliation.services.reconciliation_service import finalize_reconciliation
from transfers.models import Transfer

logger = logging.getLogger(__name__)

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Period.Status.CLOSED,
}

ALLOWED_TRANSITIONS = {
    Period.Status.DRAFT: {Period.Status.OPEN},
    Period.Status.OPEN: {Period.Status.PENDING_CLOSE},
    Period.Status.PENDING_CLOSE: {Period.Status.CLOSED},
}


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, period: Period, target_status: str):
    if not can_transition(from_status=period.status, to_status=target_status):
        raise StateTransitionError(
            f"Period {period.name} cannot transition from '{period.status}' to '{target_status}'"
        )


# ============================================================
# RESULT TYPES
# ============================================================


@dataclass(frozen=True)
class BlockingItem:
    kind: str
    id: object
    reference: str
    status: str
    location_code: str = ""
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "id": str(self.id),
            "reference": self.reference,
            "status": self.status,
            "location_code": self.location_code,
            "message": self.message,
        }


@dataclass(frozen=True)
class CloseReadiness:
    is_ready: bool
    blocking_items: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_ready": self.is_ready,
            "blocking_items": [b.to_dict() for b in self.blocking_items],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class CloseResult:
    period: Period
    locations_closed: int
    total_closing_value: Decimal
    next_period: Period | None = None


# ============================================================
# HELPERS
# ============================================================


def _lock_period(period) -> Period:
    try:
        return Period.objects.select_for_update().get(pk=period.pk)
    except Period.DoesNotExist as exc:
        raise NotFoundError("Period not found") from exc


def _overlapping(*, start_date, end_date, exclude_id=None):
    qs = Period.objects.filter(start_date__lte=end_date, end_date__gte=start_date)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs


def _previous_closed_period(start_date) -> Period | None:
    return (
        Period.objects.filter(status=Period.Status.CLOSED, end_date__lt=start_date)
        .order_by("-end_date")
        .first()
    )


def _next_draft_period(period: Period) -> Period | None:
    return (
        Period.objects.filter(status=Period.Status.DRAFT, start_date__gt=period.end_date)
        .order_by("start_date")
        .first()
    )


# ============================================================
# CREATE / OPEN
# ============================================================


@transaction.atomic
def create_period(*, name: str, start_date, end_date, locations=None) -> Period:
    """
    New DRAFT period with one PeriodLocation per location (all active ones
    by default). Opening values come from the previous closed period, or
    from the live stock value for a location that was never closed.
    """
    if not (name or "").strip():
        raise ValidationError("name is required", field="name")
    if not start_date or not end_date:
        raise ValidationError("start_date and end_date are required", field="start_date")
    if end_date < start_date:
        raise ValidationError("end_date must be on or after start_date", field="end_date")

    if _overlapping(start_date=start_date, end_date=end_date).exists():
        raise PeriodConflictError("Period dates overlap an existing period")

    if locations is None:
        locations = list(Location.objects.filter(is_active=True).order_by("code"))

    period = Period.objects.create(
        name=name.strip(), start_date=start_date, end_date=end_date
    )

    previous = _previous_closed_period(start_date)
    closing = {}
    if previous is not None:
        closing = dict(
            PeriodLocation.objects.filter(period=previous).values_list(
                "location_id", "closing_value"
            )
        )

    PeriodLocation.objects.bulk_create(
        [
            PeriodLocation(
                period=period,
                location=location,
                opening_value=(
                    closing[location.id]
                    if closing.get(location.id) is not None
                    else current_stock_value(location=location)
                ),
            )
            for location in locations
        ]
    )

    logger.info("Period %s created with %d location(s)", period.name, len(locations))
    return period


@transaction.atomic
def open_period(*, period: Period, user=None) -> Period:
    period = _lock_period(period)
    validate_transition(period=period, target_status=Period.Status.OPEN)

    other = (
        Period.objects.select_for_update()
        .filter(status=Period.Status.OPEN)
        .exclude(pk=period.pk)
        .first()
    )
    if other is not None:
        raise PeriodConflictError(
            f"Period {other.name} is already OPEN; close it before opening {period.name}"
        )

    if not PeriodLocation.objects.filter(period=period).exists():
        raise ValidationError("Period has no locations", field="locations")

    period.status = Period.Status.OPEN
    period.opened_at = timezone.now()
    try:
        with transaction.atomic():
            period.save(update_fields=["status", "opened_at"])
    except IntegrityError as exc:
        raise PeriodConflictError("Another period is already OPEN") from exc

    logger.info("Period %s opened; prices locked", period.name)
    return period


# ============================================================
# LOCATION READINESS
# ============================================================


def _lock_period_location(*, period, location) -> PeriodLocation:
    period_location = (
        PeriodLocation.objects.select_for_update()
        .filter(period=period, location=location)
        .first()
    )
    if period_location is None:
        raise NotFoundError(f"Location {location.code} is not part of period {period.name}")
    return period_location


@transaction.atomic
def mark_location_ready(*, period: Period, location, user=None) -> PeriodLocation:
    period = _lock_period(period)
    if period.status != Period.Status.OPEN:
        raise PeriodConflictError(f"Period {period.name} is {period.status}")

    period_location = _lock_period_location(period=period, location=location)
    if period_location.status == PeriodLocation.Status.READY:
        return period_location
    if period_location.status == PeriodLocation.Status.CLOSED:
        raise PeriodConflictError(f"Location {location.code} is already CLOSED")

    if not Reconciliation.objects.filter(period=period, location=location).exists():
        raise ValidationError(
            f"Save the reconciliation for {location.code} before marking it ready",
            field="reconciliation",
        )

    period_location.status = PeriodLocation.Status.READY
    period_location.ready_at = timezone.now()
    period_location.ready_by = user
    period_location.save(update_fields=["status", "ready_at", "ready_by"])

    logger.info("Location %s marked READY for %s", location.code, period.name)
    return period_location


@transaction.atomic
def mark_location_unready(*, period: Period, location, user=None) -> PeriodLocation:
    period = _lock_period(period)
    if period.status != Period.Status.OPEN:
        raise PeriodConflictError(f"Period {period.name} is {period.status}")

    period_location = _lock_period_location(period=period, location=location)
    if period_location.status != PeriodLocation.Status.READY:
        raise StateTransitionError(
            f"Location {location.code} is {period_location.status}, not READY"
        )

    period_location.status = PeriodLocation.Status.OPEN
    period_location.ready_at = None
    period_location.ready_by = None
    period_location.save(update_fields=["status", "ready_at", "ready_by"])
    return period_location


# ============================================================
# CLOSE READINESS
# ============================================================


def get_close_readiness(period: Period) -> CloseReadiness:
    """
    Read-only. Same database state, same answer, same order.
    """
    blocking: list[BlockingItem] = []

    deliveries = (
        Delivery.objects.filter(
            period=period,
            status__in=[Delivery.STATUS_DRAFT, Delivery.STATUS_PENDING_APPROVAL],
        )
        .select_related("location")
        .order_by("delivery_no")
    )
    for d in deliveries:
        blocking.append(
            BlockingItem(
                kind="delivery",
                id=d.id,
                reference=d.delivery_no,
                status=d.status,
                location_code=d.location.code,
                message=f"Delivery {d.delivery_no} is {d.status}",
            )
        )

    issues = (
        Issue.objects.filter(period=period, status=Issue.Status.DRAFT)
        .select_related("location")
        .order_by("issue_no")
    )
    for i in issues:
        blocking.append(
            BlockingItem(
                kind="issue",
                id=i.id,
                reference=i.issue_no,
                status=i.status,
                location_code=i.location.code,
                message=f"Issue {i.issue_no} is DRAFT",
            )
        )

    transfers = (
        Transfer.objects.filter(
            period=period,
            status__in=[Transfer.Status.DRAFT, Transfer.Status.PENDING_APPROVAL],
        )
        .select_related("from_location")
        .order_by("transfer_no")
    )
    for t in transfers:
        blocking.append(
            BlockingItem(
                kind="transfer",
                id=t.id,
                reference=t.transfer_no,
                status=t.status,
                location_code=t.from_location.code,
                message=f"Transfer {t.transfer_no} is {t.status}",
            )
        )

    period_locations = list(
        PeriodLocation.objects.filter(period=period)
        .select_related("location")
        .order_by("location__code")
    )
    for pl in period_locations:
        if pl.status == PeriodLocation.Status.OPEN:
            blocking.append(
                BlockingItem(
                    kind="location",
                    id=pl.location_id,
                    reference=pl.location.code,
                    status=pl.status,
                    location_code=pl.location.code,
                    message=f"Location {pl.location.code} is not marked READY",
                )
            )

    warnings: list[BlockingItem] = []
    for pl in period_locations:
        for ncr in get_open_ncrs_for_period(period=period, location=pl.location).ncrs:
            warnings.append(
                BlockingItem(
                    kind="ncr",
                    id=ncr.id,
                    reference=ncr.ncr_no,
                    status=ncr.status,
                    location_code=pl.location.code,
                    message=f"NCR {ncr.ncr_no} is still OPEN ({ncr.value})",
                )
            )

    return CloseReadiness(is_ready=not blocking, blocking_items=blocking, warnings=warnings)


@transaction.atomic
def request_close(*, period: Period, user=None) -> CloseReadiness:
    period = _lock_period(period)
    validate_transition(period=period, target_status=Period.Status.PENDING_CLOSE)

    readiness = get_close_readiness(period)
    if not readiness.is_ready:
        raise CloseNotReadyError(
            f"Period {period.name} cannot be closed: "
            f"{len(readiness.blocking_items)} blocking item(s)",
            blocking_items=readiness.blocking_items,
        )

    period.status = Period.Status.PENDING_CLOSE
    period.close_requested_at = timezone.now()
    period.save(update_fields=["status", "close_requested_at"])

    if readiness.warnings:
        logger.warning(
            "Period %s close requested with %d open NCR(s)", period.name, len(readiness.warnings)
        )
    else:
        logger.info("Period %s close requested", period.name)
    return readiness


# ============================================================
# EXECUTE CLOSE
# ============================================================


def _execute_close(*, period: Period, user=None) -> CloseResult:
    period = _lock_period(period)
    validate_transition(period=period, target_status=Period.Status.CLOSED)

    readiness = get_close_readiness(period)
    if not readiness.is_ready:
        raise CloseNotReadyError(
            f"Period {period.name} is no longer ready to close",
            blocking_items=readiness.blocking_items,
        )

    period_locations = list(
        PeriodLocation.objects.select_for_update()
        .filter(period=period)
        .select_related("location")
        .order_by("location__code")
    )

    rows_by_location = defaultdict(list)
    for row in lock_location_stock([pl.location_id for pl in period_locations]):
        rows_by_location[row.location_id].append(row)

    now = timezone.now()
    closing_values = {}

    for pl in period_locations:
        snapshot = build_snapshot(rows_by_location.get(pl.location_id, []))
        closing_value = quantize_money(snapshot["total_value"])

        finalize_reconciliation(
            period=period, location=pl.location, closing_stock=closing_value, user=user
        )

        snapshot["closed_at"] = now.isoformat()
        pl.status = PeriodLocation.Status.CLOSED
        pl.closing_value = closing_value
        pl.snapshot_data = snapshot
        pl.closed_at = now
        pl.save(update_fields=["status", "closing_value", "snapshot_data", "closed_at"])

        closing_values[pl.location_id] = closing_value

    closed = PeriodLocation.objects.filter(
        period=period, status=PeriodLocation.Status.CLOSED
    ).count()
    if closed != len(period_locations):
        raise PartialCloseError(
            f"Only {closed} of {len(period_locations)} locations closed for {period.name}"
        )

    next_period = _next_draft_period(period)
    if next_period is not None:
        for next_pl in PeriodLocation.objects.select_for_update().filter(period=next_period):
            if next_pl.location_id in closing_values:
                next_pl.opening_value = closing_values[next_pl.location_id]
                next_pl.save(update_fields=["opening_value"])

    period.status = Period.Status.CLOSED
    period.closed_at = now
    period.closed_by = user
    period.save(update_fields=["status", "closed_at", "closed_by"])

    total = quantize_money(sum(closing_values.values(), ZERO))
    enqueue(
        event_type="period.closed",
        aggregate_type="period",
        aggregate_id=period.id,
        payload={
            "reference": period.name,
            "locations": len(period_locations),
            "total_closing_value": str(total),
        },
    )

    return CloseResult(
        period=period,
        locations_closed=len(period_locations),
        total_closing_value=total,
        next_period=next_period,
    )


def execute_close(*, period: Period, user=None) -> CloseResult:
    try:
        with transaction.atomic():
            result = _execute_close(period=period, user=user)
    except (StateTransitionError, NotFoundError):
        raise
    except PartialCloseError:
        logger.error("Period close failed for %s; rolled back", period.name)
        raise
    except (DatabaseError, DjangoValidationError, EngineError) as exc:
        logger.error("Period close failed for %s; rolled back: %s", period.name, exc)
        raise PartialCloseError(
            f"Period close failed and was rolled back: {exc}"
        ) from exc

    logger.info(
        "Period %s CLOSED: %d location(s), closing value %s",
        result.period.name,
        result.locations_closed,
        result.total_closing_value,
    )
    return result
