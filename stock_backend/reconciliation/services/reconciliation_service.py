# reconciliation/services/reconciliation_service.py

"""
======================================================
PATH: reconciliation/services/reconciliation_service.py
======================================================
RECONCILIATION SERVICE

Purpose:
- Gather the ledger movements of one (period, location) from posted documents.
- Persist supervisor adjustments before close.
- Freeze the final figures at period close (finalize_reconciliation).
- Side-by-side view of every location in a period for management reporting.

Sources:
    opening_stock  PeriodLocation.opening_value
    receipts       POSTED delivery lines
    transfers_in   APPROVED transfers to the location
    transfers_out  APPROVED transfers from the location
    issues         POSTED issues
    closing_stock  live LocationStock value (or the close snapshot)
    mandays        POB entries
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from inventory.services.exceptions import NotFoundError, PeriodConflictError
from inventory.services.money import ZERO, quantize_money, to_decimal
from inventory.services.snapshot import current_stock_value
from issues.models import Issue
from ncr.services.ncr_summary import get_all_ncr_summary_for_period
from periods.models import Period, PeriodLocation, POBEntry
from purchases.models import Delivery, DeliveryLine
from reconciliation.models import Reconciliation
from reconciliation.services.calculator import (
    ConsumptionInput,
    calculate_consumption,
    calculate_manday_cost,
)
from transfers.models import Transfer

logger = logging.getLogger(__name__)

ADJUSTMENT_FIELDS = ("back_charges", "credits", "condemnations", "adjustments")

MONEY_FIELDS = (
    "opening_stock",
    "receipts",
    "transfers_in",
    "transfers_out",
    "issues",
    "closing_stock",
    "back_charges",
    "credits",
    "condemnations",
    "adjustments",
    "total_adjustments",
    "consumption",
)


def _sum(qs, field: str) -> Decimal:
    return quantize_money(qs.aggregate(total=Sum(field))["total"] or ZERO)


def get_total_mandays(*, period, location) -> int:
    entries = POBEntry.objects.filter(period=period, location=location)
    return sum(e.total for e in entries)


def get_movements(*, period, location) -> dict:
    receipts = _sum(
        DeliveryLine.objects.filter(
            delivery__period=period,
            delivery__location=location,
            delivery__status=Delivery.STATUS_POSTED,
        ),
        "line_value",
    )
    transfers_in = _sum(
        Transfer.objects.filter(
            period=period, to_location=location, status=Transfer.Status.APPROVED
        ),
        "total_value",
    )
    transfers_out = _sum(
        Transfer.objects.filter(
            period=period, from_location=location, status=Transfer.Status.APPROVED
        ),
        "total_value",
    )
    issues = _sum(
        Issue.objects.filter(period=period, location=location, status=Issue.Status.POSTED),
        "total_value",
    )

    return {
        "receipts": receipts,
        "transfers_in": transfers_in,
        "transfers_out": transfers_out,
        "issues": issues,
    }


def _period_location(*, period, location) -> PeriodLocation:
    period_location = PeriodLocation.objects.filter(period=period, location=location).first()
    if period_location is None:
        raise NotFoundError(f"Location {location.code} is not part of period {period.name}")
    return period_location


def build_consumption_input(
    *, period, location, reconciliation: Reconciliation | None = None, closing_stock=None
) -> ConsumptionInput:
    """
    closing_stock defaults to the live stock value of the location.
    """
    period_location = _period_location(period=period, location=location)
    movements = get_movements(period=period, location=location)

    if closing_stock is None:
        closing_stock = current_stock_value(location=location)

    rec = reconciliation
    return ConsumptionInput(
        opening_stock=period_location.opening_value,
        receipts=movements["receipts"],
        transfers_in=movements["transfers_in"],
        transfers_out=movements["transfers_out"],
        issues=movements["issues"],
        closing_stock=closing_stock,
        back_charges=rec.back_charges if rec else ZERO,
        credits=rec.credits if rec else ZERO,
        condemnations=rec.condemnations if rec else ZERO,
        adjustments=rec.adjustments if rec else ZERO,
    )


def _figures(*, period, location, reconciliation: Reconciliation | None) -> dict:
    if reconciliation and reconciliation.is_final:
        data = {name: getattr(reconciliation, name) for name in MONEY_FIELDS}
        data["total_mandays"] = reconciliation.total_mandays
        data["manday_cost"] = reconciliation.manday_cost
        return data

    inputs = build_consumption_input(
        period=period, location=location, reconciliation=reconciliation
    )
    result = calculate_consumption(inputs)
    mandays = get_total_mandays(period=period, location=location)

    data = dict(result.breakdown)
    data["total_mandays"] = mandays
    data["manday_cost"] = (
        calculate_manday_cost(result.consumption, mandays).manday_cost if mandays else None
    )
    return data


def get_reconciliation(*, period, location) -> dict:
    """
    Read-only view of a reconciliation.

    A finalized row is returned as stored. Otherwise the figures are computed
    live from the ledger plus whatever adjustments have been saved so far.
    NCR buckets are attached so credited / lost values can be copied into
    the adjustment fields.
    """
    reconciliation = Reconciliation.objects.filter(period=period, location=location).first()

    data = _figures(period=period, location=location, reconciliation=reconciliation)
    data.update(
        {
            "period_id": period.id,
            "location_id": location.id,
            "is_final": bool(reconciliation and reconciliation.is_final),
            "saved": reconciliation is not None,
            "notes": reconciliation.notes if reconciliation else "",
            "ncr_summary": get_all_ncr_summary_for_period(period=period, location=location),
        }
    )
    return data


def get_consolidated_reconciliation(*, period) -> dict:
    """
    Every location of the period side by side, plus grand totals.

    Locations without a saved row are computed live. average_manday_cost is
    total consumption over total mandays (None without headcount).
    """
    period_locations = (
        PeriodLocation.objects.filter(period=period)
        .select_related("location")
        .order_by("location__code")
    )
    saved = {
        r.location_id: r for r in Reconciliation.objects.filter(period=period)
    }

    rows = []
    totals = {name: ZERO for name in MONEY_FIELDS}
    total_mandays = 0

    for period_location in period_locations:
        location = period_location.location
        reconciliation = saved.get(location.id)
        figures = _figures(period=period, location=location, reconciliation=reconciliation)

        for name in MONEY_FIELDS:
            totals[name] += figures[name]
        total_mandays += figures["total_mandays"] or 0

        rows.append(
            {
                "location_id": location.id,
                "location_code": location.code,
                "location_name": location.name,
                "location_status": period_location.status,
                "is_final": bool(reconciliation and reconciliation.is_final),
                "saved": reconciliation is not None,
                **figures,
            }
        )

    grand_totals = {name: quantize_money(value) for name, value in totals.items()}
    grand_totals["total_mandays"] = total_mandays
    grand_totals["average_manday_cost"] = (
        calculate_manday_cost(grand_totals["consumption"], total_mandays).manday_cost
        if total_mandays
        else None
    )

    return {
        "period_id": period.id,
        "period_name": period.name,
        "period_status": period.status,
        "locations": rows,
        "grand_totals": grand_totals,
        "summary": {
            "total_locations": len(rows),
            "saved": sum(1 for r in rows if r["saved"]),
            "computed": sum(1 for r in rows if not r["saved"]),
            "final": sum(1 for r in rows if r["is_final"]),
        },
    }


@transaction.atomic
def save_adjustments(*, period, location, user=None, notes: str | None = None, **values) -> Reconciliation:
    """
    Upsert the supervisor-entered adjustments. Adjustments may be negative.
    """
    period = Period.objects.select_for_update().get(pk=period.pk)
    if period.status == Period.Status.CLOSED:
        raise PeriodConflictError(f"Period {period.name} is CLOSED")

    period_location = _period_location(period=period, location=location)
    if period_location.status == PeriodLocation.Status.CLOSED:
        raise PeriodConflictError(f"Location {location.code} is CLOSED for period {period.name}")

    reconciliation, _ = Reconciliation.objects.select_for_update().get_or_create(
        period=period, location=location
    )
    if reconciliation.is_final:
        raise PeriodConflictError("Reconciliation is final and cannot be edited")

    for name in ADJUSTMENT_FIELDS:
        if name in values and values[name] is not None:
            setattr(reconciliation, name, quantize_money(to_decimal(values[name], field=name)))
    if notes is not None:
        reconciliation.notes = notes
    reconciliation.updated_by = user

    inputs = build_consumption_input(
        period=period, location=location, reconciliation=reconciliation
    )
    result = calculate_consumption(inputs)
    reconciliation.total_adjustments = result.total_adjustments
    reconciliation.consumption = result.consumption

    reconciliation.save()

    logger.info(
        "Reconciliation adjustments saved for %s / %s", period.name, location.code
    )
    return reconciliation


def finalize_reconciliation(*, period, location, closing_stock, user=None) -> Reconciliation:
    """
    Writes the final figures. Called by the period close inside its
    transaction; not atomic on its own.
    """
    reconciliation, _ = Reconciliation.objects.select_for_update().get_or_create(
        period=period, location=location
    )
    if reconciliation.is_final:
        raise PeriodConflictError(
            f"Reconciliation for {location.code} in {period.name} is already final"
        )

    inputs = build_consumption_input(
        period=period,
        location=location,
        reconciliation=reconciliation,
        closing_stock=closing_stock,
    )
    result = calculate_consumption(inputs)
    mandays = get_total_mandays(period=period, location=location)

    for name in (
        "opening_stock",
        "receipts",
        "transfers_in",
        "transfers_out",
        "issues",
        "closing_stock",
    ):
        setattr(reconciliation, name, result.breakdown[name])

    reconciliation.total_adjustments = result.total_adjustments
    reconciliation.consumption = result.consumption
    reconciliation.total_mandays = mandays
    reconciliation.manday_cost = (
        calculate_manday_cost(result.consumption, mandays).manday_cost if mandays else None
    )
    reconciliation.is_final = True
    reconciliation.finalized_at = timezone.now()
    if user is not None:
        reconciliation.updated_by = user

    reconciliation.save()
    return reconciliation
