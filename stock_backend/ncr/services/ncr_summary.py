# ncr/services/ncr_summary.py

"""
======================================================
PATH: ncr/services/ncr_summary.py
======================================================
NCR FINANCIAL RESOLVER (read-only)

Buckets for one (period, location):

    credited = CREDITED,  or RESOLVED + CREDIT   -> reduces consumption
    losses   = REJECTED,  or RESOLVED + LOSS     -> increases consumption
    pending  = SENT                              -> informational
    open     = OPEN                              -> close-time warning

RESOLVED + NONE belongs to no bucket.

Period association (OR):
    a) the NCR's delivery belongs to the period
    b) the NCR has no delivery and was created inside the period's dates

Never mutates NCR state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import Q
from django.utils import timezone

from inventory.services.money import ZERO, quantize_money
from ncr.models import NCR

CREDITED_FILTER = Q(status=NCR.Status.CREDITED) | Q(
    status=NCR.Status.RESOLVED, financial_impact=NCR.FinancialImpact.CREDIT
)
LOST_FILTER = Q(status=NCR.Status.REJECTED) | Q(
    status=NCR.Status.RESOLVED, financial_impact=NCR.FinancialImpact.LOSS
)
PENDING_FILTER = Q(status=NCR.Status.SENT)
OPEN_FILTER = Q(status=NCR.Status.OPEN)


@dataclass(frozen=True)
class NCRSummaryItem:
    id: object
    ncr_no: str
    value: Decimal
    reason: str
    status: str
    delivery_no: str | None = None
    item_name: str | None = None
    financial_impact: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "ncr_no": self.ncr_no,
            "value": str(self.value),
            "reason": self.reason,
            "status": self.status,
            "delivery_no": self.delivery_no,
            "item_name": self.item_name,
            "financial_impact": self.financial_impact,
        }


@dataclass(frozen=True)
class NCRCategory:
    total: Decimal = ZERO
    count: int = 0
    ncrs: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": str(self.total),
            "count": self.count,
            "ncrs": [n.to_dict() for n in self.ncrs],
        }


def _period_window(period) -> tuple[datetime, datetime]:
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(period.start_date, time.min), tz)
    end = timezone.make_aware(
        datetime.combine(period.end_date + timedelta(days=1), time.min), tz
    )
    return start, end


def _period_filter(period) -> Q:
    start, end = _period_window(period)
    return Q(delivery__period=period) | Q(
        delivery__isnull=True, created_at__gte=start, created_at__lt=end
    )


def ncrs_for_period(*, period, location):
    return (
        NCR.objects.filter(location=location)
        .filter(_period_filter(period))
        .select_related("delivery", "delivery_line__item")
        .order_by("created_at", "ncr_no")
    )


def _to_item(ncr: NCR) -> NCRSummaryItem:
    return NCRSummaryItem(
        id=ncr.id,
        ncr_no=ncr.ncr_no,
        value=quantize_money(ncr.value),
        reason=ncr.reason,
        status=ncr.status,
        delivery_no=ncr.delivery.delivery_no if ncr.delivery_id else None,
        item_name=ncr.delivery_line.item.name if ncr.delivery_line_id else None,
        financial_impact=ncr.financial_impact or None,
    )


def _category(qs) -> NCRCategory:
    items = [_to_item(n) for n in qs]
    total = quantize_money(sum((i.value for i in items), ZERO))
    return NCRCategory(total=total, count=len(items), ncrs=items)


def get_credited_ncrs_for_period(*, period, location) -> NCRCategory:
    return _category(ncrs_for_period(period=period, location=location).filter(CREDITED_FILTER))


def get_lost_ncrs_for_period(*, period, location) -> NCRCategory:
    return _category(ncrs_for_period(period=period, location=location).filter(LOST_FILTER))


def get_pending_ncrs_for_period(*, period, location) -> NCRCategory:
    return _category(ncrs_for_period(period=period, location=location).filter(PENDING_FILTER))


def get_open_ncrs_for_period(*, period, location) -> NCRCategory:
    return _category(ncrs_for_period(period=period, location=location).filter(OPEN_FILTER))


def get_all_ncr_summary_for_period(*, period, location) -> dict:
    """
    One query, classified in memory. Returns
    {"credited": NCRCategory, "losses": ..., "pending": ..., "open": ...}.
    """
    buckets = {"credited": [], "losses": [], "pending": [], "open": []}

    for ncr in ncrs_for_period(period=period, location=location):
        status, impact = ncr.status, ncr.financial_impact
        if status == NCR.Status.CREDITED or (
            status == NCR.Status.RESOLVED and impact == NCR.FinancialImpact.CREDIT
        ):
            buckets["credited"].append(_to_item(ncr))
        elif status == NCR.Status.REJECTED or (
            status == NCR.Status.RESOLVED and impact == NCR.FinancialImpact.LOSS
        ):
            buckets["losses"].append(_to_item(ncr))
        elif status == NCR.Status.SENT:
            buckets["pending"].append(_to_item(ncr))
        elif status == NCR.Status.OPEN:
            buckets["open"].append(_to_item(ncr))

    return {
        name: NCRCategory(
            total=quantize_money(sum((i.value for i in items), ZERO)),
            count=len(items),
            ncrs=items,
        )
        for name, items in buckets.items()
    }


def summary_to_dict(summary: dict) -> dict:
    return {name: category.to_dict() for name, category in summary.items()}
