# periods/services/period_guard.py

"""
PERIOD POSTING GUARD

Deliveries, issues and transfers may only be created / posted against the
single OPEN period, and only for a location whose PeriodLocation is OPEN.
"""

from __future__ import annotations

from periods.models import Period, PeriodLocation
from inventory.services.exceptions import PeriodConflictError


def get_open_period(*, lock: bool = False) -> Period | None:
    qs = Period.objects.filter(status=Period.Status.OPEN)
    if lock:
        qs = qs.select_for_update()
    return qs.first()


def require_open_period(*, lock: bool = False) -> Period:
    period = get_open_period(lock=lock)
    if period is None:
        raise PeriodConflictError("No period is OPEN for posting")
    return period


def assert_period_open_for_location(*, location, period: Period | None = None) -> PeriodLocation:
    """
    Returns the OPEN PeriodLocation for `location` in the OPEN period.
    If `period` is given it must itself be the OPEN period.
    """
    if period is None:
        period = require_open_period()
    elif period.status != Period.Status.OPEN:
        raise PeriodConflictError(
            f"Period {period.name} is {period.status}; postings require an OPEN period"
        )

    period_location = PeriodLocation.objects.filter(
        period=period, location=location
    ).first()
    if period_location is None:
        raise PeriodConflictError(
            f"Location {location.code} is not part of period {period.name}"
        )
    if period_location.status != PeriodLocation.Status.OPEN:
        raise PeriodConflictError(
            f"Location {location.code} is {period_location.status} for period "
            f"{period.name}; reopen it before posting"
        )
    return period_location
