# periods/services/pob.py

"""
PERSONS-ON-BOARD ENTRY

One row per (period, location, date); re-entering a date overwrites it.
Not allowed once the location (or the period) is closed.
"""

from __future__ import annotations

from django.db import transaction

from inventory.services.exceptions import PeriodConflictError, ValidationError
from periods.models import Period, PeriodLocation, POBEntry


@transaction.atomic
def record_pob(*, period: Period, location, date, crew_count: int, extra_count: int = 0, user=None) -> POBEntry:
    if period.status == Period.Status.CLOSED:
        raise PeriodConflictError(f"Period {period.name} is CLOSED")
    if not (period.start_date <= date <= period.end_date):
        raise ValidationError("date must fall inside the period", field="date")
    if crew_count is None or crew_count < 0 or (extra_count or 0) < 0:
        raise ValidationError("Headcounts cannot be negative", field="crew_count")

    status = (
        PeriodLocation.objects.filter(period=period, location=location)
        .values_list("status", flat=True)
        .first()
    )
    if status is None:
        raise PeriodConflictError(f"Location {location.code} is not part of period {period.name}")
    if status == PeriodLocation.Status.CLOSED:
        raise PeriodConflictError(f"Location {location.code} is CLOSED for period {period.name}")

    entry, _ = POBEntry.objects.update_or_create(
        period=period,
        location=location,
        date=date,
        defaults={
            "crew_count": crew_count,
            "extra_count": extra_count or 0,
            "entered_by": user,
        },
    )
    return entry
