# periods/services/roll_forward.py

"""
PERIOD ROLL-FORWARD

From a CLOSED period, create the next DRAFT period:
- starts the day after the closed period ends
- ends at the end of that month unless an end_date is given
- one PeriodLocation per closed location, opening_value = closing_value
- prices copied from the closed period (optional)
"""

from __future__ import annotations

import calendar
import logging
from datetime import timedelta

from django.db import transaction

from inventory.services.exceptions import PeriodConflictError, StateTransitionError, ValidationError
from periods.models import Period, PeriodLocation
from periods.services.period_prices import copy_prices as copy_period_prices

logger = logging.getLogger(__name__)


def _month_end(d):
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


@transaction.atomic
def roll_forward(
    *,
    period: Period,
    name: str | None = None,
    end_date=None,
    copy_prices: bool = True,
) -> Period:
    period = Period.objects.select_for_update().get(pk=period.pk)
    if period.status != Period.Status.CLOSED:
        raise StateTransitionError(
            f"Only CLOSED periods can be rolled forward ({period.name} is {period.status})"
        )

    start_date = period.end_date + timedelta(days=1)
    end_date = end_date or _month_end(start_date)
    if end_date < start_date:
        raise ValidationError("end_date must be on or after the new start date", field="end_date")

    if Period.objects.filter(start_date__lte=end_date, end_date__gte=start_date).exists():
        raise PeriodConflictError(
            f"A period already covers {start_date.isoformat()} to {end_date.isoformat()}"
        )

    new_period = Period.objects.create(
        name=(name or start_date.strftime("%B %Y")).strip(),
        start_date=start_date,
        end_date=end_date,
    )

    closed_locations = (
        PeriodLocation.objects.filter(period=period)
        .select_related("location")
        .order_by("location__code")
    )
    PeriodLocation.objects.bulk_create(
        [
            PeriodLocation(
                period=new_period,
                location=pl.location,
                opening_value=pl.closing_value if pl.closing_value is not None else pl.opening_value,
            )
            for pl in closed_locations
        ]
    )

    copied = copy_period_prices(source=period, target=new_period) if copy_prices else 0

    logger.info(
        "Rolled %s forward to %s (%s prices copied)", period.name, new_period.name, copied
    )
    return new_period
