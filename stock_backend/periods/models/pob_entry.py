# periods/models/pob_entry.py

"""
PERSONS ON BOARD (daily headcount)

mandays for a location/period = SUM(crew_count + extra_count)
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from inventory.models import Location

from .period import Period


class POBEntry(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    period = models.ForeignKey(Period, on_delete=models.CASCADE, related_name="pob_entries")
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="pob_entries"
    )
    date = models.DateField()

    crew_count = models.PositiveIntegerField(default=0)
    extra_count = models.PositiveIntegerField(default=0)

    entered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pob_entries",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "location", "date"], name="uniq_pob_period_location_date"
            ),
        ]

    def clean(self):
        if self.period_id and self.date:
            period = self.period
            if not (period.start_date <= self.date <= period.end_date):
                raise ValidationError({"date": "date must fall inside the period"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def total(self) -> int:
        return int(self.crew_count or 0) + int(self.extra_count or 0)

    def __str__(self):
        return f"{self.location_id} {self.date}: {self.total}"
