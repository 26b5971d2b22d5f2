# periods/models/period_location.py

"""
PERIOD LOCATION

Per-location close state inside a period.

    OPEN -> READY -> CLOSED      (READY -> OPEN allowed while the period is OPEN)

closing_value / snapshot_data are written exactly once, by the period close.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

from inventory.models import Location

from .period import Period


class PeriodLocation(models.Model):
    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        READY = "READY", "Ready"
        CLOSED = "CLOSED", "Closed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    period = models.ForeignKey(
        Period, on_delete=models.CASCADE, related_name="period_locations"
    )
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="period_locations"
    )

    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.OPEN
    )

    opening_value = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )
    closing_value = models.DecimalField(
        max_digits=16, decimal_places=2, null=True, blank=True
    )
    snapshot_data = models.JSONField(null=True, blank=True)

    ready_at = models.DateTimeField(null=True, blank=True)
    ready_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="period_locations_ready",
    )
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["period", "location__code"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "location"], name="uniq_period_location"
            ),
        ]
        indexes = [
            models.Index(fields=["period", "status"], name="per_ploc_period_status_idx"),
        ]

    def __str__(self):
        return f"{self.period_id} | {self.location_id} | {self.status}"
