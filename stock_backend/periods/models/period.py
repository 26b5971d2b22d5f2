# periods/models/period.py

"""
======================================================
PATH: periods/models/period.py
======================================================
ACCOUNTING PERIOD (monthly)

Lifecycle (linear, CLOSED is terminal):
    DRAFT -> OPEN -> PENDING_CLOSE -> CLOSED

Hard rules:
- At most ONE period is OPEN at any time. Enforced twice:
  service lock (select_for_update) + partial unique constraint in the DB.
- end_date >= start_date.
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class Period(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        OPEN = "OPEN", "Open"
        PENDING_CLOSE = "PENDING_CLOSE", "Pending Close"
        CLOSED = "CLOSED", "Closed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )

    opened_at = models.DateTimeField(null=True, blank=True)
    close_requested_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="periods_closed",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]
        indexes = [
            models.Index(fields=["status"], name="per_period_status_idx"),
            models.Index(fields=["start_date", "end_date"], name="per_period_dates_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["status"],
                condition=Q(status="OPEN"),
                name="uniq_single_open_period",
            ),
            models.CheckConstraint(
                condition=Q(end_date__gte=F("start_date")),
                name="chk_period_end_gte_start",
            ),
        ]

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "end_date must be >= start_date"})

    @property
    def is_open(self) -> bool:
        return self.status == self.Status.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == self.Status.CLOSED

    def __str__(self):
        return f"{self.name} ({self.status})"
