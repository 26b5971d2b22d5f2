# reconciliation/models.py

"""
======================================================
PATH: reconciliation/models.py
======================================================
PERIOD RECONCILIATION (per location)

Stores the supervisor-entered adjustments and, once the period is closed,
the final figures produced by the close.

Audit guarantees:
- One row per (period, location)
- Immutable once is_final (written by the period close)
- Non-deletable once final
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from inventory.models import Location
from periods.models import Period


def _money_field(**kwargs):
    return models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00"), **kwargs
    )


class Reconciliation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    period = models.ForeignKey(
        Period, on_delete=models.PROTECT, related_name="reconciliations"
    )
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="reconciliations"
    )

    # Movement figures (filled at close)
    opening_stock = _money_field()
    receipts = _money_field()
    transfers_in = _money_field()
    transfers_out = _money_field()
    issues = _money_field()
    closing_stock = _money_field()

    # Manual adjustments (entered before close)
    adjustments = _money_field()
    back_charges = _money_field()
    credits = _money_field()
    condemnations = _money_field()

    total_adjustments = _money_field()
    consumption = _money_field()

    total_mandays = models.PositiveIntegerField(default=0)
    manday_cost = models.DecimalField(
        max_digits=16, decimal_places=2, null=True, blank=True
    )

    notes = models.TextField(blank=True, default="")

    is_final = models.BooleanField(default=False)
    finalized_at = models.DateTimeField(null=True, blank=True)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reconciliations_updated",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["period", "location__code"]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "location"], name="uniq_reconciliation_period_location"
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            stored_final = (
                Reconciliation.objects.filter(pk=self.pk)
                .values_list("is_final", flat=True)
                .first()
            )
            if stored_final:
                raise ValidationError("Final reconciliations are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_final:
            raise ValidationError("Final reconciliations cannot be deleted")
        return super().delete(*args, **kwargs)

    def __str__(self):
        return f"Reconciliation {self.period_id} | {self.location_id}"
