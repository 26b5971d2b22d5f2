# ncr/models.py

"""
======================================================
PATH: ncr/models.py
======================================================
NON-CONFORMANCE REPORT (NCR)

A supplier-side problem (price variance, damage, short delivery...) with a
financial outcome.

Status flow (see services/ncr_lifecycle.py):
    OPEN -> SENT -> CREDITED | REJECTED | RESOLVED
    OPEN -> CREDITED | REJECTED | RESOLVED

Hard rules:
- financial_impact is set ONLY when status is RESOLVED (and is then required).
- value is a non-negative money amount.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from inventory.models import Location
from purchases.models import Delivery, DeliveryLine


class NCR(models.Model):
    class NCRType(models.TextChoices):
        MANUAL = "MANUAL", "Manual"
        PRICE_VARIANCE = "PRICE_VARIANCE", "Price Variance"

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        SENT = "SENT", "Sent to Supplier"
        CREDITED = "CREDITED", "Credited"
        REJECTED = "REJECTED", "Rejected"
        RESOLVED = "RESOLVED", "Resolved"

    class FinancialImpact(models.TextChoices):
        CREDIT = "CREDIT", "Credit"
        LOSS = "LOSS", "Loss"
        NONE = "NONE", "None"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    ncr_no = models.CharField(max_length=32, unique=True)
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name="ncrs")

    type = models.CharField(
        max_length=20, choices=NCRType.choices, default=NCRType.MANUAL
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    financial_impact = models.CharField(
        max_length=10, choices=FinancialImpact.choices, null=True, blank=True
    )

    value = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))
    quantity = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)
    reason = models.TextField()

    delivery = models.ForeignKey(
        Delivery, on_delete=models.PROTECT, null=True, blank=True, related_name="ncrs"
    )
    delivery_line = models.ForeignKey(
        DeliveryLine, on_delete=models.PROTECT, null=True, blank=True, related_name="ncrs"
    )

    auto_generated = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ncrs_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "NCR"
        verbose_name_plural = "NCRs"
        constraints = [
            models.CheckConstraint(condition=Q(value__gte=0), name="chk_ncr_value_gte_0"),
        ]
        indexes = [
            models.Index(fields=["location", "status"], name="ncr_location_status_idx"),
            models.Index(fields=["created_at"], name="ncr_created_at_idx"),
        ]

    def clean(self):
        if self.status == self.Status.RESOLVED and not self.financial_impact:
            raise ValidationError(
                {"financial_impact": "financial_impact is required when status is RESOLVED"}
            )
        if self.status != self.Status.RESOLVED and self.financial_impact:
            raise ValidationError(
                {"financial_impact": "financial_impact is only allowed when status is RESOLVED"}
            )
        if self.delivery_line_id and self.delivery_id:
            line_delivery = (
                DeliveryLine.objects.filter(id=self.delivery_line_id)
                .values_list("delivery_id", flat=True)
                .first()
            )
            if line_delivery != self.delivery_id:
                raise ValidationError({"delivery_line": "Line does not belong to delivery"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.ncr_no} ({self.status})"
