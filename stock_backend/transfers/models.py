# transfers/models.py

"""
======================================================
PATH: transfers/models.py
======================================================
INTER-LOCATION TRANSFER

Lifecycle (see services/transfer_lifecycle.py):
    DRAFT -> PENDING_APPROVAL -> APPROVED | REJECTED

Approval moves stock atomically: source decremented at its WAC, destination
incremented through the WAC engine at wac_at_transfer. Both legs or neither.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from inventory.models import Item, Location
from periods.models import Period


class Transfer(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PENDING_APPROVAL = "PENDING_APPROVAL", "Pending Approval"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    transfer_no = models.CharField(max_length=32, unique=True)
    from_location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="transfers_out"
    )
    to_location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="transfers_in"
    )
    period = models.ForeignKey(Period, on_delete=models.PROTECT, related_name="transfers")

    transfer_date = models.DateField(default=timezone.localdate)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    total_value = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )
    notes = models.TextField(blank=True, default="")

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transfers_requested",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transfers_approved",
    )
    approval_date = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(from_location=F("to_location")),
                name="chk_transfer_distinct_locations",
            ),
        ]
        indexes = [
            models.Index(fields=["period", "status"], name="trf_transfer_period_idx"),
        ]

    def clean(self):
        if self.from_location_id and self.from_location_id == self.to_location_id:
            raise ValidationError({"to_location": "Source and destination must differ"})

    def __str__(self):
        return f"{self.transfer_no} ({self.status})"


class TransferLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    transfer = models.ForeignKey(Transfer, on_delete=models.CASCADE, related_name="lines")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="transfer_lines")

    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    wac_at_transfer = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )
    line_value = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        ordering = ["item__code"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0), name="transfer_line_quantity_gt_zero"
            ),
        ]

    def __str__(self):
        return f"{self.transfer_id} | {self.item_id} x {self.quantity}"
