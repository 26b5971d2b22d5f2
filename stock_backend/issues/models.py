# issues/models.py

"""
STOCK ISSUES (consumption out of a location)

Issue lines are valued at the location WAC at the moment of posting:
    line_value = quantity * wac_at_issue
Issues never change WAC. POSTED issues are immutable.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from inventory.models import Item, Location
from periods.models import Period


class Issue(models.Model):
    class CostCentre(models.TextChoices):
        FOOD = "FOOD", "Food"
        CLEAN = "CLEAN", "Cleaning"
        OTHER = "OTHER", "Other"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    issue_no = models.CharField(max_length=32, unique=True)
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name="issues")
    period = models.ForeignKey(Period, on_delete=models.PROTECT, related_name="issues")

    cost_centre = models.CharField(
        max_length=10, choices=CostCentre.choices, default=CostCentre.FOOD
    )
    issue_date = models.DateField(default=timezone.localdate)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)

    total_value = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="issues_created",
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["period", "status"], name="iss_issue_period_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            stored = Issue.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            if stored == self.Status.POSTED:
                raise ValidationError(f"Issue {self.issue_no} is POSTED and cannot be modified")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status == self.Status.POSTED:
            raise ValidationError(f"Issue {self.issue_no} is POSTED and cannot be deleted")
        return super().delete(*args, **kwargs)

    def __str__(self):
        return f"{self.issue_no} ({self.status})"


class IssueLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    issue = models.ForeignKey(Issue, on_delete=models.CASCADE, related_name="lines")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="issue_lines")

    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    wac_at_issue = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )
    line_value = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        ordering = ["item__code"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0), name="issue_line_quantity_gt_zero"
            ),
        ]

    def __str__(self):
        return f"{self.issue_id} | {self.item_id} x {self.quantity}"
