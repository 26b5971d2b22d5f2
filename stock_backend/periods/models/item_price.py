# periods/models/item_price.py

"""
PERIOD ITEM PRICE

Expected (contract) price per item for a period. Deliveries are compared
against it to detect price variance.

Hard rule:
- Editable only while the period is DRAFT. Opening the period locks prices.
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from inventory.models import Item

from .period import Period


class ItemPrice(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    period = models.ForeignKey(Period, on_delete=models.CASCADE, related_name="prices")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="period_prices")

    price = models.DecimalField(max_digits=14, decimal_places=4)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["period", "item__code"]
        constraints = [
            models.UniqueConstraint(fields=["period", "item"], name="uniq_item_price_period_item"),
            models.CheckConstraint(condition=Q(price__gte=0), name="chk_item_price_gte_0"),
        ]

    def _require_draft_period(self):
        status = (
            Period.objects.filter(id=self.period_id).values_list("status", flat=True).first()
        )
        if status is not None and status != Period.Status.DRAFT:
            raise ValidationError("Period prices are locked once the period is opened")

    def save(self, *args, **kwargs):
        self._require_draft_period()
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._require_draft_period()
        return super().delete(*args, **kwargs)

    def __str__(self):
        return f"{self.period_id} | {self.item_id} @ {self.price}"
