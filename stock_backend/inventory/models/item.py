# inventory/models/item.py

"""
ITEM MASTER

Stock-keeping item, valued per location through LocationStock.
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models


class Item(models.Model):
    class Unit(models.TextChoices):
        KG = "KG", "Kilogram"
        EA = "EA", "Each"
        LTR = "LTR", "Litre"
        BOX = "BOX", "Box"
        CASE = "CASE", "Case"
        PACK = "PACK", "Pack"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    unit = models.CharField(max_length=10, choices=Unit.choices, default=Unit.EA)
    category = models.CharField(max_length=100, blank=True, default="")

    min_stock = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True
    )
    max_stock = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        indexes = [
            models.Index(fields=["name"], name="inv_item_name_idx"),
            models.Index(fields=["is_active"], name="inv_item_active_idx"),
        ]

    def clean(self):
        self.code = (self.code or "").strip().upper()
        if not self.code:
            raise ValidationError({"code": "code is required"})
        if (
            self.min_stock is not None
            and self.max_stock is not None
            and self.min_stock > self.max_stock
        ):
            raise ValidationError({"max_stock": "max_stock must be >= min_stock"})

    def __str__(self):
        return f"{self.code} - {self.name}"
