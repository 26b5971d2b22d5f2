# inventory/models/location.py

import uuid

from django.db import models


class Location(models.Model):
    """
    A stock-holding site (kitchen, store, central store, warehouse).
    """

    class LocationType(models.TextChoices):
        KITCHEN = "KITCHEN", "Kitchen"
        STORE = "STORE", "Store"
        CENTRAL = "CENTRAL", "Central Store"
        WAREHOUSE = "WAREHOUSE", "Warehouse"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=200)
    type = models.CharField(
        max_length=20, choices=LocationType.choices, default=LocationType.STORE
    )
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]
        indexes = [
            models.Index(fields=["is_active"], name="inv_location_active_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"
