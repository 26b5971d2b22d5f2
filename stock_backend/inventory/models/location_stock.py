# inventory/models/location_stock.py

"""
LOCATION STOCK (per-location valuation ledger row)

GUARANTEES:
- One row per (location, item)
- on_hand >= 0 and wac >= 0 (DB CHECK constraints, not just app rules)
- Mutated ONLY by inventory.services.stock_ledger under select_for_update()
"""

import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q

from .item import Item
from .location import Location


class LocationStock(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="stock"
    )
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="stock")

    on_hand = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )
    wac = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0"))

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["location", "item__code"]
        constraints = [
            models.UniqueConstraint(
                fields=["location", "item"], name="uniq_location_stock_location_item"
            ),
            models.CheckConstraint(
                condition=Q(on_hand__gte=0), name="chk_location_stock_on_hand_gte_0"
            ),
            models.CheckConstraint(
                condition=Q(wac__gte=0), name="chk_location_stock_wac_gte_0"
            ),
        ]

    @property
    def stock_value(self) -> Decimal:
        return (self.on_hand or Decimal("0")) * (self.wac or Decimal("0"))

    def __str__(self):
        return f"{self.location_id} | {self.item_id} | {self.on_hand} @ {self.wac}"
