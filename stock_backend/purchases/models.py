# purchases/models.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from inventory.models import Item, Location
from inventory.services.exceptions import StateTransitionError
from periods.models import Period

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="pur_supplier_name_idx"),
        ]

    def __str__(self):
        return self.name


class PurchaseOrder(models.Model):
    """
    Purchase order header.

    Auto-closes when every line is fully delivered (see delivery_service).
    """

    STATUS_OPEN = "OPEN"
    STATUS_CLOSED = "CLOSED"

    STATUSES = [
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    po_no = models.CharField(max_length=32, unique=True)
    supplier = models.ForeignKey(
        Supplier, on_delete=models.PROTECT, related_name="purchase_orders"
    )
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="purchase_orders"
    )

    order_date = models.DateField(default=timezone.localdate)
    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_orders_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="pur_po_status_idx"),
        ]

    @property
    def total_amount(self) -> Decimal:
        return _money(sum((line.line_total for line in self.lines.all()), Decimal("0")))

    def __str__(self):
        return f"{self.po_no} ({self.status})"


class PurchaseOrderLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.CASCADE, related_name="lines"
    )
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="po_lines")

    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    unit_price = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )
    delivered_qty = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )

    class Meta:
        ordering = ["item__code"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="po_line_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(delivered_qty__gte=0),
                name="po_line_delivered_qty_nonnegative",
            ),
        ]

    @property
    def remaining_qty(self) -> Decimal:
        remaining = (self.quantity or Decimal("0")) - (self.delivered_qty or Decimal("0"))
        return remaining if remaining > 0 else Decimal("0")

    @property
    def is_fully_delivered(self) -> bool:
        return self.remaining_qty == 0

    @property
    def line_total(self) -> Decimal:
        return _money((self.quantity or 0) * (self.unit_price or 0))

    def __str__(self):
        return f"{self.purchase_order_id} | {self.item_id} x {self.quantity}"


class Delivery(models.Model):
    """
    Goods received at a location.

    Lifecycle (see services/delivery_lifecycle.py):
        DRAFT -> POSTED
        DRAFT -> PENDING_APPROVAL -> POSTED | REJECTED

    Hard rules:
    - POSTED and REJECTED deliveries are immutable (header + lines).
    - Posting happens only against the OPEN period.
    """

    STATUS_DRAFT = "DRAFT"
    STATUS_PENDING_APPROVAL = "PENDING_APPROVAL"
    STATUS_POSTED = "POSTED"
    STATUS_REJECTED = "REJECTED"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PENDING_APPROVAL, "Pending Approval"),
        (STATUS_POSTED, "Posted"),
        (STATUS_REJECTED, "Rejected"),
    ]

    LOCKED_STATUSES = {STATUS_POSTED, STATUS_REJECTED}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    delivery_no = models.CharField(max_length=32, unique=True)
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="deliveries"
    )
    supplier = models.ForeignKey(
        Supplier, on_delete=models.PROTECT, related_name="deliveries"
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="deliveries",
    )
    period = models.ForeignKey(
        Period, on_delete=models.PROTECT, related_name="deliveries"
    )

    invoice_no = models.CharField(max_length=64, blank=True, default="")
    delivery_date = models.DateField(default=timezone.localdate)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    total_amount = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )
    has_variance = models.BooleanField(default=False)
    rejection_reason = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deliveries_created",
    )
    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="deliveries_approved",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0.00")),
                name="delivery_total_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["period", "status"], name="pur_delivery_period_idx"),
            models.Index(fields=["location", "created_at"], name="pur_delivery_loc_idx"),
        ]

    def clean(self):
        if self.status == self.STATUS_POSTED and not self.posted_at:
            raise ValidationError({"posted_at": "posted_at is required when status is POSTED"})
        if self.status == self.STATUS_REJECTED and not (self.rejection_reason or "").strip():
            raise ValidationError({"rejection_reason": "rejection_reason is required"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            stored = (
                Delivery.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            )
            if stored in self.LOCKED_STATUSES:
                raise StateTransitionError(
                    f"Delivery {self.delivery_no} is {stored} and cannot be modified"
                )

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status in self.LOCKED_STATUSES:
            raise StateTransitionError(
                f"Delivery {self.delivery_no} is {self.status} and cannot be deleted"
            )
        return super().delete(*args, **kwargs)

    @property
    def is_locked(self) -> bool:
        return self.status in self.LOCKED_STATUSES

    def __str__(self):
        return f"{self.delivery_no} ({self.status})"


class DeliveryLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    delivery = models.ForeignKey(Delivery, on_delete=models.CASCADE, related_name="lines")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="delivery_lines")
    po_line = models.ForeignKey(
        PurchaseOrderLine,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="delivery_lines",
    )

    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    unit_price = models.DecimalField(max_digits=14, decimal_places=4)

    period_price = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True
    )
    price_variance = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )
    line_value = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    # WAC audit trail (stamped at posting)
    wac_before = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True
    )
    wac_after = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True
    )

    over_delivery_approved = models.BooleanField(default=False)

    class Meta:
        ordering = ["item__code"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="delivery_line_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0),
                name="delivery_line_unit_price_nonnegative",
            ),
        ]

    def _require_mutable_delivery(self):
        stored = (
            Delivery.objects.filter(pk=self.delivery_id)
            .values_list("status", flat=True)
            .first()
        )
        if stored in Delivery.LOCKED_STATUSES:
            raise StateTransitionError(f"Delivery is {stored}; its lines cannot be modified")

    def save(self, *args, **kwargs):
        self._require_mutable_delivery()
        self.line_value = _money((self.quantity or 0) * (self.unit_price or 0))
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._require_mutable_delivery()
        return super().delete(*args, **kwargs)

    def __str__(self):
        return f"{self.delivery_id} | {self.item_id} x {self.quantity} @ {self.unit_price}"
