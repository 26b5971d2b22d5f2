# purchases/api/serializers.py

from rest_framework import serializers

from purchases.models import Delivery, DeliveryLine, PurchaseOrder, PurchaseOrderLine, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = "__all__"
        read_only_fields = ("id", "created_at")


class PurchaseOrderLineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.code", read_only=True)
    remaining_qty = serializers.DecimalField(max_digits=14, decimal_places=4, read_only=True)

    class Meta:
        model = PurchaseOrderLine
        fields = ["id", "item", "item_code", "quantity", "unit_price", "delivered_qty", "remaining_qty"]


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True)
    lines = PurchaseOrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "po_no",
            "supplier",
            "supplier_name",
            "location",
            "location_code",
            "order_date",
            "status",
            "closed_at",
            "created_at",
            "lines",
        ]


class DeliveryLineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.code", read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)

    class Meta:
        model = DeliveryLine
        fields = [
            "id",
            "item",
            "item_code",
            "item_name",
            "po_line",
            "quantity",
            "unit_price",
            "period_price",
            "price_variance",
            "line_value",
            "wac_before",
            "wac_after",
            "over_delivery_approved",
        ]


class DeliverySerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True)
    po_no = serializers.SerializerMethodField()
    lines = DeliveryLineSerializer(many=True, read_only=True)

    class Meta:
        model = Delivery
        fields = [
            "id",
            "delivery_no",
            "location",
            "location_code",
            "supplier",
            "supplier_name",
            "purchase_order",
            "po_no",
            "period",
            "invoice_no",
            "delivery_date",
            "status",
            "total_amount",
            "has_variance",
            "rejection_reason",
            "approved_at",
            "posted_at",
            "created_at",
            "lines",
        ]

    def get_po_no(self, obj):
        return getattr(obj.purchase_order, "po_no", None)


# ==========================================================
# INPUT
# ==========================================================


class PurchaseOrderLineCreateSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=4, min_value=0, required=False, default=0
    )


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    order_date = serializers.DateField(required=False)
    lines = PurchaseOrderLineCreateSerializer(many=True, allow_empty=False)


class DeliveryLineCreateSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)
    po_line_id = serializers.UUIDField(required=False, allow_null=True)


class DeliveryCreateSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    purchase_order_id = serializers.UUIDField(required=False, allow_null=True)
    invoice_no = serializers.CharField(required=False, allow_blank=True, default="")
    delivery_date = serializers.DateField(required=False)
    lines = DeliveryLineCreateSerializer(many=True, allow_empty=False)


class DeliveryUpdateSerializer(serializers.Serializer):
    """
    Partial edit of a DRAFT. `lines`, when sent, replaces every line.
    """

    supplier_id = serializers.UUIDField(required=False)
    invoice_no = serializers.CharField(required=False, allow_blank=True)
    delivery_date = serializers.DateField(required=False)
    lines = DeliveryLineCreateSerializer(many=True, allow_empty=False, required=False)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField()
