# inventory/api/serializers.py

from rest_framework import serializers

from inventory.models import Item, Location, LocationStock


class ItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = [
            "id",
            "code",
            "name",
            "unit",
            "category",
            "min_stock",
            "max_stock",
            "is_active",
        ]


class LocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Location
        fields = ["id", "code", "name", "type", "address", "is_active"]


class LocationStockSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)
    item_code = serializers.CharField(source="item.code", read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)
    unit = serializers.CharField(source="item.unit", read_only=True)
    stock_value = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)

    class Meta:
        model = LocationStock
        fields = [
            "id",
            "location",
            "location_code",
            "item",
            "item_code",
            "item_name",
            "unit",
            "on_hand",
            "wac",
            "stock_value",
            "updated_at",
        ]


# ==========================================================
# INPUT
# ==========================================================


class StockCheckLineSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4)


class StockCheckSerializer(serializers.Serializer):
    location_id = serializers.UUIDField()
    lines = StockCheckLineSerializer(many=True, allow_empty=False)


class WACPreviewSerializer(serializers.Serializer):
    location_id = serializers.UUIDField()
    item_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4)
