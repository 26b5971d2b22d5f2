# periods/api/serializers.py

"""
======================================================
PATH: periods/api/serializers.py
======================================================
PERIOD SERIALIZERS

Output: period with its per-location close state.
Input: create / roll-forward / price / POB payloads.
"""

from rest_framework import serializers

from periods.models import ItemPrice, Period, PeriodLocation, POBEntry


class PeriodLocationSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)
    location_name = serializers.CharField(source="location.name", read_only=True)

    class Meta:
        model = PeriodLocation
        fields = [
            "id",
            "location",
            "location_code",
            "location_name",
            "status",
            "opening_value",
            "closing_value",
            "ready_at",
            "closed_at",
        ]


class PeriodSerializer(serializers.ModelSerializer):
    locations = PeriodLocationSerializer(source="period_locations", many=True, read_only=True)

    class Meta:
        model = Period
        fields = [
            "id",
            "name",
            "start_date",
            "end_date",
            "status",
            "opened_at",
            "close_requested_at",
            "closed_at",
            "locations",
        ]


class ItemPriceSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.code", read_only=True)

    class Meta:
        model = ItemPrice
        fields = ["id", "item", "item_code", "price", "updated_at"]


class POBEntrySerializer(serializers.ModelSerializer):
    total = serializers.IntegerField(read_only=True)

    class Meta:
        model = POBEntry
        fields = ["id", "location", "date", "crew_count", "extra_count", "total"]


# ==========================================================
# INPUT
# ==========================================================


class PeriodCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    location_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, allow_empty=False
    )

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be >= start_date"})
        return attrs


class RollForwardSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    copy_prices = serializers.BooleanField(required=False, default=True)


class SetPriceSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    price = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)


class POBInputSerializer(serializers.Serializer):
    location_id = serializers.UUIDField()
    date = serializers.DateField()
    crew_count = serializers.IntegerField(min_value=0)
    extra_count = serializers.IntegerField(min_value=0, required=False, default=0)
