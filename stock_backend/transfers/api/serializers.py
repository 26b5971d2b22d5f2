# transfers/api/serializers.py

from rest_framework import serializers

from transfers.models import Transfer, TransferLine


class TransferLineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.code", read_only=True)

    class Meta:
        model = TransferLine
        fields = ["id", "item", "item_code", "quantity", "wac_at_transfer", "line_value"]


class TransferSerializer(serializers.ModelSerializer):
    from_location_code = serializers.CharField(source="from_location.code", read_only=True)
    to_location_code = serializers.CharField(source="to_location.code", read_only=True)
    lines = TransferLineSerializer(many=True, read_only=True)

    class Meta:
        model = Transfer
        fields = [
            "id",
            "transfer_no",
            "from_location",
            "from_location_code",
            "to_location",
            "to_location_code",
            "period",
            "transfer_date",
            "status",
            "total_value",
            "notes",
            "approval_date",
            "rejection_reason",
            "created_at",
            "lines",
        ]


class TransferLineCreateSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)


class TransferCreateSerializer(serializers.Serializer):
    from_location_id = serializers.UUIDField()
    to_location_id = serializers.UUIDField()
    transfer_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    lines = TransferLineCreateSerializer(many=True, allow_empty=False)

    def validate(self, attrs):
        if attrs["from_location_id"] == attrs["to_location_id"]:
            raise serializers.ValidationError(
                {"to_location_id": "Source and destination must differ"}
            )
        return attrs


class TransferRejectSerializer(serializers.Serializer):
    reason = serializers.CharField()
