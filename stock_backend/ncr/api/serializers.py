# ncr/api/serializers.py

from rest_framework import serializers

from ncr.models import NCR


class NCRSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)
    delivery_no = serializers.SerializerMethodField()

    class Meta:
        model = NCR
        fields = [
            "id",
            "ncr_no",
            "location",
            "location_code",
            "type",
            "status",
            "financial_impact",
            "value",
            "quantity",
            "reason",
            "delivery",
            "delivery_no",
            "delivery_line",
            "auto_generated",
            "created_at",
            "resolved_at",
            "resolution_notes",
        ]

    def get_delivery_no(self, obj):
        return getattr(obj.delivery, "delivery_no", None)


class NCRCreateSerializer(serializers.Serializer):
    location_id = serializers.UUIDField()
    reason = serializers.CharField()
    value = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0)
    quantity = serializers.DecimalField(
        max_digits=14, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    delivery_id = serializers.UUIDField(required=False, allow_null=True)
    delivery_line_id = serializers.UUIDField(required=False, allow_null=True)


class NCRStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=NCR.Status.choices)
    financial_impact = serializers.ChoiceField(
        choices=NCR.FinancialImpact.choices, required=False, allow_null=True
    )
    resolution_notes = serializers.CharField(required=False, allow_blank=True)
