# reconciliation/api/serializers.py

from rest_framework import serializers


def _money(**kwargs):
    return serializers.DecimalField(max_digits=16, decimal_places=2, **kwargs)


class AdjustmentsSerializer(serializers.Serializer):
    """
    Partial update: omitted fields keep their saved value.
    Adjustments may be negative.
    """

    back_charges = _money(required=False)
    credits = _money(required=False)
    condemnations = _money(required=False)
    adjustments = _money(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class CalculateSerializer(serializers.Serializer):
    opening_stock = _money(required=False, default=0)
    receipts = _money(required=False, default=0)
    transfers_in = _money(required=False, default=0)
    transfers_out = _money(required=False, default=0)
    issues = _money(required=False, default=0)
    closing_stock = _money(required=False, default=0)
    back_charges = _money(required=False, default=0)
    credits = _money(required=False, default=0)
    condemnations = _money(required=False, default=0)
    adjustments = _money(required=False, default=0)
    total_mandays = serializers.IntegerField(required=False, allow_null=True)
