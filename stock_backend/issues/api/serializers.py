# issues/api/serializers.py

from rest_framework import serializers

from issues.models import Issue, IssueLine


class IssueLineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.code", read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)

    class Meta:
        model = IssueLine
        fields = ["id", "item", "item_code", "item_name", "quantity", "wac_at_issue", "line_value"]


class IssueSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)
    lines = IssueLineSerializer(many=True, read_only=True)

    class Meta:
        model = Issue
        fields = [
            "id",
            "issue_no",
            "location",
            "location_code",
            "period",
            "cost_centre",
            "issue_date",
            "status",
            "total_value",
            "posted_at",
            "created_at",
            "lines",
        ]


class IssueLineCreateSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)


class IssueCreateSerializer(serializers.Serializer):
    location_id = serializers.UUIDField()
    cost_centre = serializers.ChoiceField(
        choices=Issue.CostCentre.choices, required=False, default=Issue.CostCentre.FOOD
    )
    issue_date = serializers.DateField(required=False)
    lines = IssueLineCreateSerializer(many=True, allow_empty=False)
