# issues/api/views.py

"""
======================================================
PATH: issues/api/views.py
======================================================
ISSUES API

POST /issues/            create DRAFT (stock checked, not deducted)
POST /issues/<id>/post/  deduct stock at current WAC, all lines or none
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import engine_error_response, get_or_404
from inventory.api.lines import resolve_item_lines
from inventory.models import Location
from inventory.services.exceptions import EngineError
from issues.api.serializers import IssueCreateSerializer, IssueSerializer
from issues.models import Issue
from issues.services.issue_service import create_issue, post_issue
from permissions.roles import CAP_ISSUE_POST, CAP_STOCK_VIEW, HasCapability


def _issue_queryset():
    return Issue.objects.select_related("location").prefetch_related("lines", "lines__item")


class IssueListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = IssueSerializer
    filterset_fields = ["status", "location", "period", "cost_centre"]

    @property
    def required_capability(self):
        return CAP_ISSUE_POST if self.request.method == "POST" else CAP_STOCK_VIEW

    def get_queryset(self):
        return _issue_queryset().order_by("-created_at")

    @extend_schema(tags=["issues"], request=IssueCreateSerializer, responses={201: IssueSerializer})
    def post(self, request):
        s = IssueCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            issue = create_issue(
                location=get_or_404(Location, data["location_id"], label="Location"),
                lines=resolve_item_lines(data["lines"]),
                cost_centre=data.get("cost_centre", Issue.CostCentre.FOOD),
                issue_date=data.get("issue_date"),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            IssueSerializer(_issue_queryset().get(pk=issue.pk)).data,
            status=status.HTTP_201_CREATED,
        )


class IssuePostView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ISSUE_POST

    @extend_schema(tags=["issues"], request=None, responses={200: IssueSerializer, 400: dict})
    def post(self, request, issue_id):
        try:
            issue = post_issue(issue=get_or_404(Issue, issue_id, label="Issue"), user=request.user)
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(IssueSerializer(_issue_queryset().get(pk=issue.pk)).data)
