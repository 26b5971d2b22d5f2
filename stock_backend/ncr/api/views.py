# ncr/api/views.py

"""
======================================================
PATH: ncr/api/views.py
======================================================
NCR API

GET   /ncr/                      list (filter by location/status/type)
POST  /ncr/                      raise a manual NCR
PATCH /ncr/<id>/status/          move through the NCR lifecycle
GET   /ncr/summary/?period=&location=
                                 credited / losses / pending / open buckets
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import engine_error_response, get_or_404
from inventory.models import Location
from inventory.services.exceptions import EngineError, ValidationError
from ncr.api.serializers import NCRCreateSerializer, NCRSerializer, NCRStatusSerializer
from ncr.models import NCR
from ncr.services.ncr_lifecycle import create_manual_ncr, update_ncr_status
from ncr.services.ncr_summary import get_all_ncr_summary_for_period, summary_to_dict
from periods.models import Period
from permissions.roles import CAP_NCR_EDIT, CAP_NCR_VIEW, HasCapability
from purchases.models import Delivery, DeliveryLine


class NCRListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = NCRSerializer
    filterset_fields = ["location", "status", "type", "financial_impact", "auto_generated"]

    @property
    def required_capability(self):
        return CAP_NCR_EDIT if self.request.method == "POST" else CAP_NCR_VIEW

    def get_queryset(self):
        return NCR.objects.select_related("location", "delivery").order_by("-created_at")

    @extend_schema(tags=["ncr"], request=NCRCreateSerializer, responses={201: NCRSerializer})
    def post(self, request):
        s = NCRCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            location = get_or_404(Location, data["location_id"], label="Location")
            delivery = None
            delivery_line = None
            if data.get("delivery_id"):
                delivery = get_or_404(Delivery, data["delivery_id"], label="Delivery")
            if data.get("delivery_line_id"):
                delivery_line = get_or_404(
                    DeliveryLine, data["delivery_line_id"], label="Delivery line"
                )
                if delivery is not None and delivery_line.delivery_id != delivery.id:
                    raise ValidationError(
                        "delivery_line does not belong to delivery", field="delivery_line_id"
                    )

            ncr = create_manual_ncr(
                location=location,
                reason=data["reason"],
                value=data["value"],
                quantity=data.get("quantity"),
                delivery=delivery,
                delivery_line=delivery_line,
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(NCRSerializer(ncr).data, status=status.HTTP_201_CREATED)


class NCRStatusView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_NCR_EDIT
    serializer_class = NCRStatusSerializer

    @extend_schema(tags=["ncr"], request=NCRStatusSerializer, responses={200: NCRSerializer})
    def patch(self, request, ncr_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            ncr = update_ncr_status(
                ncr=get_or_404(NCR, ncr_id, label="NCR"),
                status=data["status"],
                financial_impact=data.get("financial_impact"),
                resolution_notes=data.get("resolution_notes"),
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(NCRSerializer(ncr).data)


class NCRSummaryView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_NCR_VIEW

    @extend_schema(
        tags=["ncr"],
        parameters=[
            OpenApiParameter("period", str, required=True),
            OpenApiParameter("location", str, required=True),
        ],
        responses={200: dict},
    )
    def get(self, request):
        period_id = (request.query_params.get("period") or "").strip()
        location_id = (request.query_params.get("location") or "").strip()
        if not period_id or not location_id:
            return Response(
                {"code": "VALIDATION_ERROR", "detail": "period and location are required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            period = get_or_404(Period, period_id, label="Period")
            location = get_or_404(Location, location_id, label="Location")
        except EngineError as exc:
            return engine_error_response(exc)

        summary = get_all_ncr_summary_for_period(period=period, location=location)
        return Response(summary_to_dict(summary))
