# periods/api/views.py

"""
======================================================
PATH: periods/api/views.py
======================================================
PERIOD API

Lifecycle:
    POST /periods/                       create (DRAFT)
    POST /periods/<id>/open/             DRAFT -> OPEN (locks prices)
    GET  /periods/<id>/close-readiness/  blocking items + warnings
    POST /periods/<id>/request-close/    OPEN -> PENDING_CLOSE
    POST /periods/<id>/close/            PENDING_CLOSE -> CLOSED (atomic)
    POST /periods/<id>/roll-forward/     CLOSED -> new DRAFT period

Per location:
    POST /periods/<id>/locations/<loc>/ready/
    POST /periods/<id>/locations/<loc>/unready/

Security:
- Authenticated + capability per action (permissions/roles.py)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import engine_error_response, get_or_404
from inventory.models import Item, Location
from inventory.services.exceptions import EngineError
from periods.api.serializers import (
    ItemPriceSerializer,
    PeriodCreateSerializer,
    PeriodLocationSerializer,
    PeriodSerializer,
    POBEntrySerializer,
    POBInputSerializer,
    RollForwardSerializer,
    SetPriceSerializer,
)
from periods.models import ItemPrice, Period, POBEntry
from periods.services.period_guard import get_open_period
from periods.services.period_lifecycle import (
    create_period,
    execute_close,
    get_close_readiness,
    mark_location_ready,
    mark_location_unready,
    open_period,
    request_close,
)
from periods.services.period_prices import set_item_price
from periods.services.pob import record_pob
from periods.services.roll_forward import roll_forward
from permissions.roles import (
    CAP_PERIOD_CLOSE,
    CAP_PERIOD_MANAGE,
    CAP_PERIOD_READY,
    CAP_RECONCILIATION_EDIT,
    CAP_STOCK_VIEW,
    HasCapability,
)


def _period_queryset():
    return Period.objects.prefetch_related("period_locations__location")


class PeriodListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = PeriodSerializer
    filterset_fields = ["status"]

    @property
    def required_capability(self):
        return CAP_PERIOD_MANAGE if self.request.method == "POST" else CAP_STOCK_VIEW

    def get_queryset(self):
        return _period_queryset().order_by("-start_date")

    @extend_schema(tags=["periods"], request=PeriodCreateSerializer, responses={201: PeriodSerializer})
    def post(self, request):
        s = PeriodCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        locations = None
        if data.get("location_ids"):
            locations = list(Location.objects.filter(id__in=data["location_ids"]).order_by("code"))
            if len(locations) != len(set(data["location_ids"])):
                return Response(
                    {"code": "NOT_FOUND", "detail": "One or more locations not found"},
                    status=status.HTTP_404_NOT_FOUND,
                )

        try:
            period = create_period(
                name=data["name"],
                start_date=data["start_date"],
                end_date=data["end_date"],
                locations=locations,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            PeriodSerializer(_period_queryset().get(pk=period.pk)).data,
            status=status.HTTP_201_CREATED,
        )


class CurrentPeriodView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = PeriodSerializer

    @extend_schema(tags=["periods"], responses={200: PeriodSerializer, 404: dict})
    def get(self, request):
        period = get_open_period()
        if period is None:
            return Response(
                {"code": "NOT_FOUND", "detail": "No period is OPEN"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(PeriodSerializer(_period_queryset().get(pk=period.pk)).data)


class PeriodDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = PeriodSerializer

    @extend_schema(tags=["periods"], responses={200: PeriodSerializer, 404: dict})
    def get(self, request, period_id):
        try:
            period = get_or_404(Period, period_id, label="Period")
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(PeriodSerializer(_period_queryset().get(pk=period.pk)).data)


class OpenPeriodView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PERIOD_MANAGE
    serializer_class = PeriodSerializer

    @extend_schema(tags=["periods"], request=None, responses={200: PeriodSerializer, 409: dict})
    def post(self, request, period_id):
        try:
            period = open_period(
                period=get_or_404(Period, period_id, label="Period"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(PeriodSerializer(_period_queryset().get(pk=period.pk)).data)


class PeriodPricesView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = SetPriceSerializer

    @property
    def required_capability(self):
        return CAP_PERIOD_MANAGE if self.request.method == "POST" else CAP_STOCK_VIEW

    @extend_schema(tags=["periods"], responses={200: ItemPriceSerializer(many=True)})
    def get(self, request, period_id):
        qs = ItemPrice.objects.filter(period_id=period_id).select_related("item")
        return Response(ItemPriceSerializer(qs, many=True).data)

    @extend_schema(tags=["periods"], request=SetPriceSerializer, responses={200: ItemPriceSerializer})
    def post(self, request, period_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            price = set_item_price(
                period=get_or_404(Period, period_id, label="Period"),
                item=get_or_404(Item, data["item_id"], label="Item"),
                price=data["price"],
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(ItemPriceSerializer(price).data)


class CloseReadinessView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW

    @extend_schema(tags=["periods"], responses={200: dict})
    def get(self, request, period_id):
        try:
            period = get_or_404(Period, period_id, label="Period")
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(get_close_readiness(period).to_dict())


class RequestCloseView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PERIOD_CLOSE

    @extend_schema(tags=["periods"], request=None, responses={200: dict, 400: dict})
    def post(self, request, period_id):
        try:
            readiness = request_close(
                period=get_or_404(Period, period_id, label="Period"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            {"status": Period.Status.PENDING_CLOSE, "warnings": readiness.to_dict()["warnings"]}
        )


class ExecuteCloseView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PERIOD_CLOSE

    @extend_schema(tags=["periods"], request=None, responses={200: dict, 400: dict, 500: dict})
    def post(self, request, period_id):
        try:
            result = execute_close(
                period=get_or_404(Period, period_id, label="Period"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            {
                "period": PeriodSerializer(_period_queryset().get(pk=result.period.pk)).data,
                "locations_closed": result.locations_closed,
                "total_closing_value": str(result.total_closing_value),
                "next_period_id": str(result.next_period.id) if result.next_period else None,
            }
        )


class RollForwardView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PERIOD_MANAGE
    serializer_class = RollForwardSerializer

    @extend_schema(tags=["periods"], request=RollForwardSerializer, responses={201: PeriodSerializer})
    def post(self, request, period_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            period = roll_forward(
                period=get_or_404(Period, period_id, label="Period"),
                name=data.get("name") or None,
                end_date=data.get("end_date"),
                copy_prices=data.get("copy_prices", True),
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            PeriodSerializer(_period_queryset().get(pk=period.pk)).data,
            status=status.HTTP_201_CREATED,
        )


class LocationReadyView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PERIOD_READY
    ready = True

    @extend_schema(tags=["periods"], request=None, responses={200: PeriodLocationSerializer})
    def post(self, request, period_id, location_id):
        action = mark_location_ready if self.ready else mark_location_unready
        try:
            period_location = action(
                period=get_or_404(Period, period_id, label="Period"),
                location=get_or_404(Location, location_id, label="Location"),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(PeriodLocationSerializer(period_location).data)


class POBView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = POBInputSerializer

    @property
    def required_capability(self):
        return CAP_RECONCILIATION_EDIT if self.request.method == "POST" else CAP_STOCK_VIEW

    @extend_schema(tags=["periods"], responses={200: POBEntrySerializer(many=True)})
    def get(self, request, period_id):
        qs = POBEntry.objects.filter(period_id=period_id).order_by("location__code", "date")
        location_id = (request.query_params.get("location") or "").strip()
        if location_id:
            qs = qs.filter(location_id=location_id)
        return Response(POBEntrySerializer(qs, many=True).data)

    @extend_schema(tags=["periods"], request=POBInputSerializer, responses={200: POBEntrySerializer})
    def post(self, request, period_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            entry = record_pob(
                period=get_or_404(Period, period_id, label="Period"),
                location=get_or_404(Location, data["location_id"], label="Location"),
                date=data["date"],
                crew_count=data["crew_count"],
                extra_count=data.get("extra_count", 0),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(POBEntrySerializer(entry).data)
