# inventory/api/views.py

"""
======================================================
PATH: inventory/api/views.py
======================================================
INVENTORY API

- Item / location master data (read-only)
- Per-location stock with WAC and value (filterable)
- Stock sufficiency check for a set of lines (no mutation)
- WAC preview for a prospective receipt (no mutation)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import engine_error_response, get_or_404
from inventory.api.serializers import (
    ItemSerializer,
    LocationSerializer,
    LocationStockSerializer,
    StockCheckSerializer,
    WACPreviewSerializer,
)
from inventory.models import Item, Location, LocationStock
from inventory.services.exceptions import EngineError
from inventory.services.stock_validation import (
    get_current_stock_level,
    validate_sufficient_stock_bulk,
)
from inventory.services.stock_ledger import current_wac
from inventory.services.wac import receipt_value_impact
from permissions.roles import CAP_STOCK_VIEW, HasCapability


class ItemListView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = ItemSerializer
    queryset = Item.objects.all().order_by("code")
    filterset_fields = ["is_active", "unit", "category"]


class LocationListView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = LocationSerializer
    queryset = Location.objects.all().order_by("code")
    filterset_fields = ["is_active", "type"]


class LocationStockListView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = LocationStockSerializer
    queryset = LocationStock.objects.select_related("location", "item").order_by(
        "location__code", "item__code"
    )
    filterset_fields = ["location", "item", "location__code", "item__code"]


class StockCheckView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = StockCheckSerializer

    @extend_schema(tags=["inventory"], request=StockCheckSerializer, responses={200: dict})
    def post(self, request):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            location = get_or_404(Location, data["location_id"], label="Location")
            results = validate_sufficient_stock_bulk(location.id, data["lines"])
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            {
                "location_id": str(location.id),
                "is_valid": all(r.is_valid for r in results),
                "lines": [
                    {
                        "item_id": str(r.item_id),
                        "item_code": r.item_code,
                        "requested": str(r.requested_quantity),
                        "available": str(r.available_quantity),
                        "shortfall": str(r.shortfall) if r.shortfall is not None else None,
                        "is_valid": r.is_valid,
                    }
                    for r in results
                ],
            },
            status=status.HTTP_200_OK,
        )


class WACPreviewView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = WACPreviewSerializer

    @extend_schema(tags=["inventory"], request=WACPreviewSerializer, responses={200: dict})
    def post(self, request):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            location = get_or_404(Location, data["location_id"], label="Location")
            item = get_or_404(Item, data["item_id"], label="Item")
            impact = receipt_value_impact(
                get_current_stock_level(location.id, item.id),
                current_wac(location=location, item=item),
                data["quantity"],
                data["unit_price"],
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response({k: str(v) for k, v in impact.items()}, status=status.HTTP_200_OK)
