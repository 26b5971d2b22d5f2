# reconciliation/api/views.py

"""
======================================================
PATH: reconciliation/api/views.py
======================================================
RECONCILIATION API

GET  /reconciliation/<period>/<location>/   live or final figures + NCR buckets
PUT  /reconciliation/<period>/<location>/   save manual adjustments
POST /reconciliation/calculate/             pure calculation, nothing stored
GET  /reconciliation/consolidated/<period>/  every location of the period + grand totals
"""

from decimal import Decimal
from uuid import UUID

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import engine_error_response, get_or_404
from inventory.models import Location
from inventory.services.exceptions import EngineError
from ncr.services.ncr_summary import summary_to_dict
from periods.models import Period
from permissions.roles import (
    CAP_RECONCILIATION_CONSOLIDATED,
    CAP_RECONCILIATION_EDIT,
    CAP_RECONCILIATION_VIEW,
    HasCapability,
)
from reconciliation.api.serializers import AdjustmentsSerializer, CalculateSerializer
from reconciliation.services.calculator import (
    ADJUSTMENT_FIELDS,
    ConsumptionInput,
    calculate_reconciliation,
    validate_reconciliation_inputs,
)
from reconciliation.services.reconciliation_service import (
    get_consolidated_reconciliation,
    get_reconciliation,
    save_adjustments,
)


def _plain(value):
    if isinstance(value, dict):
        return {key: _plain(v) for key, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return value


def _render(data: dict) -> dict:
    out = {}
    for key, value in data.items():
        if key == "ncr_summary":
            out[key] = summary_to_dict(value)
        else:
            out[key] = _plain(value)
    return out


class ReconciliationView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = AdjustmentsSerializer

    @property
    def required_capability(self):
        return CAP_RECONCILIATION_EDIT if self.request.method == "PUT" else CAP_RECONCILIATION_VIEW

    @extend_schema(tags=["reconciliation"], responses={200: dict, 404: dict})
    def get(self, request, period_id, location_id):
        try:
            period = get_or_404(Period, period_id, label="Period")
            location = get_or_404(Location, location_id, label="Location")
            data = get_reconciliation(period=period, location=location)
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_render(data))

    @extend_schema(tags=["reconciliation"], request=AdjustmentsSerializer, responses={200: dict, 409: dict})
    def put(self, request, period_id, location_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            period = get_or_404(Period, period_id, label="Period")
            location = get_or_404(Location, location_id, label="Location")
            save_adjustments(
                period=period,
                location=location,
                user=request.user,
                notes=data.get("notes"),
                **{name: data[name] for name in ADJUSTMENT_FIELDS if name in data},
            )
            result = get_reconciliation(period=period, location=location)
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_render(result))


class CalculateView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_RECONCILIATION_VIEW
    serializer_class = CalculateSerializer

    @extend_schema(tags=["reconciliation"], request=CalculateSerializer, responses={200: dict, 400: dict})
    def post(self, request):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)
        mandays = data.pop("total_mandays", None)

        inputs = ConsumptionInput(**data)
        ok, errors = validate_reconciliation_inputs(inputs, total_mandays=mandays)
        if not ok:
            return Response(
                {"code": "VALIDATION_ERROR", "detail": "; ".join(errors), "errors": errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = calculate_reconciliation(inputs, mandays)
        except EngineError as exc:
            return engine_error_response(exc)

        body = {k: str(v) for k, v in result.consumption.breakdown.items()}
        body["total_mandays"] = mandays
        body["manday_cost"] = str(result.manday.manday_cost) if result.manday else None
        return Response(body)


class ConsolidatedReconciliationView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_RECONCILIATION_CONSOLIDATED

    @extend_schema(tags=["reconciliation"], responses={200: dict, 404: dict})
    def get(self, request, period_id):
        try:
            period = get_or_404(Period, period_id, label="Period")
            data = get_consolidated_reconciliation(period=period)
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_plain(data))
