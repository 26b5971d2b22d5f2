# transfers/api/views.py

"""
======================================================
PATH: transfers/api/views.py
======================================================
TRANSFERS API

DRAFT -> submit -> PENDING_APPROVAL -> approve | reject

Approval moves stock between locations in one transaction; the
destination receives at the source WAC.
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
from permissions.roles import (
    CAP_STOCK_VIEW,
    CAP_TRANSFER_APPROVE,
    CAP_TRANSFER_REQUEST,
    HasCapability,
)
from transfers.api.serializers import (
    TransferCreateSerializer,
    TransferRejectSerializer,
    TransferSerializer,
)
from transfers.models import Transfer
from transfers.services.transfer_service import (
    approve_transfer,
    create_transfer,
    reject_transfer,
    submit_transfer,
)


def _transfer_queryset():
    return Transfer.objects.select_related("from_location", "to_location").prefetch_related(
        "lines", "lines__item"
    )


def _payload(transfer: Transfer) -> dict:
    return TransferSerializer(_transfer_queryset().get(pk=transfer.pk)).data


class TransferListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = TransferSerializer
    filterset_fields = ["status", "from_location", "to_location", "period"]

    @property
    def required_capability(self):
        return CAP_TRANSFER_REQUEST if self.request.method == "POST" else CAP_STOCK_VIEW

    def get_queryset(self):
        return _transfer_queryset().order_by("-created_at")

    @extend_schema(tags=["transfers"], request=TransferCreateSerializer, responses={201: TransferSerializer})
    def post(self, request):
        s = TransferCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            transfer = create_transfer(
                from_location=get_or_404(Location, data["from_location_id"], label="Location"),
                to_location=get_or_404(Location, data["to_location_id"], label="Location"),
                lines=resolve_item_lines(data["lines"]),
                transfer_date=data.get("transfer_date"),
                notes=data.get("notes", ""),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(_payload(transfer), status=status.HTTP_201_CREATED)


class TransferSubmitView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_TRANSFER_REQUEST

    @extend_schema(tags=["transfers"], request=None, responses={200: TransferSerializer})
    def post(self, request, transfer_id):
        try:
            transfer = submit_transfer(
                transfer=get_or_404(Transfer, transfer_id, label="Transfer"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_payload(transfer))


class TransferApproveView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_TRANSFER_APPROVE

    @extend_schema(tags=["transfers"], request=None, responses={200: TransferSerializer, 400: dict})
    def post(self, request, transfer_id):
        try:
            transfer = approve_transfer(
                transfer=get_or_404(Transfer, transfer_id, label="Transfer"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_payload(transfer))


class TransferRejectView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_TRANSFER_APPROVE
    serializer_class = TransferRejectSerializer

    @extend_schema(tags=["transfers"], request=TransferRejectSerializer, responses={200: TransferSerializer})
    def post(self, request, transfer_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            transfer = reject_transfer(
                transfer=get_or_404(Transfer, transfer_id, label="Transfer"),
                user=request.user,
                reason=s.validated_data["reason"],
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_payload(transfer))
