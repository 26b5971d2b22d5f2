# purchases/api/views.py

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import engine_error_response, get_or_404
from inventory.api.lines import resolve_item_lines
from inventory.models import Location
from inventory.services.exceptions import EngineError, NotFoundError
from permissions.roles import (
    CAP_DELIVERY_APPROVE,
    CAP_DELIVERY_POST,
    CAP_STOCK_VIEW,
    HasCapability,
)
from purchases.api.serializers import (
    DeliveryCreateSerializer,
    DeliverySerializer,
    DeliveryUpdateSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    RejectSerializer,
    SupplierSerializer,
)
from purchases.models import Delivery, PurchaseOrder, PurchaseOrderLine, Supplier
from purchases.services.delivery_service import (
    approve_over_delivery,
    create_delivery,
    delete_delivery,
    detect_over_delivery,
    post_delivery,
    reject_over_delivery,
    update_delivery,
)
from purchases.services.purchase_order_service import create_purchase_order


def _delivery_queryset():
    return Delivery.objects.select_related("supplier", "location", "purchase_order").prefetch_related(
        "lines", "lines__item"
    )


def _delivery_payload(delivery: Delivery) -> dict:
    delivery = _delivery_queryset().get(pk=delivery.pk)
    data = DeliverySerializer(delivery).data
    if delivery.status == Delivery.STATUS_PENDING_APPROVAL:
        data["over_delivery"] = [o.to_dict() for o in detect_over_delivery(delivery)]
    return data


def _resolve_delivery_lines(raw_lines: list[dict]) -> list[dict]:
    lines = resolve_item_lines(raw_lines)
    for line in lines:
        po_line_id = line.pop("po_line_id", None)
        line["po_line"] = None
        if po_line_id:
            line["po_line"] = PurchaseOrderLine.objects.filter(pk=po_line_id).first()
            if line["po_line"] is None:
                raise NotFoundError(f"Purchase order line not found: {po_line_id}")
    return lines


class SupplierListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = SupplierSerializer

    @property
    def required_capability(self):
        return CAP_DELIVERY_POST if self.request.method == "POST" else CAP_STOCK_VIEW

    @extend_schema(tags=["purchases"], responses=SupplierSerializer(many=True))
    def get(self, request):
        qs = Supplier.objects.filter(is_active=True).order_by("name")
        return Response(SupplierSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["purchases"], request=SupplierSerializer, responses={201: SupplierSerializer})
    def post(self, request):
        s = SupplierSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        supplier = s.save()
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)


class PurchaseOrderListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = PurchaseOrderSerializer
    filterset_fields = ["status", "location", "supplier"]

    @property
    def required_capability(self):
        return CAP_DELIVERY_POST if self.request.method == "POST" else CAP_STOCK_VIEW

    def get_queryset(self):
        return (
            PurchaseOrder.objects.select_related("supplier", "location")
            .prefetch_related("lines", "lines__item")
            .order_by("-created_at")
        )

    @extend_schema(
        tags=["purchases"],
        request=PurchaseOrderCreateSerializer,
        responses={201: PurchaseOrderSerializer},
    )
    def post(self, request):
        s = PurchaseOrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            po = create_purchase_order(
                supplier=get_or_404(Supplier, data["supplier_id"], label="Supplier", is_active=True),
                location=get_or_404(Location, data["location_id"], label="Location"),
                lines=resolve_item_lines(data["lines"]),
                order_date=data.get("order_date"),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(
            PurchaseOrderSerializer(self.get_queryset().get(pk=po.pk)).data,
            status=status.HTTP_201_CREATED,
        )


class DeliveryListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = DeliverySerializer
    filterset_fields = ["status", "location", "supplier", "period", "has_variance"]

    @property
    def required_capability(self):
        return CAP_DELIVERY_POST if self.request.method == "POST" else CAP_STOCK_VIEW

    def get_queryset(self):
        return _delivery_queryset().order_by("-created_at")

    @extend_schema(
        tags=["purchases"],
        request=DeliveryCreateSerializer,
        responses={201: DeliverySerializer},
    )
    def post(self, request):
        s = DeliveryCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            location = get_or_404(Location, data["location_id"], label="Location")
            supplier = get_or_404(Supplier, data["supplier_id"], label="Supplier", is_active=True)

            purchase_order = None
            if data.get("purchase_order_id"):
                purchase_order = get_or_404(
                    PurchaseOrder, data["purchase_order_id"], label="Purchase order"
                )

            delivery = create_delivery(
                location=location,
                supplier=supplier,
                lines=_resolve_delivery_lines(data["lines"]),
                purchase_order=purchase_order,
                invoice_no=data.get("invoice_no", ""),
                delivery_date=data.get("delivery_date"),
                user=request.user,
            )
        except EngineError as exc:
            return engine_error_response(exc)

        return Response(_delivery_payload(delivery), status=status.HTTP_201_CREATED)


class DeliveryDetailView(GenericAPIView):
    """
    GET any delivery; PATCH / DELETE only while it is a DRAFT.
    """

    permission_classes = [IsAuthenticated, HasCapability]
    serializer_class = DeliverySerializer

    @property
    def required_capability(self):
        return CAP_STOCK_VIEW if self.request.method == "GET" else CAP_DELIVERY_POST

    @extend_schema(tags=["purchases"], responses={200: DeliverySerializer, 404: dict})
    def get(self, request, delivery_id):
        try:
            delivery = get_or_404(Delivery, delivery_id, label="Delivery")
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_delivery_payload(delivery))

    @extend_schema(tags=["purchases"], request=DeliveryUpdateSerializer, responses={200: DeliverySerializer})
    def patch(self, request, delivery_id):
        s = DeliveryUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            delivery = get_or_404(Delivery, delivery_id, label="Delivery")
            supplier = None
            if data.get("supplier_id"):
                supplier = get_or_404(Supplier, data["supplier_id"], label="Supplier", is_active=True)

            delivery = update_delivery(
                delivery=delivery,
                user=request.user,
                lines=_resolve_delivery_lines(data["lines"]) if "lines" in data else None,
                invoice_no=data.get("invoice_no"),
                delivery_date=data.get("delivery_date"),
                supplier=supplier,
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_delivery_payload(delivery))

    @extend_schema(tags=["purchases"], responses={204: None})
    def delete(self, request, delivery_id):
        try:
            delete_delivery(
                delivery=get_or_404(Delivery, delivery_id, label="Delivery"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class DeliveryPostView(GenericAPIView):
    """
    Posts a DRAFT delivery. Over-delivered lines park it in
    PENDING_APPROVAL instead (response carries the offending lines).
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_DELIVERY_POST

    @extend_schema(tags=["purchases"], request=None, responses={200: DeliverySerializer})
    def post(self, request, delivery_id):
        try:
            delivery = post_delivery(
                delivery=get_or_404(Delivery, delivery_id, label="Delivery"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_delivery_payload(delivery))


class DeliveryApproveView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_DELIVERY_APPROVE

    @extend_schema(tags=["purchases"], request=None, responses={200: DeliverySerializer})
    def post(self, request, delivery_id):
        try:
            delivery = approve_over_delivery(
                delivery=get_or_404(Delivery, delivery_id, label="Delivery"), user=request.user
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_delivery_payload(delivery))


class DeliveryRejectView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_DELIVERY_APPROVE
    serializer_class = RejectSerializer

    @extend_schema(tags=["purchases"], request=RejectSerializer, responses={200: DeliverySerializer})
    def post(self, request, delivery_id):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            delivery = reject_over_delivery(
                delivery=get_or_404(Delivery, delivery_id, label="Delivery"),
                user=request.user,
                reason=s.validated_data["reason"],
            )
        except EngineError as exc:
            return engine_error_response(exc)
        return Response(_delivery_payload(delivery))
