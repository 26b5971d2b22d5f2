# purchases/api/urls.py

from django.urls import path

from purchases.api.views import (
    DeliveryApproveView,
    DeliveryDetailView,
    DeliveryListCreateView,
    DeliveryPostView,
    DeliveryRejectView,
    PurchaseOrderListCreateView,
    SupplierListCreateView,
)

urlpatterns = [
    path("suppliers/", SupplierListCreateView.as_view(), name="suppliers"),
    path("orders/", PurchaseOrderListCreateView.as_view(), name="purchase-orders"),
    path("deliveries/", DeliveryListCreateView.as_view(), name="deliveries"),
    path("deliveries/<uuid:delivery_id>/", DeliveryDetailView.as_view(), name="delivery-detail"),
    path("deliveries/<uuid:delivery_id>/post/", DeliveryPostView.as_view(), name="delivery-post"),
    path(
        "deliveries/<uuid:delivery_id>/approve/",
        DeliveryApproveView.as_view(),
        name="delivery-approve",
    ),
    path(
        "deliveries/<uuid:delivery_id>/reject/",
        DeliveryRejectView.as_view(),
        name="delivery-reject",
    ),
]
