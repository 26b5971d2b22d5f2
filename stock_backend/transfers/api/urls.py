# transfers/api/urls.py

from django.urls import path

from transfers.api.views import (
    TransferApproveView,
    TransferListCreateView,
    TransferRejectView,
    TransferSubmitView,
)

urlpatterns = [
    path("", TransferListCreateView.as_view(), name="transfers"),
    path("<uuid:transfer_id>/submit/", TransferSubmitView.as_view(), name="transfer-submit"),
    path("<uuid:transfer_id>/approve/", TransferApproveView.as_view(), name="transfer-approve"),
    path("<uuid:transfer_id>/reject/", TransferRejectView.as_view(), name="transfer-reject"),
]
