# reconciliation/api/urls.py

from django.urls import path

from reconciliation.api.views import (
    CalculateView,
    ConsolidatedReconciliationView,
    ReconciliationView,
)

urlpatterns = [
    path("calculate/", CalculateView.as_view(), name="reconciliation-calculate"),
    path(
        "consolidated/<uuid:period_id>/",
        ConsolidatedReconciliationView.as_view(),
        name="reconciliation-consolidated",
    ),
    path(
        "<uuid:period_id>/<uuid:location_id>/",
        ReconciliationView.as_view(),
        name="reconciliation-detail",
    ),
]
