# periods/api/urls.py

from django.urls import path

from periods.api.views import (
    CloseReadinessView,
    CurrentPeriodView,
    ExecuteCloseView,
    LocationReadyView,
    OpenPeriodView,
    PeriodDetailView,
    PeriodListCreateView,
    PeriodPricesView,
    POBView,
    RequestCloseView,
    RollForwardView,
)

urlpatterns = [
    path("", PeriodListCreateView.as_view(), name="periods"),
    path("current/", CurrentPeriodView.as_view(), name="period-current"),
    path("<uuid:period_id>/", PeriodDetailView.as_view(), name="period-detail"),
    path("<uuid:period_id>/open/", OpenPeriodView.as_view(), name="period-open"),
    path("<uuid:period_id>/prices/", PeriodPricesView.as_view(), name="period-prices"),
    path("<uuid:period_id>/pob/", POBView.as_view(), name="period-pob"),
    path(
        "<uuid:period_id>/close-readiness/",
        CloseReadinessView.as_view(),
        name="period-close-readiness",
    ),
    path(
        "<uuid:period_id>/request-close/",
        RequestCloseView.as_view(),
        name="period-request-close",
    ),
    path("<uuid:period_id>/close/", ExecuteCloseView.as_view(), name="period-close"),
    path(
        "<uuid:period_id>/roll-forward/",
        RollForwardView.as_view(),
        name="period-roll-forward",
    ),
    path(
        "<uuid:period_id>/locations/<uuid:location_id>/ready/",
        LocationReadyView.as_view(ready=True),
        name="period-location-ready",
    ),
    path(
        "<uuid:period_id>/locations/<uuid:location_id>/unready/",
        LocationReadyView.as_view(ready=False),
        name="period-location-unready",
    ),
]
