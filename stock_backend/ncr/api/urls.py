# ncr/api/urls.py

from django.urls import path

from ncr.api.views import NCRListCreateView, NCRStatusView, NCRSummaryView

urlpatterns = [
    path("", NCRListCreateView.as_view(), name="ncrs"),
    path("summary/", NCRSummaryView.as_view(), name="ncr-summary"),
    path("<uuid:ncr_id>/status/", NCRStatusView.as_view(), name="ncr-status"),
]
