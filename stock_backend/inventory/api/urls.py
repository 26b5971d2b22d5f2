# inventory/api/urls.py

from django.urls import path

from inventory.api.views import (
    ItemListView,
    LocationListView,
    LocationStockListView,
    StockCheckView,
    WACPreviewView,
)

urlpatterns = [
    path("items/", ItemListView.as_view(), name="inventory-items"),
    path("locations/", LocationListView.as_view(), name="inventory-locations"),
    path("stock/", LocationStockListView.as_view(), name="inventory-stock"),
    path("stock/check/", StockCheckView.as_view(), name="inventory-stock-check"),
    path("wac/preview/", WACPreviewView.as_view(), name="inventory-wac-preview"),
]
