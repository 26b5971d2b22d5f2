# inventory/admin.py
"""
Master data is editable here. LocationStock is read-only: quantities and
WAC only change through the stock ledger (deliveries, issues, transfers).
"""

from django.contrib import admin

from inventory.models import Item, Location, LocationStock


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "unit", "category", "is_active")
    list_filter = ("unit", "category", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "type", "is_active")
    list_filter = ("type", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)


@admin.register(LocationStock)
class LocationStockAdmin(admin.ModelAdmin):
    list_display = ("location", "item", "on_hand", "wac", "updated_at")
    list_filter = ("location",)
    search_fields = ("item__code", "item__name", "location__code")
    readonly_fields = [f.name for f in LocationStock._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
