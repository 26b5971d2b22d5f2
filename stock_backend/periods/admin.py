# periods/admin.py

from django.contrib import admin

from periods.models import ItemPrice, Period, PeriodLocation, POBEntry


class PeriodLocationInline(admin.TabularInline):
    model = PeriodLocation
    extra = 0
    can_delete = False
    readonly_fields = (
        "location",
        "status",
        "opening_value",
        "closing_value",
        "ready_at",
        "ready_by",
        "closed_at",
    )
    exclude = ("snapshot_data",)

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Period)
class PeriodAdmin(admin.ModelAdmin):
    """
    Status is driven by the lifecycle endpoints, never edited by hand.
    """

    list_display = ("name", "start_date", "end_date", "status", "closed_at")
    list_filter = ("status",)
    ordering = ("-start_date",)
    readonly_fields = ("status", "opened_at", "close_requested_at", "closed_at", "closed_by")
    inlines = [PeriodLocationInline]


@admin.register(ItemPrice)
class ItemPriceAdmin(admin.ModelAdmin):
    list_display = ("period", "item", "price", "updated_at")
    list_filter = ("period",)
    search_fields = ("item__code", "item__name")


@admin.register(POBEntry)
class POBEntryAdmin(admin.ModelAdmin):
    list_display = ("period", "location", "date", "crew_count", "extra_count")
    list_filter = ("period", "location")
    ordering = ("-date",)
