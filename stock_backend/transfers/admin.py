# transfers/admin.py

from django.contrib import admin

from transfers.models import Transfer, TransferLine


class TransferLineInline(admin.TabularInline):
    model = TransferLine
    extra = 0
    can_delete = False
    readonly_fields = ("item", "quantity", "wac_at_transfer", "line_value")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transfer)
class TransferAdmin(admin.ModelAdmin):
    list_display = ("transfer_no", "from_location", "to_location", "period", "status", "total_value")
    list_filter = ("status", "from_location", "to_location")
    search_fields = ("transfer_no",)
    readonly_fields = [f.name for f in Transfer._meta.fields]
    inlines = [TransferLineInline]

    def has_add_permission(self, request):
        return False
