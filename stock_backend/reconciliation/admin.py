# reconciliation/admin.py

from django.contrib import admin

from reconciliation.models import Reconciliation


@admin.register(Reconciliation)
class ReconciliationAdmin(admin.ModelAdmin):
    list_display = ("period", "location", "consumption", "total_mandays", "manday_cost", "is_final")
    list_filter = ("is_final", "period", "location")
    readonly_fields = [f.name for f in Reconciliation._meta.fields]

    def has_add_permission(self, request):
        return False
