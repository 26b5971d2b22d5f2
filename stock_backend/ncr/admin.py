# ncr/admin.py

from django.contrib import admin

from ncr.models import NCR


@admin.register(NCR)
class NCRAdmin(admin.ModelAdmin):
    list_display = ("ncr_no", "location", "type", "status", "financial_impact", "value", "created_at")
    list_filter = ("status", "type", "financial_impact", "location")
    search_fields = ("ncr_no", "reason")
    readonly_fields = [f.name for f in NCR._meta.fields]
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False
