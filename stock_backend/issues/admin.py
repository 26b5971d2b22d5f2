# issues/admin.py

from django.contrib import admin

from issues.models import Issue, IssueLine


class IssueLineInline(admin.TabularInline):
    model = IssueLine
    extra = 0
    can_delete = False
    readonly_fields = ("item", "quantity", "wac_at_issue", "line_value")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = ("issue_no", "location", "period", "cost_centre", "status", "total_value")
    list_filter = ("status", "cost_centre", "location")
    search_fields = ("issue_no",)
    readonly_fields = [f.name for f in Issue._meta.fields]
    inlines = [IssueLineInline]

    def has_add_permission(self, request):
        return False
