# notifications/admin.py

from django.contrib import admin

from notifications.models import NotificationEvent


@admin.register(NotificationEvent)
class NotificationEventAdmin(admin.ModelAdmin):
    list_display = (
        "event_type",
        "aggregate_type",
        "aggregate_id",
        "created_at",
        "published_at",
        "publish_attempts",
    )
    list_filter = ("event_type", "aggregate_type")
    search_fields = ("aggregate_id", "event_type")
    readonly_fields = [f.name for f in NotificationEvent._meta.fields]
    ordering = ("-created_at",)
