# notifications/models.py

"""
NOTIFICATION OUTBOX

Rows are written inside the same transaction as the state change that
caused them, then dispatched after commit. A failed dispatch leaves the
row unpublished for retry (dispatch_notifications command).
"""

import uuid

from django.db import models


class NotificationEvent(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    event_type = models.CharField(max_length=64)
    aggregate_type = models.CharField(max_length=64)
    aggregate_id = models.CharField(max_length=64)
    payload = models.JSONField(default=dict)

    created_at = models.DateTimeField(auto_now_add=True)
    published_at = models.DateTimeField(null=True, blank=True)
    publish_attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["published_at", "created_at"], name="ntf_event_pending_idx"),
            models.Index(fields=["aggregate_type", "aggregate_id"], name="ntf_event_aggregate_idx"),
        ]

    @property
    def is_published(self) -> bool:
        return self.published_at is not None

    def __str__(self):
        return f"{self.event_type} {self.aggregate_type}:{self.aggregate_id}"
