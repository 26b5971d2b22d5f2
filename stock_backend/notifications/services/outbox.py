# notifications/services/outbox.py

"""
======================================================
PATH: notifications/services/outbox.py
======================================================
NOTIFICATION OUTBOX

Guarantees:
- enqueue() writes the event in the CALLER's transaction; if the business
  change rolls back, so does the notification.
- Dispatch runs after commit (transaction.on_commit) and is best-effort:
  failures are logged + recorded on the row, never raised to the caller.
- dispatch_pending() retries anything still unpublished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from notifications.models import NotificationEvent
from notifications.services.email import get_email_sender

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5

SUBJECTS = {
    "delivery.over_delivery_flagged": "Over-delivery awaiting approval: {reference}",
    "delivery.over_delivery_approved": "Over-delivery approved: {reference}",
    "delivery.over_delivery_rejected": "Over-delivery rejected: {reference}",
    "transfer.submitted": "Transfer awaiting approval: {reference}",
    "transfer.approved": "Transfer approved: {reference}",
    "transfer.rejected": "Transfer rejected: {reference}",
    "ncr.created": "New NCR raised: {reference}",
    "period.closed": "Period closed: {reference}",
}


@dataclass(frozen=True)
class DispatchResult:
    event_id: object
    success: bool
    error: str | None = None


def enqueue(*, event_type: str, aggregate_type: str, aggregate_id, payload: dict | None = None):
    if not getattr(settings, "NOTIFICATIONS_ENABLED", True):
        return None

    event = NotificationEvent.objects.create(
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=str(aggregate_id),
        payload=payload or {},
    )
    transaction.on_commit(lambda: dispatch_event(event.id))
    return event


def render_message(event: NotificationEvent) -> tuple[str, str]:
    payload = event.payload or {}
    reference = payload.get("reference") or event.aggregate_id
    subject = SUBJECTS.get(event.event_type, "{reference}").format(reference=reference)

    lines = [f"{key}: {value}" for key, value in sorted(payload.items())]
    return subject, "\n".join(lines)


def dispatch_event(event_id) -> DispatchResult:
    event = NotificationEvent.objects.filter(id=event_id).first()
    if event is None or event.published_at is not None:
        return DispatchResult(event_id=event_id, success=True)

    subject, body = render_message(event)
    recipients = list(getattr(settings, "NOTIFICATION_RECIPIENTS", []) or [])

    try:
        get_email_sender().send(subject=subject, body=body, recipients=recipients)
    except Exception as exc:
        logger.warning(
            "Notification dispatch failed for %s (%s): %s",
            event.id,
            event.event_type,
            exc,
        )
        NotificationEvent.objects.filter(id=event.id).update(
            publish_attempts=event.publish_attempts + 1,
            last_error=str(exc)[:2000],
        )
        return DispatchResult(event_id=event.id, success=False, error=str(exc))

    NotificationEvent.objects.filter(id=event.id).update(
        published_at=timezone.now(),
        publish_attempts=event.publish_attempts + 1,
        last_error="",
    )
    return DispatchResult(event_id=event.id, success=True)


def dispatch_pending(*, limit: int = 100) -> list[DispatchResult]:
    ids = list(
        NotificationEvent.objects.filter(
            published_at__isnull=True, publish_attempts__lt=MAX_ATTEMPTS
        )
        .order_by("created_at")
        .values_list("id", flat=True)[:limit]
    )
    return [dispatch_event(event_id) for event_id in ids]
