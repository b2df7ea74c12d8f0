"""
Celery tasks for notification delivery.
"""

import structlog
from celery import shared_task
from django.db import DatabaseError
from prometheus_client import Counter

from .models import Notification

logger = structlog.get_logger(__name__)

NOTIFICATIONS_DELIVERED_TOTAL = Counter(
    "softzen_notifications_delivered_total",
    "Notifications stored for recipients",
    ["type"],
)


def render_notification(event_type, payload):
    """Return ``(title, message)`` for an event payload."""
    if event_type == "series_assigned":
        return (
            "New therapy series assigned",
            "Your instructor assigned you a new therapy series. Your progress starts at session 1.",
        )
    if event_type == "session_completed":
        improvement = payload.get("pain_improvement", 0)
        if improvement > 0:
            detail = f"pain improved by {improvement} point(s)"
        elif improvement < 0:
            detail = f"pain increased by {abs(improvement)} point(s)"
        else:
            detail = "pain level unchanged"
        return (
            "Session completed",
            f"A patient completed session {payload.get('session_number')}: {detail}.",
        )
    return ("Notification", event_type.replace("_", " ").capitalize())


@shared_task(
    bind=True,
    autoretry_for=(DatabaseError,),
    retry_backoff=30,
    max_retries=3,
)
def deliver_notification(self, recipient_id: int, event_type: str, payload: dict):
    """
    Store an in-app notification for ``recipient_id``.

    Retried with backoff on database errors; the triggering write is
    already committed by the time this runs.
    """
    title, message = render_notification(event_type, payload)
    notification = Notification.objects.create(
        user_id=recipient_id,
        type=event_type,
        title=title,
        message=message,
        data=payload,
    )

    NOTIFICATIONS_DELIVERED_TOTAL.labels(type=event_type).inc()
    logger.info(
        "notification_delivered",
        notification_id=str(notification.id),
        event_type=event_type,
        recipient_id=recipient_id,
        retry_count=self.request.retries,
    )
    return str(notification.id)
