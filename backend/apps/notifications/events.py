"""
Domain events handed to the notification collaborator.

Everything here is fire-and-forget. ``publish`` and ``log_analytics_event``
catch and log their own failures so a broken broker or a full disk never
fails the operation that raised the event.
"""

from dataclasses import asdict, dataclass
from typing import Optional

import structlog
from django.db import DatabaseError, transaction
from prometheus_client import Counter

from .models import AnalyticsEvent

logger = structlog.get_logger(__name__)

EVENTS_PUBLISHED_TOTAL = Counter(
    "softzen_events_published_total",
    "Domain events handed to the notification queue",
    ["event", "status"],  # queued, skipped, error
)
SIDE_EFFECT_FAILURES_TOTAL = Counter(
    "softzen_side_effect_failures_total",
    "Best-effort side effects that failed and were swallowed",
    ["kind"],  # notification, analytics
)


@dataclass(frozen=True)
class SeriesAssigned:
    patient_id: str
    series_id: str

    name = "series_assigned"


@dataclass(frozen=True)
class SessionCompleted:
    patient_id: str
    session_id: str
    session_number: int
    pain_improvement: int

    name = "session_completed"


def publish(event, recipient_id: Optional[int]):
    """
    Queue delivery of ``event`` to ``recipient_id``.

    Call it from ``transaction.on_commit`` so nothing is announced for a
    write that was rolled back.
    """
    if recipient_id is None:
        logger.info("event_skipped_no_recipient", event_name=event.name)
        EVENTS_PUBLISHED_TOTAL.labels(event=event.name, status="skipped").inc()
        return

    # Local import keeps the task module (and Celery app) out of model loading
    from .tasks import deliver_notification

    try:
        deliver_notification.delay(recipient_id, event.name, asdict(event))
    except Exception:
        SIDE_EFFECT_FAILURES_TOTAL.labels(kind="notification").inc()
        EVENTS_PUBLISHED_TOTAL.labels(event=event.name, status="error").inc()
        logger.exception(
            "event_publish_failed",
            event_name=event.name,
            recipient_id=recipient_id,
        )
        return

    EVENTS_PUBLISHED_TOTAL.labels(event=event.name, status="queued").inc()
    logger.info("event_published", event_name=event.name, recipient_id=recipient_id)


def log_analytics_event(user_id, event_type, data=None):
    """
    Append an AnalyticsEvent row inside its own savepoint.

    Returns the created row, or None when the write failed.
    """
    try:
        with transaction.atomic():
            return AnalyticsEvent.objects.create(
                user_id=user_id,
                event_type=event_type,
                event_data=data or {},
            )
    except DatabaseError:
        SIDE_EFFECT_FAILURES_TOTAL.labels(kind="analytics").inc()
        logger.exception("analytics_event_failed", event_type=event_type)
        return None
