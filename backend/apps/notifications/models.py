"""
Notification and analytics event models.

Both tables are written best-effort: losing a row here never rolls back
the clinical write that triggered it.
"""

import uuid

from django.db import models


class Notification(models.Model):
    """In-app notification for a principal (instructor or patient)."""

    TYPE_CHOICES = [
        ("series_assigned", "Series assigned"),
        ("session_completed", "Session completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user_id = models.BigIntegerField(
        db_index=True,
        help_text="Principal id of the recipient",
    )

    type = models.CharField(max_length=50, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user_id", "is_read"], name="notifications_user_read_idx"),
        ]

    def __str__(self):
        return f"{self.type} -> {self.user_id}"


class AnalyticsEvent(models.Model):
    """Append-only product analytics log."""

    user_id = models.BigIntegerField(null=True, blank=True)
    event_type = models.CharField(max_length=50, db_index=True)
    event_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "analytics_events"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event_type", "created_at"], name="analytics_type_created_idx"),
        ]

    def __str__(self):
        return f"{self.event_type} ({self.created_at:%Y-%m-%d %H:%M})"
