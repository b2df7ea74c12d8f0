"""
Therapy session model.
"""

import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone


class TherapySession(models.Model):
    """
    One completed practice session, append-only.

    Only ``comments`` and ``rating`` may change after creation.
    ``session_number`` is unique per patient within one assignment
    (``assignment_seq``); history from earlier assignments is kept.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    patient = models.ForeignKey(
        "patients.Patient",
        on_delete=models.PROTECT,
        related_name="sessions",
    )

    series = models.ForeignKey(
        "catalog.TherapySeries",
        on_delete=models.PROTECT,
        related_name="sessions",
    )

    assignment_seq = models.PositiveIntegerField(
        help_text="Patient.assignment_seq at the time the session was recorded",
    )

    session_number = models.PositiveIntegerField(
        help_text="1-based position within the assignment",
    )

    # ============================================================
    # Self-reported outcome
    # ============================================================
    pain_before = models.PositiveSmallIntegerField()
    pain_after = models.PositiveSmallIntegerField()

    mood_before = models.PositiveSmallIntegerField(null=True, blank=True)
    mood_after = models.PositiveSmallIntegerField(null=True, blank=True)

    comments = models.TextField()

    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    postures_completed = models.PositiveSmallIntegerField(default=0)
    postures_skipped = models.PositiveSmallIntegerField(default=0)

    rating = models.PositiveSmallIntegerField(null=True, blank=True)

    completed_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "therapy_sessions"
        ordering = ["-completed_at"]
        indexes = [
            models.Index(fields=["patient", "completed_at"], name="sessions_patient_completed_idx"),
            models.Index(fields=["series", "completed_at"], name="sessions_series_completed_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["patient", "assignment_seq", "session_number"],
                name="unique_session_number_per_assignment",
            ),
            models.CheckConstraint(
                condition=Q(session_number__gte=1),
                name="session_number_positive",
            ),
            models.CheckConstraint(
                condition=Q(pain_before__gte=0, pain_before__lte=10),
                name="pain_before_range",
            ),
            models.CheckConstraint(
                condition=Q(pain_after__gte=0, pain_after__lte=10),
                name="pain_after_range",
            ),
            models.CheckConstraint(
                condition=Q(rating__isnull=True) | Q(rating__gte=1, rating__lte=5),
                name="rating_range",
            ),
            models.CheckConstraint(
                condition=Q(mood_before__isnull=True) | Q(mood_before__gte=1, mood_before__lte=5),
                name="mood_before_range",
            ),
            models.CheckConstraint(
                condition=Q(mood_after__isnull=True) | Q(mood_after__gte=1, mood_after__lte=5),
                name="mood_after_range",
            ),
        ]

    def __str__(self):
        return f"Session {self.session_number} of patient {self.patient_id}"

    @property
    def pain_improvement(self):
        return self.pain_before - self.pain_after
