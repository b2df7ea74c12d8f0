"""
Program Catalog models.
"""

import uuid

from django.db import models

from .therapy_types import THERAPY_TYPE_CHOICES


class TherapySeries(models.Model):
    """
    Instructor-authored therapy program.

    ``postures`` is an ordered list of ``{id, name, duration, instructions}``
    dicts. Postures and ``total_sessions`` are frozen while any active
    patient is assigned to the series.
    """

    DIFFICULTY_CHOICES = [
        ("beginner", "Beginner"),
        ("intermediate", "Intermediate"),
        ("advanced", "Advanced"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    instructor_id = models.BigIntegerField(
        db_index=True,
        help_text="Principal id of the owning instructor",
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")

    therapy_type = models.CharField(max_length=50, choices=THERAPY_TYPE_CHOICES)

    postures = models.JSONField(
        default=list,
        help_text="Ordered list of posture descriptors",
    )

    total_sessions = models.PositiveSmallIntegerField(
        help_text="Number of sessions needed to complete the series",
    )

    difficulty_level = models.CharField(
        max_length=20,
        choices=DIFFICULTY_CHOICES,
        default="beginner",
    )

    estimated_duration = models.PositiveIntegerField(
        default=0,
        help_text="Sum of posture durations in minutes",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "therapy_series"
        ordering = ["-created_at"]
        verbose_name_plural = "Therapy series"
        indexes = [
            models.Index(fields=["instructor_id", "is_active"], name="series_instructor_active_idx"),
            models.Index(fields=["therapy_type"], name="series_therapy_type_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_sessions__gte=1),
                name="therapy_series_total_sessions_positive",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.therapy_type})"

    @property
    def posture_count(self):
        return len(self.postures or [])
