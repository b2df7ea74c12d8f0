"""
Patient models.
"""

import uuid

from django.db import models


class Patient(models.Model):
    """
    Patient owned by one instructor.

    ``assigned_series`` and ``current_session`` are only written by the
    assignment manager and the session recorder, always under a row lock.
    ``total_sessions_completed`` is lifetime and survives reassignment.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    instructor_id = models.BigIntegerField(
        db_index=True,
        help_text="Principal id of the owning instructor",
    )

    user_id = models.BigIntegerField(
        null=True,
        blank=True,
        unique=True,
        help_text="Principal id of the patient's own account, if any",
    )

    # ============================================================
    # Demographics
    # ============================================================
    name = models.CharField(max_length=200)
    email = models.EmailField()

    age = models.PositiveSmallIntegerField(null=True, blank=True)

    condition = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Primary complaint, e.g. 'chronic lower back pain'",
    )

    phone = models.CharField(max_length=30, blank=True, default="")
    emergency_contact = models.CharField(max_length=200, blank=True, default="")
    medical_notes = models.TextField(blank=True, default="")

    # ============================================================
    # Therapy progress
    # ============================================================
    assigned_series = models.ForeignKey(
        "catalog.TherapySeries",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_patients",
    )

    current_session = models.PositiveIntegerField(
        default=0,
        help_text="Sessions completed under the current assignment",
    )

    total_sessions_completed = models.PositiveIntegerField(
        default=0,
        help_text="Lifetime completed sessions, never reset",
    )

    assignment_seq = models.PositiveIntegerField(
        default=0,
        help_text="Bumped on every assignment; scopes session numbering",
    )

    series_assigned_at = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "patients"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["instructor_id", "is_active"], name="patients_instructor_active_idx"),
            models.Index(fields=["email"], name="patients_email_idx"),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def has_series(self):
        return self.assigned_series_id is not None
