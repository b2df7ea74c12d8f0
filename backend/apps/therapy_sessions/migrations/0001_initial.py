import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("patients", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="TherapySession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("assignment_seq", models.PositiveIntegerField(help_text="Patient.assignment_seq at the time the session was recorded")),
                ("session_number", models.PositiveIntegerField(help_text="1-based position within the assignment")),
                ("pain_before", models.PositiveSmallIntegerField()),
                ("pain_after", models.PositiveSmallIntegerField()),
                ("mood_before", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("mood_after", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("comments", models.TextField()),
                ("duration_minutes", models.PositiveIntegerField(blank=True, null=True)),
                ("postures_completed", models.PositiveSmallIntegerField(default=0)),
                ("postures_skipped", models.PositiveSmallIntegerField(default=0)),
                ("rating", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "patient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sessions",
                        to="patients.patient",
                    ),
                ),
                (
                    "series",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sessions",
                        to="catalog.therapyseries",
                    ),
                ),
            ],
            options={
                "db_table": "therapy_sessions",
                "ordering": ["-completed_at"],
                "indexes": [
                    models.Index(fields=["patient", "completed_at"], name="sessions_patient_completed_idx"),
                    models.Index(fields=["series", "completed_at"], name="sessions_series_completed_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("patient", "assignment_seq", "session_number"),
                        name="unique_session_number_per_assignment",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("session_number__gte", 1)),
                        name="session_number_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("pain_before__gte", 0), ("pain_before__lte", 10)),
                        name="pain_before_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("pain_after__gte", 0), ("pain_after__lte", 10)),
                        name="pain_after_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("rating__isnull", True), models.Q(("rating__gte", 1), ("rating__lte", 5)), _connector="OR"),
                        name="rating_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("mood_before__isnull", True),
                            models.Q(("mood_before__gte", 1), ("mood_before__lte", 5)),
                            _connector="OR",
                        ),
                        name="mood_before_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("mood_after__isnull", True),
                            models.Q(("mood_after__gte", 1), ("mood_after__lte", 5)),
                            _connector="OR",
                        ),
                        name="mood_after_range",
                    ),
                ],
            },
        ),
    ]
