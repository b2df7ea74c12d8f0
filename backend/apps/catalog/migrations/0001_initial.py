import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="TherapySeries",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("instructor_id", models.BigIntegerField(db_index=True, help_text="Principal id of the owning instructor")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "therapy_type",
                    models.CharField(
                        choices=[
                            ("back_pain", "Back Pain"),
                            ("neck_pain", "Neck Pain"),
                            ("stress_relief", "Stress Relief"),
                            ("flexibility", "Flexibility"),
                            ("strength", "Strength"),
                        ],
                        max_length=50,
                    ),
                ),
                ("postures", models.JSONField(default=list, help_text="Ordered list of posture descriptors")),
                ("total_sessions", models.PositiveSmallIntegerField(help_text="Number of sessions needed to complete the series")),
                (
                    "difficulty_level",
                    models.CharField(
                        choices=[
                            ("beginner", "Beginner"),
                            ("intermediate", "Intermediate"),
                            ("advanced", "Advanced"),
                        ],
                        default="beginner",
                        max_length=20,
                    ),
                ),
                ("estimated_duration", models.PositiveIntegerField(default=0, help_text="Sum of posture durations in minutes")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name_plural": "Therapy series",
                "db_table": "therapy_series",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["instructor_id", "is_active"], name="series_instructor_active_idx"),
                    models.Index(fields=["therapy_type"], name="series_therapy_type_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total_sessions__gte", 1)),
                        name="therapy_series_total_sessions_positive",
                    ),
                ],
            },
        ),
    ]
