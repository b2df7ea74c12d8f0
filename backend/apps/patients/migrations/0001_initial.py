import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Patient",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("instructor_id", models.BigIntegerField(db_index=True, help_text="Principal id of the owning instructor")),
                (
                    "user_id",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Principal id of the patient's own account, if any",
                        null=True,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(max_length=254)),
                ("age", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "condition",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Primary complaint, e.g. 'chronic lower back pain'",
                        max_length=500,
                    ),
                ),
                ("phone", models.CharField(blank=True, default="", max_length=30)),
                ("emergency_contact", models.CharField(blank=True, default="", max_length=200)),
                ("medical_notes", models.TextField(blank=True, default="")),
                ("current_session", models.PositiveIntegerField(default=0, help_text="Sessions completed under the current assignment")),
                ("total_sessions_completed", models.PositiveIntegerField(default=0, help_text="Lifetime completed sessions, never reset")),
                ("assignment_seq", models.PositiveIntegerField(default=0, help_text="Bumped on every assignment; scopes session numbering")),
                ("series_assigned_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assigned_series",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_patients",
                        to="catalog.therapyseries",
                    ),
                ),
            ],
            options={
                "db_table": "patients",
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["instructor_id", "is_active"], name="patients_instructor_active_idx"),
                    models.Index(fields=["email"], name="patients_email_idx"),
                ],
            },
        ),
    ]
