"""
Patient admin configuration.
"""

from django.contrib import admin

from .models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "email",
        "instructor_id",
        "assigned_series",
        "current_session",
        "total_sessions_completed",
        "is_active",
    ]
    list_filter = ["is_active"]
    search_fields = ["name", "email", "condition"]
    readonly_fields = [
        "id",
        "current_session",
        "total_sessions_completed",
        "assignment_seq",
        "series_assigned_at",
        "deleted_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["name"]

    fieldsets = (
        (None, {
            "fields": ("id", "instructor_id", "user_id", "name", "email", "age", "condition")
        }),
        ("Contact", {
            "fields": ("phone", "emergency_contact", "medical_notes"),
            "classes": ("collapse",),
        }),
        ("Therapy Progress", {
            "fields": (
                "assigned_series",
                "current_session",
                "total_sessions_completed",
                "assignment_seq",
                "series_assigned_at",
            ),
        }),
        ("Lifecycle", {
            "fields": ("is_active", "deleted_at", "created_at", "updated_at"),
        }),
    )
