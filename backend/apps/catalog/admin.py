"""
Program Catalog admin configuration.
"""

from django.contrib import admin

from .models import TherapySeries


@admin.register(TherapySeries)
class TherapySeriesAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "therapy_type",
        "difficulty_level",
        "total_sessions",
        "instructor_id",
        "is_active",
        "created_at",
    ]
    list_filter = ["therapy_type", "difficulty_level", "is_active"]
    search_fields = ["name", "description"]
    readonly_fields = ["id", "estimated_duration", "created_at", "updated_at"]
    ordering = ["-created_at"]
