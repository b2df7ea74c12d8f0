"""
Therapy session admin configuration.

Sessions are append-only history; the admin is read-only.
"""

from django.contrib import admin

from .models import TherapySession


@admin.register(TherapySession)
class TherapySessionAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "patient",
        "series",
        "session_number",
        "pain_before",
        "pain_after",
        "rating",
        "completed_at",
    ]
    list_filter = ["completed_at", "series__therapy_type"]
    search_fields = ["patient__name", "series__name"]
    ordering = ["-completed_at"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
