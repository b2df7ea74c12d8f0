"""
Patient serializers.

``PatientInputSerializer`` validates service input; the rest shape output.
"""

from rest_framework import serializers

from apps.core.serializers import InputSerializer

from .models import Patient


class PatientInputSerializer(InputSerializer):
    """Input for creating or editing a patient profile."""

    name = serializers.CharField(min_length=2, max_length=200)
    email = serializers.EmailField(max_length=254)
    age = serializers.IntegerField(min_value=1, max_value=120, required=False, allow_null=True)
    condition = serializers.CharField(max_length=500, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    emergency_contact = serializers.CharField(max_length=200, required=False, allow_blank=True)
    medical_notes = serializers.CharField(required=False, allow_blank=True)
    user_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_email(self, value):
        return value.lower()


class ProgressSerializer(serializers.Serializer):
    percentage = serializers.IntegerField()
    is_completed = serializers.BooleanField()
    next_session_number = serializers.IntegerField(allow_null=True)


class AssignedSeriesSerializer(serializers.Serializer):
    """Compact view of the series embedded in patient payloads."""

    id = serializers.UUIDField()
    name = serializers.CharField()
    therapy_type = serializers.CharField()
    difficulty_level = serializers.CharField()
    total_sessions = serializers.IntegerField()
    estimated_duration = serializers.IntegerField()


class PatientSerializer(serializers.ModelSerializer):
    """Full serializer for Patient."""

    assigned_series = AssignedSeriesSerializer(read_only=True, allow_null=True)
    progress = serializers.SerializerMethodField()

    class Meta:
        model = Patient
        fields = [
            "id",
            "instructor_id",
            "user_id",
            "name",
            "email",
            "age",
            "condition",
            "phone",
            "emergency_contact",
            "medical_notes",
            "assigned_series",
            "current_session",
            "total_sessions_completed",
            "series_assigned_at",
            "progress",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_progress(self, obj):
        progress = getattr(obj, "progress", None)
        return progress.to_dict() if progress is not None else None


class PatientListSerializer(PatientSerializer):
    """List serializer with the session stats attached by ``list_patients``."""

    sessions_count = serializers.IntegerField(read_only=True)
    avg_pain_improvement = serializers.FloatField(read_only=True)
    avg_rating = serializers.FloatField(read_only=True)
    last_session_at = serializers.DateTimeField(read_only=True, allow_null=True)
    total_practice_hours = serializers.FloatField(read_only=True)

    class Meta(PatientSerializer.Meta):
        fields = [
            "id",
            "name",
            "email",
            "age",
            "condition",
            "assigned_series",
            "current_session",
            "total_sessions_completed",
            "progress",
            "sessions_count",
            "avg_pain_improvement",
            "avg_rating",
            "last_session_at",
            "total_practice_hours",
            "created_at",
        ]
        read_only_fields = fields


class AssignSeriesSerializer(serializers.Serializer):
    series_id = serializers.UUIDField()


class ProgressMetricsSerializer(serializers.Serializer):
    window_days = serializers.IntegerField()
    sessions_in_window = serializers.IntegerField()
    avg_pain_improvement = serializers.FloatField()
    avg_rating = serializers.FloatField()
    avg_duration = serializers.FloatField()
