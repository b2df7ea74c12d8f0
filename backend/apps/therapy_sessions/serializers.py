"""
Therapy session serializers.
"""

from django.conf import settings
from rest_framework import serializers

from apps.analytics.aggregator import improvement_category
from apps.core.serializers import InputSerializer

from .models import TherapySession

DEFAULT_DURATION_MINUTES = 30


class TherapySessionSerializer(serializers.ModelSerializer):
    """Full serializer for TherapySession."""

    pain_improvement = serializers.IntegerField(read_only=True)
    improvement_category = serializers.SerializerMethodField()
    series_name = serializers.CharField(source="series.name", read_only=True)
    therapy_type = serializers.CharField(source="series.therapy_type", read_only=True)

    class Meta:
        model = TherapySession
        fields = [
            "id",
            "patient_id",
            "series_id",
            "series_name",
            "therapy_type",
            "session_number",
            "pain_before",
            "pain_after",
            "pain_improvement",
            "improvement_category",
            "mood_before",
            "mood_after",
            "comments",
            "duration_minutes",
            "postures_completed",
            "postures_skipped",
            "rating",
            "completed_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_improvement_category(self, obj):
        return improvement_category(obj.pain_improvement)


class SessionInputSerializer(InputSerializer):
    """
    Input for recording a session. Only ``comments`` and ``rating`` are
    accepted when editing one.
    """

    pain_before = serializers.IntegerField(min_value=0, max_value=10)
    pain_after = serializers.IntegerField(min_value=0, max_value=10)
    mood_before = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True, default=None)
    mood_after = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True, default=None)
    comments = serializers.CharField(trim_whitespace=True)
    duration_minutes = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    postures_completed = serializers.IntegerField(min_value=0, required=False, default=0)
    postures_skipped = serializers.IntegerField(min_value=0, required=False, default=0)
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True, default=None)

    def validate_comments(self, value):
        min_length = settings.SOFTZEN_MIN_COMMENT_LENGTH
        if len(value) < min_length:
            raise serializers.ValidationError(f"Ensure this field has at least {min_length} characters.")
        return value

    def validate_duration_minutes(self, value):
        return DEFAULT_DURATION_MINUTES if value is None else value


class SessionStatsSerializer(serializers.Serializer):
    total_sessions = serializers.IntegerField()
    avg_pain_before = serializers.FloatField()
    avg_pain_after = serializers.FloatField()
    avg_improvement = serializers.FloatField()
    avg_duration = serializers.FloatField()
    avg_rating = serializers.FloatField()
    best_improvement = serializers.IntegerField()
    total_postures_completed = serializers.IntegerField()
    total_postures_skipped = serializers.IntegerField()
    total_practice_hours = serializers.FloatField()
    first_session_at = serializers.DateTimeField(allow_null=True)
    last_session_at = serializers.DateTimeField(allow_null=True)
