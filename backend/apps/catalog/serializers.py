"""
Program Catalog serializers.

The ``*InputSerializer`` classes validate service input; the rest shape
output.
"""

from django.conf import settings
from rest_framework import serializers

from apps.core.serializers import InputSerializer

from .models import TherapySeries
from .therapy_types import THERAPY_TYPES, therapy_type_name

MIN_NAME_LENGTH = 3
MAX_POSTURE_MINUTES = 60


class PostureSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    duration = serializers.IntegerField()
    instructions = serializers.CharField(required=False, allow_blank=True)


class PostureInputSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=100)
    name = serializers.CharField(max_length=200)
    duration = serializers.IntegerField(min_value=1, max_value=MAX_POSTURE_MINUTES)
    instructions = serializers.CharField(required=False, allow_blank=True, default="")


class SeriesInputSerializer(InputSerializer):
    """Input for creating or editing a series."""

    name = serializers.CharField(min_length=MIN_NAME_LENGTH, max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    therapy_type = serializers.ChoiceField(choices=list(THERAPY_TYPES))
    difficulty_level = serializers.ChoiceField(choices=TherapySeries.DIFFICULTY_CHOICES, default="beginner")
    postures = PostureInputSerializer(many=True, allow_empty=False)
    total_sessions = serializers.IntegerField(min_value=1)

    def validate_total_sessions(self, value):
        max_sessions = settings.SOFTZEN_MAX_SERIES_SESSIONS
        if value > max_sessions:
            raise serializers.ValidationError(f"Ensure this value is less than or equal to {max_sessions}.")
        return value

    def validate_postures(self, value):
        return [dict(posture) for posture in value]


class TherapySeriesSerializer(serializers.ModelSerializer):
    """Full serializer for TherapySeries."""

    postures = PostureSerializer(many=True, read_only=True)
    posture_count = serializers.IntegerField(read_only=True)
    therapy_type_name = serializers.SerializerMethodField()

    class Meta:
        model = TherapySeries
        fields = [
            "id",
            "instructor_id",
            "name",
            "description",
            "therapy_type",
            "therapy_type_name",
            "difficulty_level",
            "postures",
            "posture_count",
            "total_sessions",
            "estimated_duration",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_therapy_type_name(self, obj):
        return therapy_type_name(obj.therapy_type)


class TherapySeriesListSerializer(TherapySeriesSerializer):
    """List serializer with usage stats attached by ``list_series``."""

    assigned_patients_count = serializers.IntegerField(read_only=True)
    total_sessions_count = serializers.IntegerField(read_only=True)
    avg_pain_improvement = serializers.FloatField(read_only=True)

    class Meta(TherapySeriesSerializer.Meta):
        fields = TherapySeriesSerializer.Meta.fields + [
            "assigned_patients_count",
            "total_sessions_count",
            "avg_pain_improvement",
        ]
        read_only_fields = fields


class AssignedPatientSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    email = serializers.EmailField()
    current_session = serializers.IntegerField()
    series_assigned_at = serializers.DateTimeField()


class TherapySeriesDetailSerializer(TherapySeriesSerializer):
    """Detail serializer; instructors also get the assigned patients."""

    assigned_patients = serializers.SerializerMethodField()

    class Meta(TherapySeriesSerializer.Meta):
        fields = TherapySeriesSerializer.Meta.fields + ["assigned_patients"]
        read_only_fields = fields

    def get_assigned_patients(self, obj):
        patients = getattr(obj, "assigned_patient_list", None)
        if patients is None:
            return None
        return AssignedPatientSerializer(patients, many=True).data


class TherapyTypeSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()
    duration = serializers.IntegerField()
    difficulty = serializers.CharField()
    postures = PostureSerializer(many=True)
