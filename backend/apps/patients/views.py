"""
Patient views.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.catalog.serializers import TherapySeriesSerializer
from apps.core.exceptions import AppValidationError
from apps.core.permissions import IsInstructor, IsPatient
from apps.therapy_sessions.progress import progress_for_patient
from apps.therapy_sessions.serializers import SessionStatsSerializer, TherapySessionSerializer
from apps.therapy_sessions.services import get_sessions_for_patient

from . import assignment, services
from .serializers import (
    AssignSeriesSerializer,
    PatientListSerializer,
    PatientSerializer,
    ProgressMetricsSerializer,
    ProgressSerializer,
)

DEFAULT_PROGRESS_DAYS = 30


def _days_param(request):
    raw = request.query_params.get("days")
    if raw is None:
        return DEFAULT_PROGRESS_DAYS
    try:
        days = int(raw)
    except ValueError:
        days = 0
    if days < 1:
        raise AppValidationError(detail="days: must be a positive integer")
    return days


class PatientViewSet(viewsets.ViewSet):
    """
    list: Active patients of the instructor with session stats
    retrieve: One patient (patients may read their own record)
    create: Register a patient
    partial_update: Edit profile fields
    destroy: Soft-delete a patient
    assign_series / unassign_series: Manage the series assignment
    progress: Progress and windowed metrics
    sessions: Session history with summary stats
    my_series: The calling patient's assigned series
    """

    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_permissions(self):
        if self.action in ("retrieve", "progress", "sessions"):
            return [IsAuthenticated()]
        if self.action == "my_series":
            return [IsAuthenticated(), IsPatient()]
        return [IsAuthenticated(), IsInstructor()]

    def list(self, request):
        patients = services.list_patients(
            request.user,
            search=request.query_params.get("search"),
            status=request.query_params.get("status"),
        )
        serializer = PatientListSerializer(patients, many=True)
        return Response({"count": len(patients), "results": serializer.data})

    def retrieve(self, request, pk=None):
        patient = services.get_patient(request.user, pk)
        return Response(PatientSerializer(patient).data)

    def create(self, request):
        patient = services.create_patient(request.user, request.data)
        return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        patient = services.update_patient(request.user, pk, request.data)
        return Response(PatientSerializer(patient).data)

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    def destroy(self, request, pk=None):
        services.deactivate_patient(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="assign-series")
    def assign_series(self, request, pk=None):
        serializer = AssignSeriesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        patient = assignment.assign_series(request.user, pk, serializer.validated_data["series_id"])
        patient.progress = progress_for_patient(patient)
        return Response(PatientSerializer(patient).data)

    @action(detail=True, methods=["post"], url_path="unassign-series")
    def unassign_series(self, request, pk=None):
        patient = assignment.unassign_series(request.user, pk)
        return Response(PatientSerializer(patient).data)

    @action(detail=True, methods=["get"])
    def progress(self, request, pk=None):
        result = services.get_patient_progress(request.user, pk, days=_days_param(request))
        progress = result["progress"]
        return Response({
            "patient_id": str(result["patient"].id),
            "progress": ProgressSerializer(progress).data if progress else None,
            "metrics": ProgressMetricsSerializer(result["metrics"]).data if result["metrics"] else None,
            "series": TherapySeriesSerializer(result["series"]).data if result["series"] else None,
            "current_session": result["patient"].current_session,
            "total_sessions_completed": result["patient"].total_sessions_completed,
        })

    @action(detail=True, methods=["get"])
    def sessions(self, request, pk=None):
        patient, sessions, stats = get_sessions_for_patient(pk, request.user)
        return Response({
            "patient_id": str(patient.id),
            "sessions": TherapySessionSerializer(sessions, many=True).data,
            "stats": SessionStatsSerializer(stats).data,
        })

    @action(detail=False, methods=["get"], url_path="me/series")
    def my_series(self, request):
        patient, series, progress = services.get_patient_series(request.user)
        if series is None:
            return Response({"series": None, "progress": None, "message": "No series assigned"})
        return Response({
            "series": TherapySeriesSerializer(series).data,
            "progress": ProgressSerializer(progress).data,
            "current_session": patient.current_session,
            "sessions_remaining": max(0, series.total_sessions - patient.current_session),
        })
