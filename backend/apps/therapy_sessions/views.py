"""
Therapy session views.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.permissions import IsPatient
from apps.patients.serializers import ProgressSerializer

from . import services
from .recorder import record_session
from .serializers import SessionStatsSerializer, TherapySessionSerializer


class TherapySessionViewSet(viewsets.ViewSet):
    """
    create: Record a completed session
    retrieve: One session (role scoped)
    partial_update: Edit comments and rating of an own session
    my: The calling patient's history with stats
    """

    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_permissions(self):
        if self.action in ("partial_update", "update", "my"):
            return [IsAuthenticated(), IsPatient()]
        return [IsAuthenticated()]

    def create(self, request):
        result = record_session(
            request.user,
            request.data,
            patient_id=request.data.get("patient_id"),
        )
        return Response(
            {
                "session": TherapySessionSerializer(result.session).data,
                "progress": ProgressSerializer(result.progress).data,
                "current_session": result.patient.current_session,
                "total_sessions_completed": result.patient.total_sessions_completed,
                "message": result.message,
            },
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, pk=None):
        session = services.get_session(pk, request.user)
        return Response(TherapySessionSerializer(session).data)

    def partial_update(self, request, pk=None):
        session = services.update_session(request.user, pk, request.data)
        return Response(TherapySessionSerializer(session).data)

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    @action(detail=False, methods=["get"])
    def my(self, request):
        patient, sessions, stats = services.get_my_sessions(request.user)
        return Response({
            "patient_id": str(patient.id),
            "sessions": TherapySessionSerializer(sessions, many=True).data,
            "stats": SessionStatsSerializer(stats).data,
        })
