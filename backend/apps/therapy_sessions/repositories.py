"""
Session persistence access.
"""

from django.core.exceptions import ValidationError as DjangoValidationError

from apps.core.exceptions import NotFoundError, PermissionDeniedError

from .models import TherapySession


class SessionRepository:

    @staticmethod
    def for_patient(patient):
        """All sessions of ``patient``, newest first, across assignments."""
        return (
            TherapySession.objects.filter(patient=patient)
            .select_related("series")
            .order_by("-completed_at", "-session_number")
        )

    @staticmethod
    def get_visible(session_id, principal, for_update=False) -> TherapySession:
        """
        A session its principal may see: instructors see their patients'
        sessions, patients their own.
        """
        queryset = TherapySession.objects.select_related("patient", "series")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))

        if principal.is_instructor:
            queryset = queryset.filter(patient__instructor_id=principal.id)
        elif principal.is_patient:
            queryset = queryset.filter(patient__user_id=principal.id)
        else:
            raise PermissionDeniedError(code="ACCESS_DENIED")

        try:
            return queryset.get(id=session_id, patient__is_active=True)
        except (TherapySession.DoesNotExist, DjangoValidationError):
            raise NotFoundError(
                message="Session not found",
                detail=f"No session {session_id}",
                code="SESSION_NOT_FOUND",
            )
