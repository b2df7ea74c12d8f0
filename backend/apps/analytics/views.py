"""
Dashboard views.

Dashboards are plain row-oriented dicts; DRF's JSON encoder handles the
UUIDs, dates and datetimes inside them.
"""

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.permissions import IsInstructor, IsPatient

from .services import instructor_dashboard, patient_dashboard


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def instructor_dashboard_view(request):
    """
    GET /api/v1/dashboard/instructor/

    overview, recent_activity, pain_trends, therapy_types, patients_progress
    """
    return Response(instructor_dashboard(request.user))


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsPatient])
def patient_dashboard_view(request):
    """GET /api/v1/dashboard/patient/"""
    return Response(patient_dashboard(request.user))
