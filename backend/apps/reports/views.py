"""
Report export views.
"""

import uuid
from datetime import date

from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from apps.core.exceptions import AppValidationError
from apps.core.permissions import IsInstructor

from .services import ReportService

FORMATS = ("csv", "xlsx")


def _format_param(request, default="xlsx"):
    format_type = request.query_params.get("format", default)
    if format_type not in FORMATS:
        raise AppValidationError(
            message="Invalid format",
            detail="format: use 'csv' or 'xlsx'",
        )
    return format_type


def _parse_date(request, name):
    """Parse a YYYY-MM-DD query param; absent means no bound."""
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise AppValidationError(detail=f"{name}: expected YYYY-MM-DD")


def _uuid_param(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise AppValidationError(detail=f"{name}: must be a valid UUID")


def _file_response(file_bytes, filename, content_type):
    response = HttpResponse(file_bytes, content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def export_patient_report(request):
    """
    Export per-patient progress and outcomes.

    Query params:
    - format: csv or xlsx (default: xlsx)
    - start_date / end_date: session date range (YYYY-MM-DD)
    - patient_id: limit to one patient
    - series_id: limit session stats to one series
    """
    format_type = _format_param(request)
    start_date = _parse_date(request, "start_date")
    end_date = _parse_date(request, "end_date")
    if start_date and end_date and start_date > end_date:
        raise AppValidationError(detail="start_date: must not be after end_date")

    service = ReportService()
    return _file_response(*service.export_patient_report(
        request.user,
        format=format_type,
        start_date=start_date,
        end_date=end_date,
        patient_id=_uuid_param(request, "patient_id"),
        series_id=_uuid_param(request, "series_id"),
    ))


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def export_session_history(request, patient_id):
    """
    Export the session history of one patient.

    Query params:
    - format: csv or xlsx (default: xlsx)
    """
    service = ReportService()
    return _file_response(*service.export_session_history(
        request.user,
        patient_id,
        format=_format_param(request),
    ))
