"""
Patient service layer.
"""

from datetime import timedelta

import structlog
from django.db import transaction
from django.db.models import Avg, Count, F, Max, Q, Sum
from django.utils import timezone

from apps.core.exceptions import AppValidationError, ConflictError
from apps.core.numbers import average, round_half_up
from apps.core.principal import ROLE_INSTRUCTOR, ROLE_PATIENT, require_role
from apps.core.serializers import validate_input
from apps.notifications.events import log_analytics_event
from apps.therapy_sessions.progress import progress_for_patient

from .models import Patient
from .repositories import PatientRepository
from .serializers import PatientInputSerializer

logger = structlog.get_logger(__name__)

PROFILE_FIELDS = (
    "name",
    "email",
    "age",
    "condition",
    "phone",
    "emergency_contact",
    "medical_notes",
    "user_id",
)
STATUS_FILTERS = ("active", "completed", "unassigned")


def validate_patient_fields(data, partial=False):
    """Validate patient profile input, reporting every violation at once."""
    return validate_input(PatientInputSerializer, data, partial=partial)


def _ensure_email_free(instructor_id, email, exclude_id=None):
    if PatientRepository.email_taken(instructor_id, email, exclude_id=exclude_id):
        raise ConflictError(
            message="A patient with this email already exists",
            detail=f"Email {email} is already registered",
            code="PATIENT_EXISTS",
        )


def _ensure_account_free(user_id, exclude_id=None):
    if PatientRepository.account_linked(user_id, exclude_id=exclude_id):
        raise ConflictError(
            message="This account is already linked to a patient",
            detail=f"User {user_id} already has a patient record",
            code="PATIENT_ACCOUNT_LINKED",
        )


def create_patient(principal, data) -> Patient:
    require_role(principal, ROLE_INSTRUCTOR)
    cleaned = validate_patient_fields(data)
    _ensure_email_free(principal.id, cleaned["email"])
    if cleaned.get("user_id") is not None:
        _ensure_account_free(cleaned["user_id"])

    patient = Patient.objects.create(instructor_id=principal.id, **cleaned)

    logger.info("patient_created", patient_id=str(patient.id), instructor_id=principal.id)
    log_analytics_event(principal.id, "patient_created", {"patient_id": str(patient.id)})
    return patient


def update_patient(principal, patient_id, data) -> Patient:
    """
    Update profile fields. Progress fields are not writable here; they
    belong to the assignment manager and the session recorder.
    """
    require_role(principal, ROLE_INSTRUCTOR)
    changes = {key: data[key] for key in PROFILE_FIELDS if key in data}
    if not changes:
        raise AppValidationError(
            message="No valid fields to update",
            detail=f"Updatable fields: {', '.join(PROFILE_FIELDS)}",
            code="NO_UPDATE_FIELDS",
        )

    cleaned = validate_patient_fields(changes, partial=True)

    with transaction.atomic():
        patient = PatientRepository.get_owned(patient_id, principal.id, for_update=True)
        if "email" in cleaned:
            _ensure_email_free(principal.id, cleaned["email"], exclude_id=patient.id)
        if cleaned.get("user_id") is not None:
            _ensure_account_free(cleaned["user_id"], exclude_id=patient.id)

        for field, value in cleaned.items():
            setattr(patient, field, value)
        patient.save(update_fields=list(cleaned) + ["updated_at"])

    logger.info("patient_updated", patient_id=str(patient.id), fields=sorted(cleaned))
    return patient


def deactivate_patient(principal, patient_id):
    """
    Soft-delete a patient. Rows are never removed while history exists;
    an inactive patient no longer counts as an assignment of its series.
    """
    require_role(principal, ROLE_INSTRUCTOR)

    with transaction.atomic():
        patient = PatientRepository.get_owned(patient_id, principal.id, for_update=True)
        patient.is_active = False
        patient.deleted_at = timezone.now()
        patient.save(update_fields=["is_active", "deleted_at", "updated_at"])

    logger.info("patient_deactivated", patient_id=str(patient.id))
    log_analytics_event(principal.id, "patient_deactivated", {"patient_id": str(patient.id)})


def list_patients(principal, search=None, status=None):
    """
    Active patients of the instructor with session stats and progress.

    ``status``: ``active`` (series in progress), ``completed`` or
    ``unassigned``. Unknown values raise AppValidationError.
    """
    require_role(principal, ROLE_INSTRUCTOR)
    queryset = PatientRepository.list_for_instructor(principal.id)

    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) | Q(email__icontains=search) | Q(condition__icontains=search)
        )

    if status:
        if status not in STATUS_FILTERS:
            raise AppValidationError(
                detail=f"status: must be one of {', '.join(STATUS_FILTERS)}",
            )
        if status == "unassigned":
            queryset = queryset.filter(assigned_series__isnull=True)
        elif status == "completed":
            queryset = queryset.filter(
                assigned_series__isnull=False,
                current_session__gte=F("assigned_series__total_sessions"),
            )
        else:
            queryset = queryset.filter(
                assigned_series__isnull=False,
                current_session__lt=F("assigned_series__total_sessions"),
            )

    queryset = queryset.annotate(
        sessions_count=Count("sessions"),
        avg_pain_improvement=Avg(F("sessions__pain_before") - F("sessions__pain_after")),
        avg_rating=Avg("sessions__rating"),
        last_session_at=Max("sessions__completed_at"),
        total_practice_minutes=Sum("sessions__duration_minutes"),
    )

    patients = list(queryset)
    for patient in patients:
        patient.progress = progress_for_patient(patient)
        patient.avg_pain_improvement = (
            round_half_up(patient.avg_pain_improvement, 1)
            if patient.avg_pain_improvement is not None else 0
        )
        patient.avg_rating = (
            round_half_up(patient.avg_rating, 1) if patient.avg_rating is not None else 0
        )
        patient.total_practice_hours = round_half_up((patient.total_practice_minutes or 0) / 60, 1)
    return patients


def get_patient(principal, patient_id) -> Patient:
    patient = PatientRepository.get_accessible(patient_id, principal)
    patient.progress = progress_for_patient(patient)
    return patient


def get_patient_progress(principal, patient_id, days=30):
    """
    Progress overview and metrics of one patient over the last ``days``.

    Returns ``{"patient", "progress", "metrics", "series"}``; ``progress``
    and ``series`` are None when no series is assigned.
    """
    patient = PatientRepository.get_accessible(patient_id, principal)
    progress = progress_for_patient(patient)
    if progress is None:
        return {"patient": patient, "progress": None, "metrics": None, "series": None}

    since = timezone.now() - timedelta(days=days)
    sessions = list(
        patient.sessions.filter(completed_at__gte=since).values(
            "pain_before", "pain_after", "rating", "duration_minutes",
        )
    )
    metrics = {
        "window_days": days,
        "sessions_in_window": len(sessions),
        "avg_pain_improvement": average(s["pain_before"] - s["pain_after"] for s in sessions),
        "avg_rating": average(s["rating"] for s in sessions),
        "avg_duration": average(s["duration_minutes"] for s in sessions),
    }
    return {
        "patient": patient,
        "progress": progress,
        "metrics": metrics,
        "series": patient.assigned_series,
    }


def get_patient_series(principal):
    """
    The calling patient's assigned series with current progress.

    Returns ``(patient, series, progress)``; series and progress are None
    when nothing is assigned.
    """
    require_role(principal, ROLE_PATIENT)
    patient = PatientRepository.get_for_principal(principal)
    return patient, patient.assigned_series, progress_for_patient(patient)
