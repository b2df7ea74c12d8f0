"""
Program Catalog service layer.

Series are authored by instructors and are read-heavy. Structural fields
(postures, total_sessions) freeze while any active patient is assigned.
"""

import structlog
from django.db import transaction
from django.db.models import Count, F, Q, Sum

from apps.core.exceptions import AppValidationError, ConflictError, NotFoundError
from apps.core.numbers import round_half_up
from apps.core.principal import ROLE_INSTRUCTOR, require_role
from apps.core.serializers import validate_input
from apps.notifications.events import log_analytics_event
from apps.patients.repositories import PatientRepository
from apps.therapy_sessions.models import TherapySession

from .models import TherapySeries
from .repositories import SeriesRepository
from .serializers import SeriesInputSerializer

logger = structlog.get_logger(__name__)

STRUCTURAL_FIELDS = ("postures", "total_sessions")
EDITABLE_FIELDS = ("name", "description", "difficulty_level") + STRUCTURAL_FIELDS


# ============================================================
# Validation
# ============================================================

def validate_series_fields(data, partial=False):
    """
    Validate series input and return the cleaned values.

    With ``partial=True`` only the fields present in ``data`` are checked.
    ``estimated_duration`` is derived whenever postures are given.
    """
    cleaned = validate_input(SeriesInputSerializer, data, partial=partial)
    if "postures" in cleaned:
        cleaned["estimated_duration"] = sum(p["duration"] for p in cleaned["postures"])
    return cleaned


# ============================================================
# Commands
# ============================================================

def create_series(principal, data) -> TherapySeries:
    require_role(principal, ROLE_INSTRUCTOR)
    cleaned = validate_series_fields(data)

    if SeriesRepository.name_taken(principal.id, cleaned["name"]):
        raise ConflictError(
            message="A series with this name already exists",
            detail=f"Series name '{cleaned['name']}' is already in use",
            code="DUPLICATE_SERIES_NAME",
        )

    series = TherapySeries.objects.create(instructor_id=principal.id, **cleaned)

    logger.info(
        "series_created",
        series_id=str(series.id),
        instructor_id=principal.id,
        therapy_type=series.therapy_type,
        posture_count=series.posture_count,
        total_sessions=series.total_sessions,
    )
    log_analytics_event(principal.id, "series_created", {
        "series_id": str(series.id),
        "therapy_type": series.therapy_type,
        "postures_count": series.posture_count,
        "total_sessions": series.total_sessions,
        "estimated_duration": series.estimated_duration,
    })
    return series


def _in_use_error(series, patients, action):
    return ConflictError(
        message=f"Cannot {action} a series with assigned patients",
        detail=[f"Assigned patient: {p.name} ({p.id})" for p in patients],
        code="SERIES_IN_USE",
    )


def update_series(principal, series_id, data) -> TherapySeries:
    """
    Update a series.

    Name, description and difficulty can always change. Postures and
    total_sessions only change while no active patient is assigned;
    otherwise ConflictError is raised and nothing is saved.
    """
    require_role(principal, ROLE_INSTRUCTOR)
    changes = {key: data[key] for key in EDITABLE_FIELDS if key in data}
    if not changes:
        raise AppValidationError(
            message="No valid fields to update",
            detail=f"Updatable fields: {', '.join(EDITABLE_FIELDS)}",
            code="NO_UPDATE_FIELDS",
        )

    with transaction.atomic():
        series = SeriesRepository.get_owned(series_id, principal.id, for_update=True)

        if any(field in changes for field in STRUCTURAL_FIELDS):
            assigned = list(SeriesRepository.active_assignments(series))
            if assigned:
                raise _in_use_error(series, assigned, "modify")

        cleaned = validate_series_fields(changes, partial=True)

        if "name" in cleaned and SeriesRepository.name_taken(
            principal.id, cleaned["name"], exclude_id=series.id
        ):
            raise ConflictError(
                message="A series with this name already exists",
                detail=f"Series name '{cleaned['name']}' is already in use",
                code="DUPLICATE_SERIES_NAME",
            )

        for field, value in cleaned.items():
            setattr(series, field, value)
        series.save()

    logger.info("series_updated", series_id=str(series.id), fields=sorted(cleaned))
    log_analytics_event(principal.id, "series_updated", {
        "series_id": str(series.id),
        "updated_fields": sorted(changes),
    })
    return series


def delete_series(principal, series_id):
    """Soft-delete a series that has no active assignments."""
    require_role(principal, ROLE_INSTRUCTOR)

    with transaction.atomic():
        series = SeriesRepository.get_owned(series_id, principal.id, for_update=True)
        assigned = list(SeriesRepository.active_assignments(series))
        if assigned:
            raise _in_use_error(series, assigned, "delete")

        series.is_active = False
        series.save(update_fields=["is_active", "updated_at"])

    logger.info("series_deleted", series_id=str(series.id))
    log_analytics_event(principal.id, "series_deleted", {"series_id": str(series.id)})


def _copy_name(instructor_id, name):
    candidate = f"{name} (Copy)"
    counter = 1
    while SeriesRepository.name_taken(instructor_id, candidate):
        counter += 1
        candidate = f"{name} (Copy {counter})"
    return candidate


def duplicate_series(principal, series_id) -> TherapySeries:
    require_role(principal, ROLE_INSTRUCTOR)
    original = SeriesRepository.get_owned(series_id, principal.id)

    copy = TherapySeries.objects.create(
        instructor_id=principal.id,
        name=_copy_name(principal.id, original.name),
        description=original.description,
        therapy_type=original.therapy_type,
        postures=original.postures,
        total_sessions=original.total_sessions,
        difficulty_level=original.difficulty_level,
        estimated_duration=original.estimated_duration,
    )

    logger.info("series_duplicated", original_id=str(original.id), series_id=str(copy.id))
    log_analytics_event(principal.id, "series_duplicated", {
        "original_series_id": str(original.id),
        "new_series_id": str(copy.id),
    })
    return copy


# ============================================================
# Queries
# ============================================================

def _session_stats_by_series(series_ids):
    rows = (
        TherapySession.objects.filter(series_id__in=series_ids)
        .values("series_id")
        .annotate(
            count=Count("id"),
            improvement_sum=Sum(F("pain_before") - F("pain_after")),
        )
    )
    return {row["series_id"]: row for row in rows}


def list_series(principal, therapy_type=None):
    """
    Active series of the instructor, newest first, with usage stats
    (``assigned_patients_count``, ``total_sessions_count``,
    ``avg_pain_improvement``) attached to each instance.
    """
    require_role(principal, ROLE_INSTRUCTOR)
    queryset = SeriesRepository.list_for_instructor(principal.id).annotate(
        assigned_patients_count=Count(
            "assigned_patients",
            filter=Q(assigned_patients__is_active=True),
            distinct=True,
        ),
    )
    if therapy_type:
        queryset = queryset.filter(therapy_type=therapy_type)

    series_list = list(queryset)
    stats = _session_stats_by_series([s.id for s in series_list])
    for series in series_list:
        row = stats.get(series.id)
        series.total_sessions_count = row["count"] if row else 0
        series.avg_pain_improvement = (
            round_half_up(row["improvement_sum"] / row["count"], 1) if row else 0
        )
    return series_list


def get_series(principal, series_id) -> TherapySeries:
    """
    Instructors see their own series with the assigned patients attached
    as ``assigned_patient_list``. Patients only see the series they are
    currently assigned to.
    """
    if principal.is_instructor:
        series = SeriesRepository.get_owned(series_id, principal.id)
        series.assigned_patient_list = list(
            SeriesRepository.active_assignments(series).order_by("name")
        )
        return series

    patient = PatientRepository.get_for_principal(principal)
    if patient.assigned_series_id is None or str(patient.assigned_series_id) != str(series_id):
        raise NotFoundError(message="Series not found", code="SERIES_NOT_FOUND")
    return patient.assigned_series
