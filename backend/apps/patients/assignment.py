"""
Assignment manager
==================
Binds a patient to exactly one therapy series.

Both operations run inside a transaction holding the patient row lock, the
same lock the session recorder takes, so an assignment can never interleave
with a session being recorded for that patient.
"""

import structlog
from django.db import transaction
from django.utils import timezone
from prometheus_client import Counter

from apps.catalog.repositories import SeriesRepository
from apps.core.exceptions import ConflictError
from apps.core.principal import ROLE_INSTRUCTOR, require_role
from apps.notifications.events import SeriesAssigned, log_analytics_event, publish

from .models import Patient
from .repositories import PatientRepository

logger = structlog.get_logger(__name__)

ASSIGNMENT_OPERATIONS_TOTAL = Counter(
    "softzen_assignment_operations_total",
    "Series assignment operations",
    ["operation", "status"],  # assign/unassign, success/conflict
)


def _check_assignable(series):
    problems = []
    if not series.postures:
        problems.append("Series has no postures")
    if series.total_sessions is None or series.total_sessions <= 0:
        problems.append("Series total_sessions must be positive")
    if problems:
        ASSIGNMENT_OPERATIONS_TOTAL.labels(operation="assign", status="conflict").inc()
        raise ConflictError(
            message="Series cannot be assigned",
            detail=problems,
            code="SERIES_NOT_ASSIGNABLE",
        )


def assign_series(principal, patient_id, series_id) -> Patient:
    """
    Assign ``series_id`` to ``patient_id`` and restart progress at 0.

    Progress under a previous series is abandoned; its sessions stay as
    history and the lifetime counter is untouched.
    """
    require_role(principal, ROLE_INSTRUCTOR)

    with transaction.atomic():
        patient = PatientRepository.get_owned(patient_id, principal.id, for_update=True)
        series = SeriesRepository.get_owned(series_id, principal.id, for_update=True)
        _check_assignable(series)

        previous_series_id = patient.assigned_series_id
        patient.assigned_series = series
        patient.current_session = 0
        patient.assignment_seq += 1
        patient.series_assigned_at = timezone.now()
        patient.save(update_fields=[
            "assigned_series",
            "current_session",
            "assignment_seq",
            "series_assigned_at",
            "updated_at",
        ])

        event = SeriesAssigned(patient_id=str(patient.id), series_id=str(series.id))
        recipient_id = patient.user_id
        transaction.on_commit(lambda: publish(event, recipient_id), robust=True)
        transaction.on_commit(lambda: log_analytics_event(principal.id, "series_assigned", {
            "patient_id": event.patient_id,
            "series_id": event.series_id,
            "previous_series_id": str(previous_series_id) if previous_series_id else None,
            "therapy_type": series.therapy_type,
        }), robust=True)

    ASSIGNMENT_OPERATIONS_TOTAL.labels(operation="assign", status="success").inc()
    logger.info(
        "series_assigned",
        patient_id=str(patient.id),
        series_id=str(series.id),
        reassigned=previous_series_id is not None,
    )
    return patient


def unassign_series(principal, patient_id) -> Patient:
    """Clear the patient's series and reset progress. Session history stays."""
    require_role(principal, ROLE_INSTRUCTOR)

    with transaction.atomic():
        patient = PatientRepository.get_owned(patient_id, principal.id, for_update=True)
        previous_series_id = patient.assigned_series_id

        patient.assigned_series = None
        patient.current_session = 0
        patient.series_assigned_at = None
        patient.save(update_fields=[
            "assigned_series",
            "current_session",
            "series_assigned_at",
            "updated_at",
        ])

        if previous_series_id is not None:
            transaction.on_commit(lambda: log_analytics_event(principal.id, "series_unassigned", {
                "patient_id": str(patient.id),
                "series_id": str(previous_series_id),
            }), robust=True)

    ASSIGNMENT_OPERATIONS_TOTAL.labels(operation="unassign", status="success").inc()
    logger.info(
        "series_unassigned",
        patient_id=str(patient.id),
        had_series=previous_series_id is not None,
    )
    return patient
