"""
Session recorder
================
Persists one completed session and advances the patient's progress.

Flow:
1. validate every input field, reporting all violations at once
2. load the active patient (row locked for the rest of the transaction)
3. reject when no series is assigned
4. reject when the series is already completed
5. session_number = current_session + 1
6. insert the session and bump both counters, all or nothing
7. after commit, notify the instructor and log analytics (best-effort)

The patient row lock serializes recorders and the assignment manager per
patient. The counter update is additionally guarded by the values read in
step 2 and the unique (patient, assignment, session_number) constraint
backs both up; losing either check raises ConcurrencyError. Nothing here
retries: a retry could count the same practice twice.
"""

import time
from dataclasses import dataclass

import structlog
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from prometheus_client import Counter, Histogram

from apps.core.exceptions import (
    AppValidationError,
    BaseAppException,
    ConcurrencyError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from apps.core.serializers import validate_input
from apps.notifications.events import SessionCompleted, log_analytics_event, publish
from apps.patients.models import Patient
from apps.patients.repositories import PatientRepository

from .models import TherapySession
from .progress import Progress, compute_progress
from .serializers import SessionInputSerializer

logger = structlog.get_logger(__name__)

SESSIONS_RECORDED_TOTAL = Counter(
    "softzen_sessions_recorded_total",
    "Session recording attempts",
    ["status"],  # success, validation_error, not_found, conflict, concurrency
)
SESSION_RECORD_DURATION = Histogram(
    "softzen_session_record_duration_seconds",
    "Time spent recording a session",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)


@dataclass
class RecordedSession:
    session: TherapySession
    patient: Patient
    progress: Progress
    message: str


# ============================================================
# Validation
# ============================================================

def validate_session_input(data, partial=False):
    """
    Validate session input and return the cleaned values.

    Every violated field is reported at once. With ``partial=True`` only the
    fields present in ``data`` are checked.
    """
    return validate_input(SessionInputSerializer, data, partial=partial)


def improvement_message(session_number, pain_improvement):
    if pain_improvement > 0:
        detail = f"Great work! Your pain level dropped by {pain_improvement} point(s)."
    elif pain_improvement < 0:
        detail = "Pain went up a little this time; steady practice brings the benefits."
    else:
        detail = "You kept your pain level stable. Keep it up!"
    return f"Session {session_number} completed. {detail}"


# ============================================================
# Recorder
# ============================================================

def _load_patient(principal, patient_id):
    if principal.is_patient:
        patient = PatientRepository.get_for_principal(principal, for_update=True)
        if patient_id is not None and str(patient.id) != str(patient_id):
            raise NotFoundError(message="Patient not found", code="PATIENT_NOT_FOUND")
        return patient
    if principal.is_instructor:
        if patient_id is None:
            raise AppValidationError(detail="patient_id: this field is required")
        return PatientRepository.get_owned(patient_id, principal.id, for_update=True)
    raise PermissionDeniedError(code="ACCESS_DENIED")


def _record(principal, cleaned, patient_id):
    with transaction.atomic():
        # Step 2: load and lock
        patient = _load_patient(principal, patient_id)
        series = patient.assigned_series

        # Step 3
        if series is None:
            raise ConflictError(
                message="No series assigned",
                detail="Ask your instructor to assign a therapy series",
                code="NO_SERIES_ASSIGNED",
            )

        # Step 4
        if patient.current_session >= series.total_sessions:
            raise ConflictError(
                message="Series already completed",
                detail=f"All {series.total_sessions} sessions of this series are recorded",
                code="SERIES_COMPLETED",
            )

        # Step 5
        expected = patient.current_session
        session_number = expected + 1

        # Step 6: session row first, then the guarded counter increment
        session = TherapySession.objects.create(
            patient=patient,
            series=series,
            assignment_seq=patient.assignment_seq,
            session_number=session_number,
            completed_at=timezone.now(),
            **cleaned,
        )

        advanced = Patient.objects.filter(
            pk=patient.pk,
            assigned_series_id=series.id,
            assignment_seq=patient.assignment_seq,
            current_session=expected,
        ).update(
            current_session=F("current_session") + 1,
            total_sessions_completed=F("total_sessions_completed") + 1,
            updated_at=timezone.now(),
        )
        if advanced != 1:
            raise ConcurrencyError(
                detail=f"Patient progress moved past session {expected} during the write",
            )

        patient.current_session = session_number
        patient.total_sessions_completed += 1

        # Step 7 runs only once the rows above are durable
        event = SessionCompleted(
            patient_id=str(patient.id),
            session_id=str(session.id),
            session_number=session_number,
            pain_improvement=session.pain_improvement,
        )
        instructor_id = patient.instructor_id
        transaction.on_commit(lambda: publish(event, instructor_id), robust=True)
        transaction.on_commit(lambda: log_analytics_event(principal.id, "session_completed", {
            "patient_id": event.patient_id,
            "session_id": event.session_id,
            "session_number": session_number,
            "pain_improvement": event.pain_improvement,
            "duration_minutes": session.duration_minutes,
            "rating": session.rating,
        }), robust=True)

    return session, patient, series


def record_session(principal, data, patient_id=None) -> RecordedSession:
    """
    Record a completed session for a patient.

    Patient principals record for themselves; instructors may record on
    behalf of one of their patients by passing ``patient_id``.
    """
    start = time.monotonic()
    try:
        cleaned = validate_session_input(data)
        try:
            session, patient, series = _record(principal, cleaned, patient_id)
        except IntegrityError as exc:
            raise ConcurrencyError(
                detail="Another session was recorded for this patient at the same time",
            ) from exc
    except BaseAppException as exc:
        SESSIONS_RECORDED_TOTAL.labels(status=_status_label(exc)).inc()
        logger.info("session_record_rejected", code=exc.code, principal_id=principal.id)
        raise
    finally:
        SESSION_RECORD_DURATION.observe(time.monotonic() - start)

    progress = compute_progress(patient.current_session, series.total_sessions)

    SESSIONS_RECORDED_TOTAL.labels(status="success").inc()
    logger.info(
        "session_recorded",
        patient_id=str(patient.id),
        session_id=str(session.id),
        session_number=session.session_number,
        progress_percentage=progress.percentage,
        is_completed=progress.is_completed,
    )

    return RecordedSession(
        session=session,
        patient=patient,
        progress=progress,
        message=improvement_message(session.session_number, session.pain_improvement),
    )


def _status_label(exc) -> str:
    if isinstance(exc, AppValidationError):
        return "validation_error"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, ConcurrencyError):
        return "concurrency"
    if isinstance(exc, ConflictError):
        return "conflict"
    return "error"
