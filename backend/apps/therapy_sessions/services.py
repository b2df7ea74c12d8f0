"""
Session read and edit services.

Recording lives in ``recorder``; everything here either reads history or
edits the two non-structural fields (comments, rating).
"""

import structlog
from django.db import transaction

from apps.analytics.aggregator import session_summary
from apps.core.exceptions import AppValidationError
from apps.core.principal import ROLE_PATIENT, require_role
from apps.patients.repositories import PatientRepository

from .models import TherapySession
from .recorder import validate_session_input
from .repositories import SessionRepository

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = ("comments", "rating")


def get_sessions_for_patient(patient_id, principal):
    """
    Session history of one patient with summary stats.

    Shared by the instructor "patient sessions" view and the patient
    "my sessions" view. Returns ``(patient, sessions, stats)``.
    """
    patient = PatientRepository.get_accessible(patient_id, principal)
    sessions = list(SessionRepository.for_patient(patient))
    return patient, sessions, session_summary(sessions)


def get_my_sessions(principal):
    require_role(principal, ROLE_PATIENT)
    patient = PatientRepository.get_for_principal(principal)
    return get_sessions_for_patient(patient.id, principal)


def get_session(session_id, principal) -> TherapySession:
    return SessionRepository.get_visible(session_id, principal)


def update_session(principal, session_id, data) -> TherapySession:
    """
    Edit comments and/or rating of the caller's own session.

    Structural fields (pain levels, numbering, timestamps) are immutable.
    """
    require_role(principal, ROLE_PATIENT)
    changes = {key: data[key] for key in EDITABLE_FIELDS if key in data}
    if not changes:
        raise AppValidationError(
            message="No valid fields to update",
            detail=f"Updatable fields: {', '.join(EDITABLE_FIELDS)}",
            code="NO_UPDATE_FIELDS",
        )

    cleaned = validate_session_input(changes, partial=True)

    with transaction.atomic():
        session = SessionRepository.get_visible(session_id, principal, for_update=True)
        for field, value in cleaned.items():
            setattr(session, field, value)
        session.save(update_fields=list(cleaned) + ["updated_at"])

    logger.info("session_updated", session_id=str(session.id), fields=sorted(cleaned))
    return session
