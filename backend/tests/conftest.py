"""
Pytest configuration and fixtures.
"""

import itertools

import pytest
from rest_framework.test import APIClient

from apps.catalog.models import TherapySeries
from apps.core.principal import ROLE_INSTRUCTOR, ROLE_PATIENT, Principal
from apps.patients.assignment import assign_series
from apps.patients.models import Patient

INSTRUCTOR_ID = 1
OTHER_INSTRUCTOR_ID = 2
PATIENT_USER_ID = 501

_sequence = itertools.count(1)


@pytest.fixture
def instructor():
    return Principal(id=INSTRUCTOR_ID, role=ROLE_INSTRUCTOR)


@pytest.fixture
def other_instructor():
    return Principal(id=OTHER_INSTRUCTOR_ID, role=ROLE_INSTRUCTOR)


@pytest.fixture
def patient_principal():
    return Principal(id=PATIENT_USER_ID, role=ROLE_PATIENT)


@pytest.fixture
def api_client():
    """Return an API client for testing."""
    return APIClient()


def _client_for(principal):
    client = APIClient()
    client.credentials(
        HTTP_X_PRINCIPAL_ID=str(principal.id),
        HTTP_X_PRINCIPAL_ROLE=principal.role,
    )
    return client


@pytest.fixture
def instructor_client(instructor):
    return _client_for(instructor)


@pytest.fixture
def other_instructor_client(other_instructor):
    return _client_for(other_instructor)


@pytest.fixture
def patient_client(patient_principal):
    return _client_for(patient_principal)


@pytest.fixture
def sample_postures():
    return [
        {"id": "cat_cow", "name": "Cat-Cow", "duration": 3, "instructions": "Alternate slowly"},
        {"id": "child_pose", "name": "Child's Pose", "duration": 5},
        {"id": "bridge_pose", "name": "Bridge Pose", "duration": 4},
    ]


@pytest.fixture
def sample_series_data(sample_postures):
    """Valid create_series input."""
    return {
        "name": "Lower Back Relief",
        "description": "Gentle sequence for chronic lower back pain",
        "therapy_type": "back_pain",
        "difficulty_level": "beginner",
        "total_sessions": 10,
        "postures": sample_postures,
    }


@pytest.fixture
def sample_session_data():
    """Valid record_session input."""
    return {
        "pain_before": 7,
        "pain_after": 4,
        "comments": "Felt much looser after the bridge pose.",
        "duration_minutes": 25,
        "postures_completed": 3,
        "postures_skipped": 0,
        "rating": 4,
    }


@pytest.fixture
def make_series(sample_postures):
    """Factory for TherapySeries rows, bypassing the service layer."""

    def _make(instructor_id=INSTRUCTOR_ID, **overrides):
        fields = {
            "instructor_id": instructor_id,
            "name": f"Series {next(_sequence)}",
            "therapy_type": "back_pain",
            "postures": sample_postures,
            "total_sessions": 10,
            "estimated_duration": sum(p["duration"] for p in sample_postures),
        }
        fields.update(overrides)
        return TherapySeries.objects.create(**fields)

    return _make


@pytest.fixture
def make_patient():
    """Factory for Patient rows, bypassing the service layer."""

    def _make(instructor_id=INSTRUCTOR_ID, **overrides):
        number = next(_sequence)
        fields = {
            "instructor_id": instructor_id,
            "name": f"Patient {number}",
            "email": f"patient{number}@example.com",
        }
        fields.update(overrides)
        return Patient.objects.create(**fields)

    return _make


@pytest.fixture
def series(make_series):
    return make_series(name="Lower Back Relief", total_sessions=3)


@pytest.fixture
def assigned_patient(make_patient, series, instructor):
    """Patient linked to ``patient_principal`` and assigned to ``series``."""
    patient = make_patient(name="Alice Williams", user_id=PATIENT_USER_ID)
    return assign_series(instructor, patient.id, series.id)
