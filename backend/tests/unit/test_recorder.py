"""
Unit tests for the session recorder.
"""

from unittest.mock import patch

import pytest

from apps.core.exceptions import (
    AppValidationError,
    ConcurrencyError,
    ConflictError,
    NotFoundError,
)
from apps.notifications.models import AnalyticsEvent, Notification
from apps.patients.assignment import assign_series, unassign_series
from apps.patients.models import Patient
from apps.therapy_sessions.models import TherapySession
from apps.therapy_sessions.recorder import (
    improvement_message,
    record_session,
    validate_session_input,
)


@pytest.mark.django_db
class TestValidateSessionInput:
    """Tests for validate_session_input."""

    def test_valid_input_applies_defaults(self):
        cleaned = validate_session_input({
            "pain_before": 5,
            "pain_after": 3,
            "comments": "  Steady breathing today  ",
        })
        assert cleaned["comments"] == "Steady breathing today"
        assert cleaned["duration_minutes"] == 30
        assert cleaned["postures_completed"] == 0
        assert cleaned["rating"] is None

    def test_reports_every_violation(self):
        with pytest.raises(AppValidationError) as exc_info:
            validate_session_input({
                "pain_before": 11,
                "pain_after": -1,
                "comments": "short",
                "rating": 6,
            })

        detail = exc_info.value.detail
        assert len(detail) == 4
        assert any(d.startswith("pain_before") for d in detail)
        assert any(d.startswith("pain_after") for d in detail)
        assert any(d.startswith("comments") for d in detail)
        assert any(d.startswith("rating") for d in detail)

    def test_missing_pain_is_required(self):
        with pytest.raises(AppValidationError) as exc_info:
            validate_session_input({"comments": "Long enough comment"})
        assert "pain_before: This field is required." in exc_info.value.detail

    def test_comment_length_counts_after_trim(self):
        with pytest.raises(AppValidationError):
            validate_session_input({"pain_before": 1, "pain_after": 1, "comments": "   short    "})

    def test_partial_only_checks_present_fields(self):
        assert validate_session_input({"rating": 5}, partial=True) == {"rating": 5}

    @pytest.mark.parametrize("field,value", [
        ("pain_before", 10.7),
        ("pain_after", "3.5"),
        ("rating", 4.9),
        ("duration_minutes", 12.5),
        ("pain_before", True),
    ])
    def test_non_integer_values_are_rejected(self, field, value):
        data = {"pain_before": 5, "pain_after": 3, "comments": "Steady breathing today", field: value}

        with pytest.raises(AppValidationError) as exc_info:
            validate_session_input(data)
        assert exc_info.value.detail == [f"{field}: A valid integer is required."]

    def test_integral_float_is_accepted(self):
        cleaned = validate_session_input({"pain_before": 6.0, "pain_after": 2, "comments": "Steady breathing today"})
        assert cleaned["pain_before"] == 6


@pytest.mark.django_db
class TestRecordSession:
    """Tests for record_session."""

    def test_fractional_scores_are_not_truncated(self, assigned_patient, patient_principal, sample_session_data):
        sample_session_data.update(pain_before=10.7, rating=4.9)

        with pytest.raises(AppValidationError) as exc_info:
            record_session(patient_principal, sample_session_data)

        assert len(exc_info.value.detail) == 2
        assert TherapySession.objects.count() == 0
        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 0

    def test_records_first_session(self, assigned_patient, patient_principal, sample_session_data):
        result = record_session(patient_principal, sample_session_data)

        assert result.session.session_number == 1
        assert result.session.pain_improvement == 3
        assert result.progress.percentage == 33
        assert result.progress.next_session_number == 2
        assert "dropped by 3" in result.message

        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 1
        assert assigned_patient.total_sessions_completed == 1

    def test_full_series_then_rejects_extra_session(
        self, assigned_patient, patient_principal, sample_session_data, series
    ):
        results = [record_session(patient_principal, sample_session_data) for _ in range(series.total_sessions)]

        assert [r.progress.is_completed for r in results] == [False, False, True]
        assert results[-1].progress.percentage == 100
        assert results[-1].progress.next_session_number is None

        with pytest.raises(ConflictError) as exc_info:
            record_session(patient_principal, sample_session_data)
        assert exc_info.value.code == "SERIES_COMPLETED"
        assert TherapySession.objects.count() == series.total_sessions

    def test_session_numbers_are_contiguous(self, assigned_patient, patient_principal, sample_session_data):
        for _ in range(3):
            record_session(patient_principal, sample_session_data)

        numbers = sorted(
            TherapySession.objects.filter(patient=assigned_patient).values_list("session_number", flat=True)
        )
        assigned_patient.refresh_from_db()
        assert numbers == list(range(1, assigned_patient.current_session + 1))

    def test_invalid_input_does_not_mutate(self, assigned_patient, patient_principal, sample_session_data):
        sample_session_data["pain_before"] = 11

        with pytest.raises(AppValidationError):
            record_session(patient_principal, sample_session_data)

        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 0
        assert TherapySession.objects.count() == 0

    def test_no_series_assigned(self, make_patient, patient_principal, sample_session_data):
        make_patient(user_id=patient_principal.id)

        with pytest.raises(ConflictError) as exc_info:
            record_session(patient_principal, sample_session_data)
        assert exc_info.value.code == "NO_SERIES_ASSIGNED"

    def test_inactive_patient_not_found(self, assigned_patient, patient_principal, sample_session_data):
        Patient.objects.filter(pk=assigned_patient.pk).update(is_active=False)

        with pytest.raises(NotFoundError):
            record_session(patient_principal, sample_session_data)

    def test_instructor_records_on_behalf(self, assigned_patient, instructor, sample_session_data):
        result = record_session(instructor, sample_session_data, patient_id=assigned_patient.id)
        assert result.session.session_number == 1

    def test_instructor_needs_patient_id(self, assigned_patient, instructor, sample_session_data):
        with pytest.raises(AppValidationError):
            record_session(instructor, sample_session_data)

    def test_other_instructor_cannot_record(self, assigned_patient, other_instructor, sample_session_data):
        with pytest.raises(NotFoundError):
            record_session(other_instructor, sample_session_data, patient_id=assigned_patient.id)

    def test_numbering_restarts_after_reassignment(
        self, assigned_patient, patient_principal, instructor, series, sample_session_data
    ):
        record_session(patient_principal, sample_session_data)
        record_session(patient_principal, sample_session_data)

        assign_series(instructor, assigned_patient.id, series.id)
        result = record_session(patient_principal, sample_session_data)

        assert result.session.session_number == 1
        assert result.patient.total_sessions_completed == 3
        assert TherapySession.objects.filter(patient=assigned_patient).count() == 3

    def test_lost_counter_guard_raises_concurrency_error(
        self, assigned_patient, patient_principal, sample_session_data
    ):
        # Another writer advances the counter between our read and our write
        with patch("apps.therapy_sessions.recorder.Patient.objects.filter") as mock_filter:
            mock_filter.return_value.update.return_value = 0
            with pytest.raises(ConcurrencyError):
                record_session(patient_principal, sample_session_data)

        assert TherapySession.objects.count() == 0
        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 0

    def test_duplicate_session_number_raises_concurrency_error(
        self, assigned_patient, patient_principal, series, sample_session_data
    ):
        # A concurrent writer already stored session 1 but our read predates it
        TherapySession.objects.create(
            patient=assigned_patient,
            series=series,
            assignment_seq=assigned_patient.assignment_seq,
            session_number=1,
            pain_before=5,
            pain_after=4,
            comments="Recorded by a concurrent request",
        )

        with pytest.raises(ConcurrencyError):
            record_session(patient_principal, sample_session_data)

        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 0
        assert TherapySession.objects.count() == 1


@pytest.mark.django_db
class TestRecordSessionSideEffects:
    """Side effects run after commit and never fail the write."""

    def test_notifies_instructor_after_commit(
        self, assigned_patient, patient_principal, instructor, sample_session_data,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            result = record_session(patient_principal, sample_session_data)

        notification = Notification.objects.get(user_id=instructor.id, type="session_completed")
        assert notification.data["session_id"] == str(result.session.id)
        assert notification.data["pain_improvement"] == 3
        assert AnalyticsEvent.objects.filter(event_type="session_completed").count() == 1

    def test_nothing_published_before_commit(
        self, assigned_patient, patient_principal, sample_session_data, django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks() as callbacks:
            record_session(patient_principal, sample_session_data)

        assert len(callbacks) == 2
        assert not Notification.objects.filter(type="session_completed").exists()

    def test_notification_failure_is_swallowed(
        self, assigned_patient, patient_principal, sample_session_data, django_capture_on_commit_callbacks,
    ):
        with patch("apps.notifications.tasks.deliver_notification.delay", side_effect=ConnectionError("broker down")):
            with django_capture_on_commit_callbacks(execute=True):
                result = record_session(patient_principal, sample_session_data)

        assert TherapySession.objects.filter(pk=result.session.pk).exists()
        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 1

    def test_unexpected_callback_error_does_not_fail_the_write(
        self, assigned_patient, patient_principal, sample_session_data, django_capture_on_commit_callbacks,
    ):
        with patch("apps.therapy_sessions.recorder.log_analytics_event", side_effect=RuntimeError("boom")):
            with django_capture_on_commit_callbacks(execute=True):
                result = record_session(patient_principal, sample_session_data)

        assert result.session.session_number == 1
        assigned_patient.refresh_from_db()
        assert assigned_patient.current_session == 1

    def test_rejected_session_emits_nothing(
        self, make_patient, patient_principal, sample_session_data, django_capture_on_commit_callbacks,
    ):
        make_patient(user_id=patient_principal.id)

        with django_capture_on_commit_callbacks() as callbacks:
            with pytest.raises(ConflictError):
                record_session(patient_principal, sample_session_data)
        assert callbacks == []


class TestImprovementMessage:
    def test_messages_follow_improvement_sign(self):
        assert "dropped by 2" in improvement_message(3, 2)
        assert "went up" in improvement_message(3, -1)
        assert "stable" in improvement_message(3, 0)
        assert improvement_message(4, 0).startswith("Session 4 completed.")


@pytest.mark.django_db
class TestRecordAfterUnassign:
    def test_unassigned_patient_cannot_record(
        self, assigned_patient, patient_principal, instructor, sample_session_data
    ):
        record_session(patient_principal, sample_session_data)
        unassign_series(instructor, assigned_patient.id)

        with pytest.raises(ConflictError) as exc_info:
            record_session(patient_principal, sample_session_data)

        assert exc_info.value.code == "NO_SERIES_ASSIGNED"
        assert TherapySession.objects.filter(patient=assigned_patient).count() == 1
