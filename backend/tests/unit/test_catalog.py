"""
Unit tests for the program catalog.
"""

import pytest

from apps.catalog import services
from apps.catalog.models import TherapySeries
from apps.catalog.therapy_types import get_therapy_type, list_therapy_types, therapy_type_name
from apps.core.exceptions import AppValidationError, ConflictError, NotFoundError, PermissionDeniedError
from apps.patients.assignment import unassign_series
from apps.patients.models import Patient
from apps.therapy_sessions.recorder import record_session


class TestTherapyTypes:
    def test_lists_all_types(self):
        ids = {t["id"] for t in list_therapy_types()}
        assert ids == {"back_pain", "neck_pain", "stress_relief", "flexibility", "strength"}

    def test_filters(self):
        assert {t["id"] for t in list_therapy_types(difficulty="intermediate")} == {"flexibility", "strength"}
        assert [t["id"] for t in list_therapy_types(search="stress")] == ["stress_relief"]

    def test_lookup(self):
        assert get_therapy_type("neck_pain")["name"] == "Neck Pain"
        assert get_therapy_type("unknown") is None
        assert therapy_type_name("unknown") == "unknown"


@pytest.mark.django_db
class TestCreateSeries:
    """Tests for create_series and validation."""

    def test_create_computes_estimated_duration(self, instructor, sample_series_data):
        series = services.create_series(instructor, sample_series_data)

        assert series.instructor_id == instructor.id
        assert series.estimated_duration == 12
        assert series.posture_count == 3
        assert series.postures[1]["instructions"] == ""

    def test_reports_every_violation(self, instructor):
        with pytest.raises(AppValidationError) as exc_info:
            services.create_series(instructor, {
                "name": "ab",
                "therapy_type": "juggling",
                "postures": [{"id": "x", "name": "", "duration": 90}],
                "total_sessions": 0,
                "difficulty_level": "expert",
            })

        detail = exc_info.value.detail
        assert any(d.startswith("name") for d in detail)
        assert any(d.startswith("therapy_type") for d in detail)
        assert "postures[1].name: This field may not be blank." in detail
        assert "postures[1].duration: Ensure this value is less than or equal to 60." in detail
        assert any(d.startswith("total_sessions") for d in detail)
        assert any(d.startswith("difficulty_level") for d in detail)

    def test_requires_postures(self, instructor, sample_series_data):
        sample_series_data["postures"] = []
        with pytest.raises(AppValidationError) as exc_info:
            services.create_series(instructor, sample_series_data)
        assert "postures: This list may not be empty." in exc_info.value.detail

    def test_fractional_numbers_are_rejected(self, instructor, sample_series_data):
        sample_series_data["postures"][0]["duration"] = 60.9
        sample_series_data["total_sessions"] = 7.5

        with pytest.raises(AppValidationError) as exc_info:
            services.create_series(instructor, sample_series_data)

        assert exc_info.value.detail == [
            "postures[1].duration: A valid integer is required.",
            "total_sessions: A valid integer is required.",
        ]
        assert TherapySeries.objects.count() == 0

    def test_posture_fields_checked_on_partial_update(self, series, instructor):
        with pytest.raises(AppValidationError) as exc_info:
            services.update_series(instructor, series.id, {"postures": [{"id": "plank", "duration": 2}]})
        assert exc_info.value.detail == ["postures[1].name: This field is required."]

    def test_total_sessions_upper_bound(self, instructor, sample_series_data):
        sample_series_data["total_sessions"] = 51
        with pytest.raises(AppValidationError):
            services.create_series(instructor, sample_series_data)

    def test_duplicate_name_conflict(self, instructor, sample_series_data):
        services.create_series(instructor, sample_series_data)

        with pytest.raises(ConflictError) as exc_info:
            services.create_series(instructor, sample_series_data)
        assert exc_info.value.code == "DUPLICATE_SERIES_NAME"

    def test_same_name_for_other_instructor_is_fine(self, instructor, other_instructor, sample_series_data):
        services.create_series(instructor, sample_series_data)
        services.create_series(other_instructor, sample_series_data)
        assert TherapySeries.objects.count() == 2

    def test_patient_cannot_create(self, patient_principal, sample_series_data):
        with pytest.raises(PermissionDeniedError):
            services.create_series(patient_principal, sample_series_data)


@pytest.mark.django_db
class TestUpdateAndDeleteSeries:
    """Structural edits and deletes are blocked while patients are assigned."""

    def test_structural_edit_of_assigned_series_is_conflict(self, assigned_patient, series, instructor):
        with pytest.raises(ConflictError) as exc_info:
            services.update_series(instructor, series.id, {"total_sessions": 8})

        assert exc_info.value.code == "SERIES_IN_USE"
        assert any(str(assigned_patient.id) in d for d in exc_info.value.detail)
        series.refresh_from_db()
        assert series.total_sessions == 3

    def test_posture_edit_of_assigned_series_is_conflict(self, assigned_patient, series, instructor):
        with pytest.raises(ConflictError):
            services.update_series(instructor, series.id, {
                "postures": [{"id": "plank", "name": "Plank", "duration": 2}],
            })
        series.refresh_from_db()
        assert len(series.postures) == 3

    def test_non_structural_edit_allowed_while_assigned(self, assigned_patient, series, instructor):
        updated = services.update_series(instructor, series.id, {"name": "Back Relief II", "description": "New"})
        assert updated.name == "Back Relief II"

    def test_structural_edit_allowed_without_assignments(self, series, instructor):
        updated = services.update_series(instructor, series.id, {
            "total_sessions": 5,
            "postures": [{"id": "plank", "name": "Plank", "duration": 2}],
        })
        assert updated.total_sessions == 5
        assert updated.estimated_duration == 2

    def test_inactive_patient_does_not_block(self, assigned_patient, series, instructor):
        Patient.objects.filter(pk=assigned_patient.pk).update(is_active=False)
        updated = services.update_series(instructor, series.id, {"total_sessions": 6})
        assert updated.total_sessions == 6

    def test_no_editable_fields(self, series, instructor):
        with pytest.raises(AppValidationError) as exc_info:
            services.update_series(instructor, series.id, {"therapy_type": "strength"})
        assert exc_info.value.code == "NO_UPDATE_FIELDS"

    def test_delete_assigned_series_is_conflict(self, assigned_patient, series, instructor):
        with pytest.raises(ConflictError):
            services.delete_series(instructor, series.id)
        series.refresh_from_db()
        assert series.is_active is True

    def test_delete_is_soft(self, assigned_patient, series, instructor):
        unassign_series(instructor, assigned_patient.id)

        services.delete_series(instructor, series.id)

        series.refresh_from_db()
        assert series.is_active is False
        with pytest.raises(NotFoundError):
            services.get_series(instructor, series.id)


@pytest.mark.django_db
class TestSeriesQueries:
    """Tests for duplicate_series, list_series and get_series."""

    def test_duplicate_names_copies(self, series, instructor):
        first = services.duplicate_series(instructor, series.id)
        second = services.duplicate_series(instructor, series.id)

        assert first.name == "Lower Back Relief (Copy)"
        assert second.name == "Lower Back Relief (Copy 2)"
        assert second.postures == series.postures

    def test_list_series_usage_stats(
        self, assigned_patient, series, instructor, patient_principal, sample_session_data, make_series
    ):
        record_session(patient_principal, sample_session_data)
        make_series(name="Unused", therapy_type="strength")

        by_name = {s.name: s for s in services.list_series(instructor)}

        assert by_name["Lower Back Relief"].assigned_patients_count == 1
        assert by_name["Lower Back Relief"].total_sessions_count == 1
        assert by_name["Lower Back Relief"].avg_pain_improvement == 3.0
        assert by_name["Unused"].total_sessions_count == 0
        assert by_name["Unused"].avg_pain_improvement == 0

    def test_list_series_filters_by_type(self, series, make_series, instructor):
        make_series(name="Calm", therapy_type="stress_relief")
        names = [s.name for s in services.list_series(instructor, therapy_type="stress_relief")]
        assert names == ["Calm"]

    def test_get_series_for_instructor_lists_patients(self, assigned_patient, series, instructor):
        result = services.get_series(instructor, series.id)
        assert [p.id for p in result.assigned_patient_list] == [assigned_patient.id]

    def test_patient_only_sees_assigned_series(self, assigned_patient, series, make_series, patient_principal):
        assert services.get_series(patient_principal, series.id).id == series.id

        other = make_series()
        with pytest.raises(NotFoundError):
            services.get_series(patient_principal, other.id)
