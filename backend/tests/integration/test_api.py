"""
Integration tests for the HTTP API.
"""

import csv
import io

import pytest
from django.urls import reverse
from rest_framework import status

from apps.catalog.models import TherapySeries
from apps.notifications.models import Notification
from apps.patients.models import Patient
from apps.therapy_sessions.models import TherapySession


@pytest.mark.django_db
class TestAuthentication:
    """Principal headers are required and validated."""

    def test_missing_principal_is_401(self, api_client):
        response = api_client.get(reverse("series-list"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["code"] == "NOT_AUTHENTICATED"

    def test_unknown_role_is_401(self, api_client):
        api_client.credentials(HTTP_X_PRINCIPAL_ID="1", HTTP_X_PRINCIPAL_ROLE="admin")
        response = api_client.get(reverse("series-list"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_non_numeric_id_is_401(self, api_client):
        api_client.credentials(HTTP_X_PRINCIPAL_ID="abc", HTTP_X_PRINCIPAL_ROLE="instructor")
        response = api_client.get(reverse("series-list"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_patient_cannot_create_series(self, patient_client, sample_series_data):
        response = patient_client.post(reverse("series-list"), sample_series_data, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "PERMISSION_DENIED"

    def test_request_id_is_echoed(self, instructor_client):
        response = instructor_client.get(reverse("series-list"), HTTP_X_REQUEST_ID="abc123")
        assert response["X-Request-ID"] == "abc123"


@pytest.mark.django_db
class TestSeriesAPI:
    """Integration tests for the series endpoints."""

    def test_create_and_list(self, instructor_client, sample_series_data):
        response = instructor_client.post(reverse("series-list"), sample_series_data, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["estimated_duration"] == 12
        assert data["therapy_type_name"] == "Back Pain"

        listing = instructor_client.get(reverse("series-list")).json()
        assert listing["count"] == 1
        assert listing["results"][0]["assigned_patients_count"] == 0

    def test_validation_errors_are_enumerated(self, instructor_client):
        response = instructor_client.post(reverse("series-list"), {"name": "x"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert len(body["detail"]) >= 3

    def test_structural_edit_in_use_is_409(self, instructor_client, assigned_patient, series):
        url = reverse("series-detail", args=[series.id])

        response = instructor_client.patch(url, {"total_sessions": 12}, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "SERIES_IN_USE"
        assert TherapySeries.objects.get(pk=series.pk).total_sessions == 3

    def test_delete_in_use_is_409(self, instructor_client, assigned_patient, series):
        response = instructor_client.delete(reverse("series-detail", args=[series.id]))
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_delete_unused(self, instructor_client, series):
        response = instructor_client.delete(reverse("series-detail", args=[series.id]))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert TherapySeries.objects.get(pk=series.pk).is_active is False

    def test_duplicate(self, instructor_client, series):
        response = instructor_client.post(reverse("series-duplicate", args=[series.id]))

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["name"] == "Lower Back Relief (Copy)"

    def test_other_instructor_gets_404(self, other_instructor_client, series):
        response = other_instructor_client.get(reverse("series-detail", args=[series.id]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "SERIES_NOT_FOUND"

    def test_therapy_types(self, patient_client):
        response = patient_client.get(reverse("therapy-type-list"))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()) == 5
        detail = patient_client.get(reverse("therapy-type-detail", args=["strength"]))
        assert detail.json()["name"] == "Strength"


@pytest.mark.django_db
class TestPatientAPI:
    """Integration tests for the patient endpoints."""

    def test_create_assign_and_progress(self, instructor_client, series):
        created = instructor_client.post(
            reverse("patient-list"),
            {"name": "Bob Martinez", "email": "bob@example.com", "age": 58},
            format="json",
        )
        assert created.status_code == status.HTTP_201_CREATED
        patient_id = created.json()["id"]

        assigned = instructor_client.post(
            reverse("patient-assign-series", args=[patient_id]),
            {"series_id": str(series.id)},
            format="json",
        )
        assert assigned.status_code == status.HTTP_200_OK
        assert assigned.json()["assigned_series"]["id"] == str(series.id)
        assert assigned.json()["progress"]["next_session_number"] == 1

        progress = instructor_client.get(reverse("patient-progress", args=[patient_id])).json()
        assert progress["progress"]["percentage"] == 0
        assert progress["metrics"]["sessions_in_window"] == 0

    def test_linked_account_is_409(self, instructor_client, make_patient):
        make_patient(user_id=777)

        response = instructor_client.post(
            reverse("patient-list"),
            {"name": "Bob Martinez", "email": "bob@example.com", "user_id": 777},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "PATIENT_ACCOUNT_LINKED"

    def test_non_numeric_user_id_is_400(self, instructor_client):
        response = instructor_client.post(
            reverse("patient-list"),
            {"name": "Bob Martinez", "email": "bob@example.com", "user_id": "abc"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == ["user_id: A valid integer is required."]

    def test_assign_requires_series_id(self, instructor_client, assigned_patient):
        response = instructor_client.post(
            reverse("patient-assign-series", args=[assigned_patient.id]), {}, format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unassign(self, instructor_client, assigned_patient):
        response = instructor_client.post(reverse("patient-unassign-series", args=[assigned_patient.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["assigned_series"] is None

    def test_list_status_filter(self, instructor_client, assigned_patient, make_patient):
        make_patient(name="Zed")

        data = instructor_client.get(reverse("patient-list"), {"status": "unassigned"}).json()

        assert [p["name"] for p in data["results"]] == ["Zed"]

    def test_bad_days_param(self, instructor_client, assigned_patient):
        response = instructor_client.get(reverse("patient-progress", args=[assigned_patient.id]), {"days": "0"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_patient_reads_own_series(self, patient_client, assigned_patient, series):
        data = patient_client.get(reverse("patient-my-series")).json()

        assert data["series"]["id"] == str(series.id)
        assert data["sessions_remaining"] == 3

    def test_delete_is_soft(self, instructor_client, assigned_patient):
        response = instructor_client.delete(reverse("patient-detail", args=[assigned_patient.id]))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert Patient.objects.get(pk=assigned_patient.pk).is_active is False


@pytest.mark.django_db
class TestSessionAPI:
    """Integration tests for session recording over HTTP."""

    def test_record_until_completed(self, patient_client, assigned_patient, series, sample_session_data):
        url = reverse("session-list")
        for expected_number in range(1, series.total_sessions + 1):
            response = patient_client.post(url, sample_session_data, format="json")
            assert response.status_code == status.HTTP_201_CREATED
            assert response.json()["session"]["session_number"] == expected_number

        assert response.json()["progress"] == {
            "percentage": 100,
            "is_completed": True,
            "next_session_number": None,
        }

        extra = patient_client.post(url, sample_session_data, format="json")
        assert extra.status_code == status.HTTP_409_CONFLICT
        assert extra.json()["code"] == "SERIES_COMPLETED"

    def test_invalid_session_is_400_with_all_errors(self, patient_client, assigned_patient):
        response = patient_client.post(
            reverse("session-list"),
            {"pain_before": 11, "pain_after": 3, "comments": "short", "rating": 9},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert len(response.json()["detail"]) == 3
        assert TherapySession.objects.count() == 0
        assert Patient.objects.get(pk=assigned_patient.pk).current_session == 0

    def test_fractional_pain_is_400(self, patient_client, assigned_patient, sample_session_data):
        sample_session_data["pain_before"] = 10.7

        response = patient_client.post(reverse("session-list"), sample_session_data, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == ["pain_before: A valid integer is required."]
        assert TherapySession.objects.count() == 0

    def test_no_series_is_409(self, patient_client, make_patient, patient_principal, sample_session_data):
        make_patient(user_id=patient_principal.id)

        response = patient_client.post(reverse("session-list"), sample_session_data, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "NO_SERIES_ASSIGNED"

    def test_record_notifies_instructor(
        self, patient_client, assigned_patient, instructor, sample_session_data,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            response = patient_client.post(reverse("session-list"), sample_session_data, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert Notification.objects.filter(user_id=instructor.id, type="session_completed").count() == 1

    def test_my_sessions_and_edit(self, patient_client, assigned_patient, sample_session_data):
        created = patient_client.post(reverse("session-list"), sample_session_data, format="json").json()
        session_id = created["session"]["id"]

        mine = patient_client.get(reverse("session-my")).json()
        assert mine["stats"]["total_sessions"] == 1
        assert mine["sessions"][0]["id"] == session_id

        edited = patient_client.patch(
            reverse("session-detail", args=[session_id]), {"rating": 2}, format="json",
        )
        assert edited.status_code == status.HTTP_200_OK
        assert edited.json()["rating"] == 2

    def test_instructor_sees_patient_sessions(
        self, instructor_client, patient_client, assigned_patient, sample_session_data
    ):
        patient_client.post(reverse("session-list"), sample_session_data, format="json")

        data = instructor_client.get(reverse("patient-sessions", args=[assigned_patient.id])).json()

        assert len(data["sessions"]) == 1
        assert data["sessions"][0]["improvement_category"] == "good"


@pytest.mark.django_db
class TestDashboardAndReportAPI:
    """Integration tests for dashboards and exports."""

    def test_instructor_dashboard(self, instructor_client, patient_client, assigned_patient, sample_session_data):
        patient_client.post(reverse("session-list"), sample_session_data, format="json")

        response = instructor_client.get(reverse("dashboard-instructor"))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert set(data) >= {"overview", "recent_activity", "pain_trends", "therapy_types", "patients_progress"}
        assert data["overview"]["total_sessions"] == 1

    def test_empty_dashboard_averages_are_numbers(self, instructor_client):
        overview = instructor_client.get(reverse("dashboard-instructor")).json()["overview"]

        assert overview["avg_pain_improvement"] == 0
        assert overview["avg_rating"] == 0

    def test_patient_dashboard_requires_patient(self, instructor_client):
        response = instructor_client.get(reverse("dashboard-patient"))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_patient_dashboard(self, patient_client, assigned_patient):
        data = patient_client.get(reverse("dashboard-patient")).json()
        assert data["series"]["is_completed"] is False

    def test_export_csv(self, instructor_client, assigned_patient):
        response = instructor_client.get(reverse("export-patients"), {"format": "csv"})

        assert response.status_code == status.HTTP_200_OK
        assert response["Content-Type"].startswith("text/csv")
        assert "attachment;" in response["Content-Disposition"]
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8"))))
        assert rows[1][1] == "Alice Williams"

    def test_export_rejects_bad_format(self, instructor_client):
        response = instructor_client.get(reverse("export-patients"), {"format": "pdf"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_export_session_history(self, instructor_client, assigned_patient):
        response = instructor_client.get(
            reverse("export-patient-sessions", args=[assigned_patient.id]), {"format": "xlsx"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response["Content-Disposition"].endswith('.xlsx"')
