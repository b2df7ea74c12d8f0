"""
Report export URL configuration.
"""

from django.urls import path

from .views import export_patient_report, export_session_history

urlpatterns = [
    path("patients/export/", export_patient_report, name="export-patients"),
    path(
        "patients/<uuid:patient_id>/sessions/export/",
        export_session_history,
        name="export-patient-sessions",
    ),
]
