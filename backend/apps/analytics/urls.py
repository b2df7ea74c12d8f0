"""
Dashboard URL configuration.
"""

from django.urls import path

from .views import instructor_dashboard_view, patient_dashboard_view

urlpatterns = [
    path("instructor/", instructor_dashboard_view, name="dashboard-instructor"),
    path("patient/", patient_dashboard_view, name="dashboard-patient"),
]
