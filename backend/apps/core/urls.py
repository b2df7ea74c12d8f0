"""
API URL configuration.
Includes all app routes.
"""

from django.urls import include, path

urlpatterns = [
    path("series/", include("apps.catalog.urls")),
    path("patients/", include("apps.patients.urls")),
    path("sessions/", include("apps.therapy_sessions.urls")),
    path("dashboard/", include("apps.analytics.urls")),
    path("reports/", include("apps.reports.urls")),
]
