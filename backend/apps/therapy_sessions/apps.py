from django.apps import AppConfig


class TherapySessionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.therapy_sessions"
    verbose_name = "Therapy Sessions"
