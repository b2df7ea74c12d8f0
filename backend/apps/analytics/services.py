"""
Dashboard services.

Loads lightweight rows from the ORM and hands them to the pure aggregator.
Reads are plain read-committed queries: a dashboard may lag a session
recorded a moment earlier, which is acceptable.
"""

from datetime import timedelta

import structlog
from django.conf import settings
from django.utils import timezone
from prometheus_client import Histogram

from apps.catalog.models import TherapySeries
from apps.core.principal import ROLE_INSTRUCTOR, ROLE_PATIENT, require_role
from apps.notifications.models import Notification
from apps.patients.models import Patient
from apps.patients.repositories import PatientRepository
from apps.therapy_sessions.models import TherapySession
from apps.therapy_sessions.progress import progress_for_patient

from . import aggregator
from .aggregator import PatientRow, SeriesRow, SessionRow

logger = structlog.get_logger(__name__)

DASHBOARD_BUILD_DURATION = Histogram(
    "softzen_dashboard_build_duration_seconds",
    "Time spent building a dashboard",
    ["dashboard"],  # instructor, patient
)

PATIENT_ROW_FIELDS = [
    "id",
    "name",
    "is_active",
    "assigned_series_id",
    "current_session",
    "total_sessions_completed",
    "series_assigned_at",
]
SERIES_ROW_FIELDS = ["id", "name", "therapy_type", "total_sessions", "is_active", "difficulty_level"]
SESSION_ROW_FIELDS = [
    "id",
    "patient_id",
    "series_id",
    "session_number",
    "pain_before",
    "pain_after",
    "completed_at",
    "duration_minutes",
    "rating",
    "postures_completed",
    "postures_skipped",
]

PATIENT_RECENT_SESSIONS = 10
PATIENT_RECENT_NOTIFICATIONS = 5


# ============================================================
# Loaders
# ============================================================

def load_patient_rows(instructor_id):
    queryset = Patient.objects.filter(instructor_id=instructor_id, is_active=True)
    return [PatientRow(**row) for row in queryset.values(*PATIENT_ROW_FIELDS)]


def load_series_rows(instructor_id):
    """All series of the instructor, including soft-deleted ones."""
    queryset = TherapySeries.objects.filter(instructor_id=instructor_id)
    return [SeriesRow(**row) for row in queryset.values(*SERIES_ROW_FIELDS)]


def load_session_rows(instructor_id=None, patient_id=None, since=None):
    """Sessions of an instructor's active patients, or of one patient."""
    queryset = TherapySession.objects.all()
    if instructor_id is not None:
        queryset = queryset.filter(patient__instructor_id=instructor_id, patient__is_active=True)
    if patient_id is not None:
        queryset = queryset.filter(patient_id=patient_id)
    if since is not None:
        queryset = queryset.filter(completed_at__gte=since)
    return [SessionRow(**row) for row in queryset.values(*SESSION_ROW_FIELDS)]


# ============================================================
# Dashboards
# ============================================================

def instructor_dashboard(principal, now=None) -> dict:
    """
    Composes the instructor dashboard from independent rollups:
    overview, recent activity, weekly pain trend, therapy types,
    per-patient progress, per-series stats, day-of-week distribution,
    top patients and insights.
    """
    require_role(principal, ROLE_INSTRUCTOR)
    now = now or timezone.now()

    with DASHBOARD_BUILD_DURATION.labels(dashboard="instructor").time():
        patients = load_patient_rows(principal.id)
        series = load_series_rows(principal.id)
        sessions = load_session_rows(instructor_id=principal.id)

        overview = aggregator.overview_rollup(patients, series, sessions, now=now)
        therapy_types = aggregator.category_rollup(series, patients, sessions)
        dashboard = {
            "overview": overview,
            "recent_activity": aggregator.recent_activity(
                sessions, patients, series, limit=settings.SOFTZEN_RECENT_ACTIVITY_LIMIT,
            ),
            "pain_trends": aggregator.pain_trend(
                sessions, now=now, weeks=settings.SOFTZEN_TREND_WEEKS,
            ),
            "therapy_types": therapy_types,
            "patients_progress": aggregator.patient_progress_rollup(patients, series, sessions),
            "series_stats": aggregator.series_rollup(series, patients, sessions),
            "weekly_stats": aggregator.weekday_rollup(sessions, now=now),
            "top_patients": aggregator.top_patients(patients, series, sessions, now=now),
            "insights": aggregator.instructor_insights(overview, therapy_types),
            "generated_at": now,
        }

    logger.info(
        "instructor_dashboard_built",
        instructor_id=principal.id,
        patients=len(patients),
        sessions=len(sessions),
    )
    return dashboard


def patient_dashboard(principal, now=None) -> dict:
    """
    The calling patient's series, progress, session stats, recent
    sessions, weekly trend, achievements, recommendations and recent
    notifications.
    """
    require_role(principal, ROLE_PATIENT)
    now = now or timezone.now()

    with DASHBOARD_BUILD_DURATION.labels(dashboard="patient").time():
        patient = PatientRepository.get_for_principal(principal)
        series = patient.assigned_series
        progress = progress_for_patient(patient)
        sessions = load_session_rows(patient_id=patient.id)

        series_block = None
        if series is not None:
            series_block = {
                "id": series.id,
                "name": series.name,
                "description": series.description,
                "therapy_type": series.therapy_type,
                "difficulty_level": series.difficulty_level,
                "postures": series.postures,
                "total_sessions": series.total_sessions,
                "estimated_duration": series.estimated_duration,
                "current_session": patient.current_session,
                "sessions_remaining": max(0, series.total_sessions - patient.current_session),
                **progress.to_dict(),
            }

        stats = aggregator.session_summary(sessions)
        stats["consistency_score"] = aggregator.consistency_score(sessions, now)
        trend = aggregator.pain_trend(sessions, now=now, weeks=settings.SOFTZEN_TREND_WEEKS)
        recent = sorted(sessions, key=lambda s: s.completed_at, reverse=True)[:PATIENT_RECENT_SESSIONS]
        notifications = Notification.objects.filter(
            user_id=principal.id,
            created_at__gte=now - timedelta(days=7),
        )[:PATIENT_RECENT_NOTIFICATIONS]

        dashboard = {
            "patient_info": {
                "id": patient.id,
                "name": patient.name,
                "age": patient.age,
                "condition": patient.condition,
                "total_sessions_completed": patient.total_sessions_completed,
                "member_since": patient.created_at,
            },
            "series": series_block,
            "stats": stats,
            "recent_sessions": [
                {
                    "session_id": s.id,
                    "session_number": s.session_number,
                    "completed_at": s.completed_at,
                    "pain_before": s.pain_before,
                    "pain_after": s.pain_after,
                    "pain_improvement": s.pain_improvement,
                    "improvement_category": aggregator.improvement_category(s.pain_improvement),
                    "rating": s.rating,
                    "duration_minutes": s.duration_minutes,
                }
                for s in recent
            ],
            "progress_trends": trend,
            "achievements": aggregator.patient_achievements(sessions),
            "recommendations": aggregator.patient_recommendations(stats, trend),
            "notifications": [
                {
                    "id": n.id,
                    "type": n.type,
                    "title": n.title,
                    "message": n.message,
                    "is_read": n.is_read,
                    "created_at": n.created_at,
                }
                for n in notifications
            ],
            "generated_at": now,
        }

    logger.info("patient_dashboard_built", patient_id=str(patient.id), sessions=len(sessions))
    return dashboard
