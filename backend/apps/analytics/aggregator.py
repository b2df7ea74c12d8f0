"""
Analytics aggregator
====================
Pure folds over loaded rows. Nothing in this module touches the database;
``apps.analytics.services`` loads the rows and composes the results.

Contract shared by every rollup:
- averages use only non-null values and round half-up to one decimal
- an empty input yields 0 for every average, never None or NaN
- output is plain row-oriented data (dicts and lists)
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from apps.catalog.therapy_types import therapy_type_name
from apps.core.numbers import average, round_half_up
from apps.therapy_sessions.progress import compute_progress

DEFAULT_TREND_WEEKS = 8
DEFAULT_RECENT_LIMIT = 15


@dataclass(frozen=True)
class PatientRow:
    id: object
    name: str
    is_active: bool
    assigned_series_id: Optional[object]
    current_session: int
    total_sessions_completed: int = 0
    series_assigned_at: Optional[datetime] = None


@dataclass(frozen=True)
class SeriesRow:
    id: object
    name: str
    therapy_type: str
    total_sessions: int
    is_active: bool = True
    difficulty_level: str = "beginner"


@dataclass(frozen=True)
class SessionRow:
    id: object
    patient_id: object
    series_id: object
    session_number: int
    pain_before: int
    pain_after: int
    completed_at: datetime
    duration_minutes: Optional[int] = None
    rating: Optional[int] = None
    postures_completed: int = 0
    postures_skipped: int = 0

    @property
    def pain_improvement(self):
        return self.pain_before - self.pain_after


def improvement_category(improvement):
    if improvement >= 4:
        return "excellent"
    if improvement >= 2:
        return "good"
    if improvement >= 0:
        return "slight"
    return "none"


# ============================================================
# Session summary
# ============================================================

def session_summary(sessions: Iterable) -> dict:
    """
    Summary stats over any objects exposing the session fields
    (SessionRow or TherapySession instances).
    """
    sessions = list(sessions)
    completed_times = [s.completed_at for s in sessions if s.completed_at is not None]
    total_minutes = sum(s.duration_minutes or 0 for s in sessions)
    return {
        "total_sessions": len(sessions),
        "avg_pain_before": average(s.pain_before for s in sessions),
        "avg_pain_after": average(s.pain_after for s in sessions),
        "avg_improvement": average(s.pain_before - s.pain_after for s in sessions),
        "avg_duration": average(s.duration_minutes for s in sessions),
        "avg_rating": average(s.rating for s in sessions),
        "best_improvement": max((s.pain_before - s.pain_after for s in sessions), default=0),
        "total_postures_completed": sum(s.postures_completed or 0 for s in sessions),
        "total_postures_skipped": sum(s.postures_skipped or 0 for s in sessions),
        "total_practice_hours": round_half_up(total_minutes / 60, 1),
        "first_session_at": min(completed_times, default=None),
        "last_session_at": max(completed_times, default=None),
    }


# ============================================================
# Overview rollup
# ============================================================

def overview_rollup(
    patients: List[PatientRow],
    series: List[SeriesRow],
    sessions: List[SessionRow],
    now: Optional[datetime] = None,
) -> dict:
    """
    Headline numbers for one instructor.

    ``active_patients`` counts active patients that have a series assigned.
    The weekly figures (``sessions_this_week``, ``completion_rate``) need
    ``now``.
    """
    active = [p for p in patients if p.is_active]
    with_series = [p for p in active if p.assigned_series_id is not None]

    result = {
        "total_patients": len(active),
        "active_patients": len(with_series),
        "inactive_patients": len(active) - len(with_series),
        "total_series": len([s for s in series if s.is_active]),
        "total_sessions": len(sessions),
        "avg_pain_improvement": average(s.pain_improvement for s in sessions),
        "avg_session_duration": average(s.duration_minutes for s in sessions),
        "avg_rating": average(s.rating for s in sessions),
    }
    if now is not None:
        week_ago = now - timedelta(days=7)
        this_week = len([s for s in sessions if s.completed_at >= week_ago])
        result["sessions_this_week"] = this_week
        # Weekly sessions per active patient, as a percentage
        result["completion_rate"] = (
            round_half_up(this_week / len(with_series) * 100) if with_series else 0
        )
    return result


# ============================================================
# Time-bucketed pain trend
# ============================================================

def iso_week_key(moment: datetime):
    iso = moment.isocalendar()
    return iso[0], iso[1]


def pain_trend(
    sessions: List[SessionRow],
    now: datetime,
    weeks: int = DEFAULT_TREND_WEEKS,
) -> List[dict]:
    """
    Per ISO week of ``completed_at`` over the trailing ``weeks`` weeks:
    average pain before/after, average improvement and session count.

    Buckets are picked newest first and returned oldest first.
    """
    window_start = now - timedelta(weeks=weeks)
    buckets = defaultdict(list)
    for session in sessions:
        if window_start <= session.completed_at <= now:
            buckets[iso_week_key(session.completed_at)].append(session)

    newest_first = sorted(buckets.items(), key=lambda item: item[0], reverse=True)[:weeks]

    trend = []
    for (year, week), rows in reversed(newest_first):
        trend.append({
            "week": f"{year}-W{week:02d}",
            "week_start": datetime.fromisocalendar(year, week, 1).date(),
            "avg_pain_before": average(r.pain_before for r in rows),
            "avg_pain_after": average(r.pain_after for r in rows),
            "avg_improvement": average(r.pain_improvement for r in rows),
            "session_count": len(rows),
            "unique_patients": len({r.patient_id for r in rows}),
        })
    return trend


# ============================================================
# Category rollup
# ============================================================

def category_rollup(
    series: List[SeriesRow],
    patients: List[PatientRow],
    sessions: List[SessionRow],
) -> List[dict]:
    """
    Per therapy type: active series, distinct assigned active patients,
    sessions (attributed through the session's own series), average
    improvement and rating. Ordered by session count, then type.
    """
    type_by_series = {s.id: s.therapy_type for s in series}

    series_ids = defaultdict(set)
    for s in series:
        if s.is_active:
            series_ids[s.therapy_type].add(s.id)

    patient_ids = defaultdict(set)
    for p in patients:
        if p.is_active and p.assigned_series_id in type_by_series:
            patient_ids[type_by_series[p.assigned_series_id]].add(p.id)

    sessions_by_type = defaultdict(list)
    for session in sessions:
        therapy_type = type_by_series.get(session.series_id)
        if therapy_type is not None:
            sessions_by_type[therapy_type].append(session)

    categories = set(series_ids) | set(sessions_by_type)
    rows = []
    for therapy_type in categories:
        type_sessions = sessions_by_type.get(therapy_type, [])
        rows.append({
            "therapy_type": therapy_type,
            "therapy_type_name": therapy_type_name(therapy_type),
            "series_count": len(series_ids.get(therapy_type, ())),
            "patients_count": len(patient_ids.get(therapy_type, ())),
            "sessions_count": len(type_sessions),
            "avg_improvement": average(s.pain_improvement for s in type_sessions),
            "avg_rating": average(s.rating for s in type_sessions),
        })

    rows.sort(key=lambda row: (-row["sessions_count"], row["therapy_type"]))
    return rows


# ============================================================
# Per-patient progress rollup
# ============================================================

def patient_progress_rollup(
    patients: List[PatientRow],
    series: List[SeriesRow],
    sessions: List[SessionRow],
) -> List[dict]:
    """
    Every active patient with an assigned series, joined to its progress,
    last session time and average improvement over its whole history.

    Ordered by progress percentage descending, then name ascending.
    """
    series_by_id = {s.id: s for s in series}
    sessions_by_patient = defaultdict(list)
    for session in sessions:
        sessions_by_patient[session.patient_id].append(session)

    rows = []
    for patient in patients:
        if not patient.is_active or patient.assigned_series_id is None:
            continue
        assigned = series_by_id.get(patient.assigned_series_id)
        if assigned is None:
            continue

        progress = compute_progress(patient.current_session, assigned.total_sessions)
        history = sessions_by_patient.get(patient.id, [])
        rows.append({
            "patient_id": patient.id,
            "name": patient.name,
            "series_id": assigned.id,
            "series_name": assigned.name,
            "therapy_type": assigned.therapy_type,
            "current_session": patient.current_session,
            "total_sessions": assigned.total_sessions,
            "progress_percentage": progress.percentage,
            "is_completed": progress.is_completed,
            "next_session_number": progress.next_session_number,
            "sessions_count": len(history),
            "last_session_at": max((s.completed_at for s in history), default=None),
            "avg_improvement": average(s.pain_improvement for s in history),
        })

    rows.sort(key=lambda row: (-row["progress_percentage"], row["name"]))
    return rows


# ============================================================
# Recent activity
# ============================================================

def recent_activity(
    sessions: List[SessionRow],
    patients: List[PatientRow],
    series: List[SeriesRow],
    limit: int = DEFAULT_RECENT_LIMIT,
) -> List[dict]:
    """Newest ``limit`` sessions with patient and series names."""
    patient_names = {p.id: p.name for p in patients}
    series_by_id = {s.id: s for s in series}

    newest = sorted(sessions, key=lambda s: s.completed_at, reverse=True)[:limit]
    rows = []
    for session in newest:
        session_series = series_by_id.get(session.series_id)
        rows.append({
            "session_id": session.id,
            "patient_id": session.patient_id,
            "patient_name": patient_names.get(session.patient_id, ""),
            "series_name": session_series.name if session_series else "",
            "therapy_type": session_series.therapy_type if session_series else None,
            "session_number": session.session_number,
            "completed_at": session.completed_at,
            "pain_before": session.pain_before,
            "pain_after": session.pain_after,
            "pain_improvement": session.pain_improvement,
            "improvement_category": improvement_category(session.pain_improvement),
            "rating": session.rating,
            "duration_minutes": session.duration_minutes,
        })
    return rows


# ============================================================
# Per-series rollup
# ============================================================

def series_rollup(
    series: List[SeriesRow],
    patients: List[PatientRow],
    sessions: List[SessionRow],
) -> List[dict]:
    """
    Per active series: assigned active patients, how far through the
    series they are, and session averages over the series' history.

    ``completion_rate`` is the share of assigned patients that finished
    the series; ``usage_rate`` is the share of the assigned sessions
    (patients x total_sessions) already recorded in the current
    assignments. Ordered by assigned patients descending, then name.
    """
    assigned = defaultdict(list)
    for p in patients:
        if p.is_active and p.assigned_series_id is not None:
            assigned[p.assigned_series_id].append(p)

    sessions_by_series = defaultdict(list)
    for session in sessions:
        sessions_by_series[session.series_id].append(session)

    rows = []
    for s in series:
        if not s.is_active:
            continue
        members = assigned.get(s.id, [])
        history = sessions_by_series.get(s.id, [])
        recorded = sum(min(p.current_session, s.total_sessions) for p in members)
        finished = len([p for p in members if p.current_session >= s.total_sessions])
        planned = len(members) * s.total_sessions

        completion_rate = round_half_up(finished / len(members) * 100) if members else 0
        usage_rate = round_half_up(recorded / planned * 100) if planned else 0
        avg_rating = average(x.rating for x in history)
        rows.append({
            "series_id": s.id,
            "name": s.name,
            "therapy_type": s.therapy_type,
            "difficulty_level": s.difficulty_level,
            "total_sessions": s.total_sessions,
            "assigned_patients": len(members),
            "completed_patients": finished,
            "completed_sessions": recorded,
            "sessions_count": len(history),
            "avg_improvement": average(x.pain_improvement for x in history),
            "avg_rating": avg_rating,
            "avg_session_duration": average(x.duration_minutes for x in history),
            "completion_rate": completion_rate,
            "usage_rate": usage_rate,
            "popularity_score": round_half_up(
                min(len(members) * 10, 50) + completion_rate / 2 + avg_rating * 10
            ),
        })

    rows.sort(key=lambda row: (-row["assigned_patients"], row["name"]))
    return rows


# ============================================================
# Day-of-week distribution
# ============================================================

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def weekday_rollup(sessions: List[SessionRow], now: datetime, days: int = 30) -> List[dict]:
    """
    Sessions of the trailing ``days`` days grouped by weekday of
    ``completed_at`` (0 = Monday). Only weekdays with sessions appear.
    """
    window_start = now - timedelta(days=days)
    buckets = defaultdict(list)
    for session in sessions:
        if window_start <= session.completed_at <= now:
            buckets[session.completed_at.weekday()].append(session)

    return [
        {
            "day_of_week": day,
            "day_name": WEEKDAY_NAMES[day],
            "session_count": len(rows),
            "avg_improvement": average(r.pain_improvement for r in rows),
            "avg_rating": average(r.rating for r in rows),
        }
        for day, rows in sorted(buckets.items())
    ]


# ============================================================
# Top patients
# ============================================================

def top_patients(
    patients: List[PatientRow],
    series: List[SeriesRow],
    sessions: List[SessionRow],
    now: datetime,
    days: int = 30,
    min_sessions: int = 3,
    limit: int = 5,
) -> List[dict]:
    """
    Active patients with at least ``min_sessions`` sessions in the trailing
    ``days`` days, best average improvement first (ties by name).
    """
    window_start = now - timedelta(days=days)
    series_names = {s.id: s.name for s in series}
    recent = defaultdict(list)
    for session in sessions:
        if window_start <= session.completed_at <= now:
            recent[session.patient_id].append(session)

    rows = []
    for patient in patients:
        history = recent.get(patient.id, [])
        if not patient.is_active or len(history) < min_sessions:
            continue
        rows.append({
            "patient_id": patient.id,
            "name": patient.name,
            "series_name": series_names.get(patient.assigned_series_id, ""),
            "total_sessions": len(history),
            "avg_improvement": average(s.pain_improvement for s in history),
            "avg_rating": average(s.rating for s in history),
            "best_improvement": max(s.pain_improvement for s in history),
        })

    rows.sort(key=lambda row: (-row["avg_improvement"], row["name"]))
    return rows[:limit]


# ============================================================
# Instructor insights
# ============================================================

def instructor_insights(overview: dict, categories: List[dict]) -> List[dict]:
    """
    Short, rule-based observations over the overview and the therapy
    type rollup. Each insight is ``{type, title, message, metric}``.
    """
    insights = []

    avg_improvement = overview.get("avg_pain_improvement", 0)
    if avg_improvement > 3:
        insights.append({
            "type": "success",
            "title": "Excellent results",
            "message": f"Patients report an average pain reduction of {avg_improvement} points.",
            "metric": avg_improvement,
        })

    avg_rating = overview.get("avg_rating", 0)
    if avg_rating >= 4.5:
        insights.append({
            "type": "success",
            "title": "High satisfaction",
            "message": f"Sessions are rated {avg_rating}/5 on average.",
            "metric": avg_rating,
        })

    active = overview.get("active_patients", 0)
    this_week = overview.get("sessions_this_week", 0)
    if this_week < active * 0.3:
        insights.append({
            "type": "warning",
            "title": "Low weekly activity",
            "message": f"Only {this_week} sessions this week across {active} active patients.",
            "metric": this_week,
        })

    best = max(categories, key=lambda row: row["avg_improvement"], default=None)
    if best is not None and best["avg_improvement"] > 0:
        insights.append({
            "type": "info",
            "title": "Most effective therapy",
            "message": (
                f"{best['therapy_type_name']} shows the best average improvement "
                f"({best['avg_improvement']} points)."
            ),
            "metric": best["avg_improvement"],
        })

    return insights


# ============================================================
# Patient achievements, recommendations and consistency
# ============================================================

MILESTONES = [
    (1, "first_step", "First Step", "Completed your first session"),
    (5, "consistent", "Consistent", "Completed 5 sessions"),
    (10, "dedicated", "Dedicated", "Completed 10 sessions"),
    (25, "committed", "Committed", "Completed 25 sessions"),
    (50, "master", "Master", "Completed 50 sessions"),
]


def patient_achievements(sessions: List[SessionRow]) -> List[dict]:
    """
    Session-count milestones reached, each stamped with the completion
    time of the session that reached it.
    """
    times = sorted(s.completed_at for s in sessions)
    return [
        {
            "id": key,
            "title": title,
            "description": description,
            "threshold": threshold,
            "achieved_at": times[threshold - 1],
        }
        for threshold, key, title, description in MILESTONES
        if len(times) >= threshold
    ]


def patient_recommendations(stats: dict, trend: List[dict]) -> List[dict]:
    """
    Rule-based suggestions from the patient's session summary and weekly
    trend. A patient with no sessions gets none.
    """
    if not stats.get("total_sessions"):
        return []

    recommendations = []
    if stats["avg_improvement"] < 1:
        recommendations.append({
            "type": "technique",
            "title": "Review your technique",
            "message": "Pain relief is modest so far. Ask your instructor to review your postures.",
        })
    if stats["avg_duration"] < 20:
        recommendations.append({
            "type": "duration",
            "title": "Longer sessions",
            "message": "Sessions of at least 20 minutes tend to bring better results.",
        })
    if len(trend) > 2 and all(week["session_count"] < 2 for week in trend[-2:]):
        recommendations.append({
            "type": "consistency",
            "title": "Keep a steady rhythm",
            "message": "Try to practice at least twice a week.",
        })
    if stats["avg_rating"] >= 4 and stats["avg_improvement"] >= 2:
        recommendations.append({
            "type": "progress",
            "title": "Great progress",
            "message": "You are responding well. Ask your instructor about the next level.",
        })
    return recommendations


def consistency_score(sessions: List[SessionRow], now: datetime) -> int:
    """
    Practice frequency since the first session against a target of one
    session every two days, as a 0-100 score. Fewer than three sessions
    score 0; three or more within the first day score 100.
    """
    if len(sessions) < 3:
        return 0
    first = min(s.completed_at for s in sessions)
    days = (now - first).days
    if days <= 0:
        return 100
    per_day = len(sessions) / days
    return min(round_half_up(per_day / 0.5 * 100), 100)
