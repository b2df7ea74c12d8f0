"""
Progress calculation.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from apps.core.numbers import round_half_up


@dataclass(frozen=True)
class Progress:
    percentage: int
    is_completed: bool
    next_session_number: Optional[int]

    def to_dict(self):
        return asdict(self)


def compute_progress(current_session: int, total_sessions: int) -> Progress:
    """
    Derive completion state from a patient's counter and the series target.

    >>> compute_progress(7, 10)
    Progress(percentage=70, is_completed=False, next_session_number=8)

    A non-positive ``total_sessions`` cannot come from a valid series; it
    reports 0% and counts as completed so no further session is accepted.
    """
    if total_sessions <= 0:
        percentage = 0
    else:
        percentage = round_half_up(current_session / total_sessions * 100)

    is_completed = current_session >= total_sessions
    return Progress(
        percentage=percentage,
        is_completed=is_completed,
        next_session_number=None if is_completed else current_session + 1,
    )


def progress_for_patient(patient) -> Optional[Progress]:
    """Progress of ``patient`` on its assigned series, None when unassigned."""
    if patient.assigned_series_id is None:
        return None
    return compute_progress(patient.current_session, patient.assigned_series.total_sessions)
