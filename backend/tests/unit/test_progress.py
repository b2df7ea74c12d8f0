"""
Unit tests for progress calculation and rounding.
"""

import pytest

from apps.core.numbers import average, round_half_up
from apps.therapy_sessions.progress import Progress, compute_progress


class TestComputeProgress:
    """Tests for compute_progress."""

    def test_not_started(self):
        assert compute_progress(0, 10) == Progress(
            percentage=0, is_completed=False, next_session_number=1,
        )

    def test_completed(self):
        assert compute_progress(10, 10) == Progress(
            percentage=100, is_completed=True, next_session_number=None,
        )

    def test_in_progress(self):
        assert compute_progress(7, 10) == Progress(
            percentage=70, is_completed=False, next_session_number=8,
        )

    def test_percentage_rounds_half_up(self):
        # 1/8 = 12.5% and 5/8 = 62.5%
        assert compute_progress(1, 8).percentage == 13
        assert compute_progress(5, 8).percentage == 63

    def test_thirds_round_to_nearest(self):
        assert compute_progress(1, 3).percentage == 33
        assert compute_progress(2, 3).percentage == 67

    def test_zero_total_reports_zero_percent(self):
        progress = compute_progress(0, 0)
        assert progress.percentage == 0
        assert progress.is_completed is True
        assert progress.next_session_number is None

    def test_to_dict(self):
        assert compute_progress(3, 4).to_dict() == {
            "percentage": 75,
            "is_completed": False,
            "next_session_number": 4,
        }


class TestRounding:
    """Tests for round_half_up and average."""

    @pytest.mark.parametrize("value, expected", [
        (2.5, 3),
        (3.5, 4),
        (-2.5, -2),
        (0.4999, 0),
        (12.5, 13),
    ])
    def test_round_half_up_integer(self, value, expected):
        assert round_half_up(value) == expected

    def test_round_half_up_one_decimal(self):
        assert round_half_up(2.25, 1) == 2.3
        assert round_half_up(2.35, 1) == 2.4
        assert round_half_up(-0.25, 1) == -0.2

    def test_average_ignores_nulls(self):
        assert average([4, None, 5]) == 4.5

    def test_average_empty_is_zero(self):
        assert average([]) == 0
        assert average([None, None]) == 0

    def test_average_rounds_to_one_decimal(self):
        assert average([1, 2, 2]) == 1.7
