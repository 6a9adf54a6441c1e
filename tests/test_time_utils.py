"""
Tests for utils.time_utils module.
"""

from datetime import date, datetime

from utils.time_utils import (
    date_key,
    day_bounds,
    iso_week,
    iso_week_bounds,
    month_bounds,
    month_iso_weeks,
    previous_iso_weeks,
    previous_month,
    shift_months,
)


class TestCalendar:
    """Tests for calendar helpers."""

    def test_day_bounds(self):
        """Should cover one calendar day."""
        start, end = day_bounds(date(2025, 10, 15))
        assert start == datetime(2025, 10, 15)
        assert end == datetime(2025, 10, 16)

    def test_iso_week(self):
        """Should return week number and ISO year."""
        assert iso_week(date(2025, 10, 15)) == (42, 2025)
        assert iso_week(date(2024, 12, 30)) == (1, 2025)
        assert iso_week(date(2021, 1, 1)) == (53, 2020)

    def test_iso_week_bounds(self):
        """Should start on Monday and last seven days."""
        start, end = iso_week_bounds(42, 2025)
        assert start == datetime(2025, 10, 13)
        assert end == datetime(2025, 10, 20)

    def test_month_bounds(self):
        """Should roll over to the next year in December."""
        assert month_bounds(12, 2024) == (datetime(2024, 12, 1), datetime(2025, 1, 1))
        assert month_bounds(2, 2024) == (datetime(2024, 2, 1), datetime(2024, 3, 1))

    def test_month_iso_weeks(self):
        """Should list every ISO week touching the month."""
        assert month_iso_weeks(10, 2025) == [(40, 2025), (41, 2025), (42, 2025), (43, 2025), (44, 2025)]
        assert month_iso_weeks(12, 2024)[-1] == (1, 2025)

    def test_shift_months_clamps_day(self):
        """Should clamp to the end of a shorter month."""
        assert shift_months(datetime(2024, 3, 31, 10), -1) == datetime(2024, 2, 29, 10)
        assert shift_months(datetime(2025, 1, 15), -1) == datetime(2024, 12, 15)

    def test_previous_month(self):
        """Should wrap January to December of the previous year."""
        assert previous_month(datetime(2025, 1, 1, 12)) == (12, 2024)
        assert previous_month(datetime(2025, 11, 1)) == (10, 2025)

    def test_date_key(self):
        assert date_key(datetime(2025, 3, 7, 21, 30)) == "2025-03-07"

    def test_previous_iso_weeks(self):
        """Should list completed weeks before the current one, newest first."""
        assert previous_iso_weeks(date(2025, 10, 19), 3) == [(41, 2025), (40, 2025), (39, 2025)]
        assert previous_iso_weeks(date(2026, 1, 7), 2) == [(1, 2026), (52, 2025)]
