"""
tests/test_calendar.py — Guild-Local Day Math Tests
====================================================
"""

from __future__ import annotations

from datetime import date

from conftest import DAY, HOUR, NOW

from cityforge.engine.calendar import (
    day_start_ts,
    local_date,
    local_day_index,
    window_dates,
    window_start_ts,
)


class TestLocalDay:
    """Day bucketing at different offsets."""

    def test_same_instant_different_local_dates(self):
        # 03:00 UTC on 2024-03-10 is still the evening of the 9th at UTC-6
        ts = NOW - 15 * HOUR
        assert local_date(ts, 0) == date(2024, 3, 10)
        assert local_date(ts, -360) == date(2024, 3, 9)

    def test_positive_offset_rolls_forward(self):
        ts = NOW + 5 * HOUR  # 23:00 UTC
        assert local_date(ts, 0) == date(2024, 3, 10)
        assert local_date(ts, 120) == date(2024, 3, 11)

    def test_day_start_round_trips(self):
        for offset in (-720, -360, 0, 330, 840):
            idx = local_day_index(NOW, offset)
            start = day_start_ts(idx, offset)
            assert local_day_index(start, offset) == idx
            assert local_day_index(start - 1, offset) == idx - 1


class TestWindows:
    """Calendar-aligned windows ending today."""

    def test_window_dates_oldest_first(self):
        dates = window_dates(NOW, -360, 7)
        assert len(dates) == 7
        assert dates[0] == date(2024, 3, 4)
        assert dates[-1] == date(2024, 3, 10)

    def test_window_start_is_local_midnight(self):
        start = window_start_ts(NOW, -360, 1)
        # Local midnight at UTC-6 is 06:00 UTC
        assert start == NOW - 12 * HOUR
        assert window_start_ts(NOW, -360, 7) == start - 6 * DAY

    def test_non_positive_window_is_today_only(self):
        assert window_dates(NOW, 0, 0) == [date(2024, 3, 10)]
