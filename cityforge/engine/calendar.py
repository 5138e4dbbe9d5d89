"""
cityforge.engine.calendar — Guild-Local Day Math
=================================================

Stats are bucketed by calendar day in ``UTC + offset`` where *offset* is
the guild's ``timezone_offset_minutes`` read at query time.  A day is
identified by its *day index*: whole days since 1970-01-01 in local time.

    day_index = floor((epoch_seconds + offset_minutes * 60) / 86400)

The same expression is rendered in SQL by the stats service, so Python
and the database always agree on where a day boundary falls.

A window of *N* days is the local calendar days ``today-(N-1) .. today``.
"""

from __future__ import annotations

import time
from datetime import date, timedelta

SECONDS_PER_DAY = 86_400
EPOCH_DATE = date(1970, 1, 1)


def now_ts() -> int:
    """Current time as integer epoch seconds."""
    return int(time.time())


def local_day_index(ts: int, offset_minutes: int) -> int:
    """Day index of epoch second *ts* in a guild at *offset_minutes*."""
    return (ts + offset_minutes * 60) // SECONDS_PER_DAY


def day_index_to_date(day_index: int) -> date:
    return EPOCH_DATE + timedelta(days=day_index)


def local_date(ts: int, offset_minutes: int) -> date:
    """Guild-local calendar date of epoch second *ts*."""
    return day_index_to_date(local_day_index(ts, offset_minutes))


def day_start_ts(day_index: int, offset_minutes: int) -> int:
    """UTC epoch second at which local day *day_index* begins."""
    return day_index * SECONDS_PER_DAY - offset_minutes * 60


def window_start_ts(now: int, offset_minutes: int, days: int) -> int:
    """First epoch second of an *days*-day window ending with today."""
    today = local_day_index(now, offset_minutes)
    return day_start_ts(today - (max(days, 1) - 1), offset_minutes)


def window_dates(now: int, offset_minutes: int, days: int) -> list[date]:
    """The *days* consecutive local dates ending today, oldest first."""
    today = local_day_index(now, offset_minutes)
    count = max(days, 1)
    return [day_index_to_date(today - i) for i in range(count - 1, -1, -1)]
