"""
cityforge.engine.validation — Caller-Facing Input Validators
=============================================================

Command handlers run user input through these before calling the
services.  The services themselves trust their arguments and never
re-validate.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from cityforge.constants import (
    LEVEL_MAX,
    LEVEL_MIN,
    MAX_LEVELS_PER_REQUEST,
    TZ_OFFSET_MAX,
    TZ_OFFSET_MIN,
)
from cityforge.errors import ValidationError

_SPLIT_RE = re.compile(r"[\s,]+")


def validate_levels(levels: Iterable[int]) -> list[int]:
    """Check a level list: 1–4 integers in range, first highest, non-increasing."""
    result = list(levels)
    if not result:
        raise ValidationError("No levels provided.")
    if len(result) > MAX_LEVELS_PER_REQUEST:
        raise ValidationError(f"Max {MAX_LEVELS_PER_REQUEST} levels per request.")
    for lvl in result:
        if isinstance(lvl, bool) or not isinstance(lvl, int) or not LEVEL_MIN <= lvl <= LEVEL_MAX:
            raise ValidationError(
                f"Levels must be integers between {LEVEL_MIN} and {LEVEL_MAX}. "
                "Example: `145 144 143`"
            )
    for prev, cur in zip(result, result[1:]):
        if cur > prev:
            raise ValidationError(
                "Levels must be non-increasing (first highest). Example: `145 144 143`"
            )
    return result


def parse_levels(text: str) -> list[int]:
    """Parse ``"145 144, 143"`` into ``[145, 144, 143]`` and validate it."""
    parts = [p for p in _SPLIT_RE.split(text or "") if p]
    levels: list[int] = []
    for part in parts:
        if not part.isdigit():
            raise ValidationError(
                f"Levels must be integers between {LEVEL_MIN} and {LEVEL_MAX}. "
                "Example: `145 144 143`"
            )
        levels.append(int(part))
    return validate_levels(levels)


def validate_timezone_offset(minutes: object) -> int:
    """Return *minutes* if it is an integer offset within UTC-12..UTC+14."""
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError("Offset must be an integer number of minutes.")
    if not TZ_OFFSET_MIN <= minutes <= TZ_OFFSET_MAX:
        raise ValidationError(
            f"Offset out of range. Use between {TZ_OFFSET_MIN} and +{TZ_OFFSET_MAX} "
            "minutes (UTC-12 to UTC+14)."
        )
    return minutes


def format_utc_offset(minutes: int) -> str:
    """``-360`` → ``"UTC-06:00"``."""
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours:02d}:{mins:02d}"
