"""
cityforge.engine.values — Magnitude Codec
==========================================

Converts human-entered magnitudes ("10G", "2.5T", "120,000") to integers
and back.  Pure functions, no state.

Formatting is for display only and is lossy: ``format_value(parse_value(s))``
is not guaranteed to reproduce *s*.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal

from cityforge.errors import FormatError

__all__ = ["parse_value", "format_value", "UNITS"]

# Largest first; format_value picks the first unit that fits.
UNITS: tuple[tuple[str, int], ...] = (
    ("P", 10**15),
    ("T", 10**12),
    ("G", 10**9),
    ("M", 10**6),
    ("K", 10**3),
)
_MULTIPLIERS: dict[str, int] = dict(UNITS)

_VALUE_RE = re.compile(r"^(\d+(?:\.\d+)?)([KMGTP])?$", re.IGNORECASE)
_TRAILING_ZEROS_RE = re.compile(r"\.0+$|(\.\d*[1-9])0+$")


def parse_value(raw: object) -> int:
    """Parse *raw* into an integer magnitude.

    ``None``, ``""`` and ``"n/a"`` mean zero.  Thousands separators and
    whitespace are ignored.  Fractions are rounded half-up.

    Raises
    ------
    FormatError
        If *raw* is not a plain number with an optional K/M/G/T/P suffix.
    """
    if raw is None:
        return 0
    text = str(raw).strip()
    if not text or text.lower() == "n/a":
        return 0

    text = re.sub(r"\s+", "", text.replace(",", ""))
    match = _VALUE_RE.match(text)
    if match is None:
        raise FormatError(raw)

    number = Decimal(match.group(1))
    suffix = (match.group(2) or "").upper()
    scaled = number * _MULTIPLIERS.get(suffix, 1)
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def _scaled_text(scaled: float) -> str:
    if scaled >= 100:
        return f"{scaled:.0f}"
    if scaled >= 10:
        return f"{scaled:.1f}"
    return f"{scaled:.2f}"


def format_value(num: int | float) -> str:
    """Render *num* compactly, e.g. ``10_000_000_000`` → ``"10G"``."""
    try:
        value = float(num)
    except (TypeError, ValueError):
        return "0"
    if not math.isfinite(value) or value <= 0:
        return "0"
    if value < 1000:
        return str(int(value))

    for i, (symbol, unit) in enumerate(UNITS):
        if value >= unit:
            text = _scaled_text(value / unit)
            # 999.999K would read "1000K"; carry into the next unit up
            if i > 0 and float(text) >= 1000:
                symbol, unit = UNITS[i - 1]
                text = _scaled_text(value / unit)
            return _TRAILING_ZEROS_RE.sub(lambda m: m.group(1) or "", text) + symbol

    return str(int(value))  # unreachable: value >= 1000 always matches K
