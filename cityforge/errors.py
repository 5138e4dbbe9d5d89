"""
cityforge.errors — Exception Taxonomy
======================================

Validation and conflict errors are raised to callers, who translate them
into user-facing replies.  A rejected state transition is *not* an error:
the request service returns ``False`` for it.
"""

from __future__ import annotations


class CityForgeError(Exception):
    """Base class for all CityForge errors."""


class ValidationError(CityForgeError, ValueError):
    """Malformed user input (levels, offsets, magnitude strings)."""


class FormatError(ValidationError):
    """A magnitude string such as ``"10G"`` could not be parsed."""

    def __init__(self, raw: object) -> None:
        self.raw = raw
        super().__init__(
            f'Bad value: "{raw}" (use a number or K/M/G/T/P, e.g. 5G, 120M)'
        )


class ConflictError(CityForgeError):
    """The row being created already exists (season id, request key)."""


class PersistenceFailure(CityForgeError):
    """A buffered batch of actions could not be written and was dropped."""

    def __init__(self, message: str, *, dropped: int = 0) -> None:
        self.dropped = dropped
        super().__init__(message)
