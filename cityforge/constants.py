"""
cityforge.constants — Shared Constants
=======================================

Single source of truth for domain bounds and defaults.  Import from here
instead of duplicating in validators, services, and the bot.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Request levels
# ---------------------------------------------------------------------------
LEVEL_MIN = 1
LEVEL_MAX = 200
MAX_LEVELS_PER_REQUEST = 4

# ---------------------------------------------------------------------------
# Guild timezone (minutes from UTC): UTC-12 .. UTC+14
# ---------------------------------------------------------------------------
TZ_OFFSET_MIN = -720
TZ_OFFSET_MAX = 840
DEFAULT_TZ_OFFSET_MINUTES = -360

# ---------------------------------------------------------------------------
# Write-behind buffer
# ---------------------------------------------------------------------------
DEFAULT_FLUSH_INTERVAL_SECONDS = 60.0
DEFAULT_MAX_QUEUE = 400

# ---------------------------------------------------------------------------
# Reporting defaults
# ---------------------------------------------------------------------------
DEFAULT_LEADERBOARD_LIMIT = 10
FIRST_SEASON_ID = 1
