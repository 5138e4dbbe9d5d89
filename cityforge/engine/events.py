"""
cityforge.engine.events — ActionEvent and ActionType
=====================================================

The envelope for a single point event headed for the ``actions`` table.
Completed requests are turned into ActionEvents by the request service and
handed to the write-behind buffer; nothing else writes actions.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field

__all__ = ["ActionType", "ActionEvent", "events_for_completion"]


class ActionType(enum.StrEnum):
    """Kinds of point events stored in ``actions``."""
    BUILD = "build"
    HIT = "hit"


@dataclass(frozen=True, slots=True)
class ActionEvent:
    """One immutable action row, not yet persisted."""

    guild_id: int
    season_id: int
    user_id: int
    type: ActionType
    value: int
    created_at: int
    meta: dict = field(default_factory=dict)


def events_for_completion(
    *,
    guild_id: int,
    season_id: int,
    message_id: int,
    builder_id: int,
    levels: Sequence[int],
    created_at: int,
) -> list[ActionEvent]:
    """Derive the events for a completed request.

    One ``hit`` of value 1 per level (per-level granularity is kept even
    though current reports only sum), then one ``build`` whose value is the
    number of cities built.
    """
    events = [
        ActionEvent(
            guild_id=guild_id,
            season_id=season_id,
            user_id=builder_id,
            type=ActionType.HIT,
            value=1,
            created_at=created_at,
            meta={"level": lvl, "message_id": message_id},
        )
        for lvl in levels
    ]
    events.append(ActionEvent(
        guild_id=guild_id,
        season_id=season_id,
        user_id=builder_id,
        type=ActionType.BUILD,
        value=len(levels),
        created_at=created_at,
        meta={"message_id": message_id, "levels": list(levels)},
    ))
    return events
