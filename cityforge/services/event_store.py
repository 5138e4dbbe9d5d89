"""
cityforge.services.event_store — Append-Only Action Log
========================================================

The ``actions`` table is an immutable log of build/hit point events.
There is deliberately no update or delete path in this module.

Writes normally arrive in batches from
:class:`~cityforge.services.action_buffer.ActionBuffer`, which owns the
transaction and calls :func:`append_actions`.  :func:`append_action` is a
single-row convenience for tools and tests.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from cityforge.database.engine import get_session
from cityforge.database.models import Action
from cityforge.engine.events import ActionEvent, ActionType

logger = logging.getLogger(__name__)


def _to_row(event: ActionEvent) -> Action:
    return Action(
        guild_id=event.guild_id,
        season_id=event.season_id,
        user_id=event.user_id,
        type=str(event.type),
        value=event.value,
        meta=dict(event.meta) if event.meta else None,
        created_at=event.created_at,
    )


def append_actions(session: Session, events: Iterable[ActionEvent]) -> int:
    """Add *events* to *session* and flush them; the caller commits.

    Returns the number of rows written.
    """
    rows = [_to_row(e) for e in events]
    if not rows:
        return 0
    session.add_all(rows)
    session.flush()
    return len(rows)


def append_action(engine: Engine, event: ActionEvent) -> None:
    """Insert one action row in its own transaction."""
    with get_session(engine) as session:
        append_actions(session, [event])


def count_actions(
    engine: Engine,
    guild_id: int,
    season_id: int | None = None,
    type: ActionType | str | None = None,
) -> int:
    """Number of stored actions for a guild, optionally narrowed."""
    stmt = select(func.count(Action.id)).where(Action.guild_id == guild_id)
    if season_id is not None:
        stmt = stmt.where(Action.season_id == season_id)
    if type is not None:
        stmt = stmt.where(Action.type == str(type))
    with Session(engine) as session:
        return int(session.scalar(stmt) or 0)
