"""
cityforge.services.request_service — Build-Request State Machine
=================================================================

A request is keyed by ``(guild_id, season_id, message_id)`` and moves
through::

    open ──claim──▶ claimed ──complete──▶ completed
      │                │
      └────cancel──────┴──────▶ cancelled

``completed`` and ``cancelled`` are terminal.

Every transition is a single conditional ``UPDATE`` whose ``WHERE`` clause
carries the expected source state, and success is decided by the number
of rows it changed.  Two builders clicking *claim* at the same moment, or
two bot processes sharing one database, therefore produce exactly one
winner; the loser simply gets ``False``.

Completing a request derives one ``hit`` event per level plus one
``build`` event and hands them to the write-behind buffer *after* the
status change has committed.  A rejected completion emits nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cityforge.database.engine import get_session
from cityforge.database.models import Request, RequestStatus
from cityforge.engine.calendar import now_ts
from cityforge.engine.events import events_for_completion
from cityforge.errors import ConflictError
from cityforge.services.action_buffer import ActionBuffer

logger = logging.getLogger(__name__)

PENDING_STATUSES = (RequestStatus.OPEN.value, RequestStatus.CLAIMED.value)


@dataclass(frozen=True, slots=True)
class RequestRecord:
    """Detached snapshot of a ``requests`` row."""

    guild_id: int
    season_id: int
    message_id: int
    requester_id: int
    levels: list[int]
    status: RequestStatus
    claimed_by: int | None
    created_at: int
    updated_at: int
    meta: dict[str, Any] = field(default_factory=dict)


def _to_record(row: Request) -> RequestRecord:
    return RequestRecord(
        guild_id=row.guild_id,
        season_id=row.season_id,
        message_id=row.message_id,
        requester_id=row.requester_id,
        levels=[int(lvl) for lvl in row.levels],
        status=RequestStatus(row.status),
        claimed_by=row.claimed_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        meta=dict(row.meta or {}),
    )


def _key(guild_id: int, season_id: int, message_id: int):
    return (
        Request.guild_id == guild_id,
        Request.season_id == season_id,
        Request.message_id == message_id,
    )


class RequestStore:
    """Owner of the ``requests`` table.

    All methods are synchronous — call via ``await run_db(store.claim, ...)``.
    """

    def __init__(self, engine: Engine, buffer: ActionBuffer) -> None:
        self.engine = engine
        self.buffer = buffer

    # ------------------------------------------------------------------
    # Creation & reads
    # ------------------------------------------------------------------
    def create(
        self,
        guild_id: int,
        season_id: int,
        message_id: int,
        requester_id: int,
        levels: Sequence[int],
    ) -> RequestRecord:
        """Insert a new ``open`` request.

        Raises
        ------
        ConflictError
            If a request with the same key already exists.
        """
        now = now_ts()
        try:
            with get_session(self.engine) as session:
                row = Request(
                    guild_id=guild_id,
                    season_id=season_id,
                    message_id=message_id,
                    requester_id=requester_id,
                    levels=list(levels),
                    status=RequestStatus.OPEN.value,
                    claimed_by=None,
                    meta={},
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.flush()
                record = _to_record(row)
        except IntegrityError as exc:
            raise ConflictError(
                f"Request {message_id} already exists in season {season_id}."
            ) from exc

        logger.debug(
            "Request %d created by %d (levels=%s)", message_id, requester_id, record.levels,
        )
        return record

    def get(self, guild_id: int, season_id: int, message_id: int) -> RequestRecord | None:
        with Session(self.engine) as session:
            row = session.get(Request, (guild_id, season_id, message_id))
            return _to_record(row) if row is not None else None

    def list_open(
        self, guild_id: int, season_id: int, limit: int = 25,
    ) -> list[RequestRecord]:
        """Pending (open or claimed) requests, oldest first."""
        with Session(self.engine) as session:
            rows = session.scalars(
                select(Request)
                .where(
                    Request.guild_id == guild_id,
                    Request.season_id == season_id,
                    Request.status.in_(PENDING_STATUSES),
                )
                .order_by(Request.created_at, Request.message_id)
                .limit(limit)
            ).all()
            return [_to_record(r) for r in rows]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _transition(self, session: Session, where, values: dict) -> bool:
        result = session.execute(
            update(Request)
            .where(*where)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def claim(
        self, guild_id: int, season_id: int, message_id: int, builder_id: int,
    ) -> bool:
        """``open → claimed``.  True only for the single winning claimant."""
        with get_session(self.engine) as session:
            ok = self._transition(
                session,
                (*_key(guild_id, season_id, message_id),
                 Request.status == RequestStatus.OPEN.value),
                {
                    "status": RequestStatus.CLAIMED.value,
                    "claimed_by": builder_id,
                    "updated_at": now_ts(),
                },
            )
        if not ok:
            logger.debug("Claim of request %d by %d rejected", message_id, builder_id)
        return ok

    def complete(
        self,
        guild_id: int,
        season_id: int,
        message_id: int,
        builder_id: int,
        levels: Sequence[int],
    ) -> bool:
        """``claimed → completed``, only by the builder who claimed it.

        On success the derived hit/build events are queued on the buffer.
        """
        now = now_ts()
        with get_session(self.engine) as session:
            ok = self._transition(
                session,
                (*_key(guild_id, season_id, message_id),
                 Request.status == RequestStatus.CLAIMED.value,
                 Request.claimed_by == builder_id),
                {"status": RequestStatus.COMPLETED.value, "updated_at": now},
            )
        if not ok:
            logger.debug("Completion of request %d by %d rejected", message_id, builder_id)
            return False

        self.buffer.enqueue_many(events_for_completion(
            guild_id=guild_id,
            season_id=season_id,
            message_id=message_id,
            builder_id=builder_id,
            levels=levels,
            created_at=now,
        ))
        return True

    def cancel(
        self, guild_id: int, season_id: int, message_id: int, cancelled_by: int,
    ) -> bool:
        """``open|claimed → cancelled``; records who cancelled in ``meta``."""
        with get_session(self.engine) as session:
            ok = self._transition(
                session,
                (*_key(guild_id, season_id, message_id),
                 Request.status.in_(PENDING_STATUSES)),
                {"status": RequestStatus.CANCELLED.value, "updated_at": now_ts()},
            )
            if ok:
                # The row is write-locked by the UPDATE above until commit
                row = session.get(Request, (guild_id, season_id, message_id))
                row.meta = {**(row.meta or {}), "cancelled_by": cancelled_by}
        if not ok:
            logger.debug("Cancel of request %d by %d rejected", message_id, cancelled_by)
        return ok

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    def set_meta(
        self,
        guild_id: int,
        season_id: int,
        message_id: int,
        patch: Mapping[str, Any],
    ) -> bool:
        """Merge *patch* into the request's ``meta``, whatever its status.

        Returns False if the request does not exist.
        """
        with get_session(self.engine) as session:
            # No-op UPDATE takes the row write lock before meta is read
            if not self._transition(
                session,
                _key(guild_id, season_id, message_id),
                {"updated_at": Request.updated_at},
            ):
                return False
            row = session.get(Request, (guild_id, season_id, message_id))
            row.meta = {**(row.meta or {}), **patch}
        return True
