"""
cityforge.services.action_buffer — Write-Behind Action Buffer
==============================================================

Completed requests produce several small ``actions`` rows at once.  Rather
than writing each one from the request path, they are queued here and
written in batches:

* every ``flush_interval`` seconds by a daemon flusher thread,
* immediately (on the caller's thread) when the queue reaches
  ``max_queue`` items,
* on :meth:`ActionBuffer.flush` from any caller, and
* once more on :meth:`ActionBuffer.close` during shutdown.

The lock only guards the swap of the in-memory list.  The database write
happens on the swapped-out snapshot with the lock released, so producers
never wait on I/O and an event enqueued mid-flush lands in the next batch.

A failed batch is rolled back and **dropped**; it is not re-queued.
Explicit callers of :meth:`flush` / :meth:`close` receive
:class:`~cityforge.errors.PersistenceFailure`; background paths log the
failure and keep running.  Drop and failure counts are kept for operators.

Usage::

    buffer = ActionBuffer(engine, max_queue=400, flush_interval=60.0)
    buffer.start()
    buffer.enqueue_many(events)
    ...
    buffer.close()          # stops the thread, then flushes what is left
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from cityforge.constants import DEFAULT_FLUSH_INTERVAL_SECONDS, DEFAULT_MAX_QUEUE
from cityforge.database.engine import get_session
from cityforge.engine.events import ActionEvent
from cityforge.errors import PersistenceFailure
from cityforge.services.event_store import append_actions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BufferStats:
    """Point-in-time counters for an :class:`ActionBuffer`."""

    pending: int
    flushed_total: int
    dropped_total: int
    failed_batches: int


class ActionBuffer:
    """Batching writer for :class:`~cityforge.engine.events.ActionEvent`."""

    def __init__(
        self,
        engine: Engine,
        *,
        max_queue: int = DEFAULT_MAX_QUEUE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
    ) -> None:
        if max_queue < 1:
            raise ValueError("max_queue must be at least 1")
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        self._engine = engine
        self._max_queue = max_queue
        self._flush_interval = flush_interval

        self._lock = threading.Lock()
        self._queue: list[ActionEvent] = []

        self._flusher_thread: threading.Thread | None = None
        self._shutdown_event = threading.Event()
        self._closed = False

        self._flushed_total = 0
        self._dropped_total = 0
        self._failed_batches = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Launch the periodic flusher thread (no-op if already running)."""
        if self._closed:
            raise RuntimeError("ActionBuffer is closed")
        if self._flusher_thread is not None and self._flusher_thread.is_alive():
            return
        self._flusher_thread = threading.Thread(
            target=self._run, daemon=True, name="action-buffer-flusher",
        )
        self._flusher_thread.start()
        logger.info(
            "Action buffer started (interval=%.1fs, max_queue=%d)",
            self._flush_interval, self._max_queue,
        )

    def close(self) -> int:
        """Stop the flusher and write whatever is still queued.

        Idempotent: a second call returns 0.  Raises
        :class:`PersistenceFailure` if the final batch cannot be written.
        """
        if self._closed:
            return 0
        self._closed = True
        self._shutdown_event.set()
        if self._flusher_thread is not None and self._flusher_thread.is_alive():
            self._flusher_thread.join(timeout=10)
        written = self.flush()
        logger.info("Action buffer closed (final flush: %d)", written)
        return written

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------
    def enqueue(self, event: ActionEvent) -> None:
        """Queue one event; flushes inline when the queue is full."""
        self.enqueue_many((event,))

    def enqueue_many(self, events: Iterable[ActionEvent]) -> None:
        """Queue several events under one lock acquisition.

        After :meth:`close` the buffer has no flusher, so events are
        written straight away.
        """
        with self._lock:
            self._queue.extend(events)
            size = len(self._queue)
        if size >= self._max_queue:
            self._flush_logged("size threshold")
        elif self._closed and size:
            self._flush_logged("post-close")

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------
    def flush(self) -> int:
        """Persist the current queue in one transaction.

        Returns the number of events written (0 when the queue is empty).
        On failure the whole batch is rolled back, counted as dropped and
        :class:`PersistenceFailure` is raised with the SQLAlchemy error as
        its cause.
        """
        with self._lock:
            batch, self._queue = self._queue, []
        if not batch:
            logger.debug("Action flush: nothing queued")
            return 0

        try:
            with get_session(self._engine) as session:
                written = append_actions(session, batch)
        except SQLAlchemyError as exc:
            with self._lock:
                self._dropped_total += len(batch)
                self._failed_batches += 1
            raise PersistenceFailure(
                f"Failed to persist {len(batch)} action(s); batch dropped",
                dropped=len(batch),
            ) from exc

        with self._lock:
            self._flushed_total += written
        logger.info("Flushed %d action(s)", written)
        return written

    def _flush_logged(self, reason: str) -> int:
        try:
            return self.flush()
        except PersistenceFailure as exc:
            logger.exception(
                "Action flush (%s) failed — dropped %d event(s)", reason, exc.dropped,
            )
            return 0

    def _run(self) -> None:
        # wait() returns True once close() sets the event
        while not self._shutdown_event.wait(timeout=self._flush_interval):
            try:
                self._flush_logged("timer")
            except Exception:
                logger.exception("Unexpected error in action flusher")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def stats(self) -> BufferStats:
        with self._lock:
            return BufferStats(
                pending=len(self._queue),
                flushed_total=self._flushed_total,
                dropped_total=self._dropped_total,
                failed_batches=self._failed_batches,
            )
