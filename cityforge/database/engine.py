"""
cityforge.database.engine — Database Connection & Async Helper
===============================================================

The Discord side of CityForge runs on an ``asyncio`` event loop while
SQLAlchemy is synchronous.  Cogs therefore never touch a session
directly; they hand a plain sync function to :func:`run_db`, which runs
it on the default thread pool and awaits the result.

Two backends are supported:

* **PostgreSQL** (production) with a small pooled engine.
* **SQLite** (single-host deployments and tests).  Every connection gets
  WAL journaling, ``synchronous=NORMAL``, foreign keys and a 5 s busy
  timeout so that the bot loop, the flusher thread and ``to_thread``
  workers can share one file.

Usage::

    from cityforge.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    # Inside an async Cog method:
    ok = await run_db(store.claim, guild_id, season_id, message_id, user_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session

from cityforge.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

SQLITE_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=5000",
)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def _apply_sqlite_pragmas(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from *url* or ``DATABASE_URL``.

    PostgreSQL URLs get a pool sized for a single bot process:
    * ``pool_size=5`` — five persistent connections.
    * ``max_overflow=10`` — up to 10 extra connections under load.
    * ``pool_timeout=10`` — fail after 10 s if no connection is available.
    * ``pool_recycle=3600`` — recycle connections after 1 hour.

    SQLite URLs are opened with ``check_same_thread=False`` and the
    pragmas in :data:`SQLITE_PRAGMAS` applied on every new connection.

    Raises
    ------
    RuntimeError
        If neither *url* nor ``DATABASE_URL`` is set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a PostgreSQL or SQLite URL."
        )

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 5},
        )
        event.listen(engine, "connect", _apply_sqlite_pragmas)
        logger.info("Database engine created → sqlite (%s)", engine.url.database or ":memory:")
        return engine

    engine = create_engine(
        url,
        echo=False,        # Set True for SQL debugging
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,   # Reconnect stale connections automatically
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`cityforge.database.models`.

    Safe to call on every startup.  In production the schema is managed
    by Alembic (``alembic upgrade head``); ``create_all`` covers dev and
    test databases where migrations have not run.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back
    on exception.

    Usage::

        with get_session(engine) as session:
            session.add(Guild(guild_id=123, created_at=now_ts()))
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every DB call made from a Cog goes through this wrapper::

        record = await run_db(get_or_create_season, engine, guild_id)

    Parameters
    ----------
    func:
        Any sync callable (typically a service function taking an engine).
    *args, **kwargs:
        Forwarded to *func*.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
