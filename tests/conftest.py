"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from cityforge.database.engine import create_db_engine, init_db
from cityforge.database.models import Base
from cityforge.engine.events import ActionEvent, ActionType
from cityforge.services.action_buffer import ActionBuffer
from cityforge.services.request_service import RequestStore

# 2024-03-10 18:00:00 UTC, i.e. local noon on 2024-03-10 at UTC-6
NOW = 1_710_093_600
DAY = 86_400
HOUR = 3_600

GUILD_ID = 100
SEASON_ID = 1


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


def make_event(
    user_id: int = 1,
    type: ActionType = ActionType.BUILD,
    value: int = 1,
    created_at: int = NOW,
    guild_id: int = GUILD_ID,
    season_id: int = SEASON_ID,
    meta: dict | None = None,
) -> ActionEvent:
    return ActionEvent(
        guild_id=guild_id,
        season_id=season_id,
        user_id=user_id,
        type=type,
        value=value,
        created_at=created_at,
        meta=meta or {},
    )


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all CityForge tables.

    Uses StaticPool so every thread (``asyncio.to_thread`` included) shares
    the same in-memory database.  Tests that need real concurrent writers
    use :func:`file_engine` instead.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine built the same way production builds one."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cityforge.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def buffer(db_engine: Engine):
    """An un-started buffer; tests flush it explicitly."""
    buf = ActionBuffer(db_engine, max_queue=1_000, flush_interval=3_600)
    yield buf
    buf.close()


@pytest.fixture
def store(db_engine: Engine, buffer: ActionBuffer) -> RequestStore:
    return RequestStore(db_engine, buffer)
