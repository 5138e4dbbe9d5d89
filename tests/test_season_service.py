"""
tests/test_season_service.py — Season Registry Tests
=====================================================
"""

from __future__ import annotations

import threading

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from cityforge.database.engine import get_session
from cityforge.database.models import Guild, Season
from cityforge.errors import ConflictError
from cityforge.services.season_service import (
    get_active_season,
    get_or_create_active_season,
    list_seasons,
    season_exists,
    start_new_season,
)

GUILD = 100


class TestBootstrap:
    """Tests for get_or_create_active_season()."""

    def test_fresh_guild_gets_season_one(self, db_engine, db_session):
        assert get_or_create_active_season(db_engine, GUILD) == 1
        assert db_session.get(Guild, GUILD) is not None

    def test_idempotent(self, db_engine):
        assert get_or_create_active_season(db_engine, GUILD) == 1
        assert get_or_create_active_season(db_engine, GUILD) == 1
        assert len(list_seasons(db_engine, GUILD)) == 1

    def test_unknown_guild_has_no_active_season(self, db_engine):
        assert get_active_season(db_engine, GUILD) is None

    def test_reactivates_newest_when_none_active(self, db_engine):
        get_or_create_active_season(db_engine, GUILD)
        start_new_season(db_engine, GUILD, 2)
        with get_session(db_engine) as session:
            session.execute(update(Season).values(is_active=False))

        assert get_or_create_active_season(db_engine, GUILD) == 2
        assert [s.is_active for s in list_seasons(db_engine, GUILD)] == [True, False]

    def test_racing_bootstraps_agree(self, file_engine):
        racers = 6
        barrier = threading.Barrier(racers)
        results: list[int] = []
        lock = threading.Lock()

        def bootstrap() -> None:
            barrier.wait()
            sid = get_or_create_active_season(file_engine, GUILD)
            with lock:
                results.append(sid)

        threads = [threading.Thread(target=bootstrap) for _ in range(racers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [1] * racers
        assert len(list_seasons(file_engine, GUILD)) == 1


class TestRollover:
    """Tests for start_new_season()."""

    def test_new_season_becomes_only_active(self, db_engine):
        get_or_create_active_season(db_engine, GUILD)
        assert start_new_season(db_engine, GUILD, 2, created_by=42) == 2

        seasons = list_seasons(db_engine, GUILD)
        assert [(s.season_id, s.is_active) for s in seasons] == [(2, True), (1, False)]
        assert seasons[0].created_by == 42
        assert get_or_create_active_season(db_engine, GUILD) == 2

    def test_existing_id_conflicts_and_changes_nothing(self, db_engine):
        get_or_create_active_season(db_engine, GUILD)
        start_new_season(db_engine, GUILD, 2)

        with pytest.raises(ConflictError):
            start_new_season(db_engine, GUILD, 1)
        with pytest.raises(ConflictError):
            start_new_season(db_engine, GUILD, 2)

        assert get_active_season(db_engine, GUILD) == 2
        assert sum(s.is_active for s in list_seasons(db_engine, GUILD)) == 1

    def test_first_season_may_be_started_explicitly(self, db_engine):
        assert start_new_season(db_engine, GUILD, 7) == 7
        assert get_or_create_active_season(db_engine, GUILD) == 7

    def test_guilds_are_independent(self, db_engine):
        get_or_create_active_season(db_engine, GUILD)
        get_or_create_active_season(db_engine, GUILD + 1)
        start_new_season(db_engine, GUILD, 2)

        assert get_active_season(db_engine, GUILD) == 2
        assert get_active_season(db_engine, GUILD + 1) == 1

    def test_season_exists(self, db_engine):
        get_or_create_active_season(db_engine, GUILD)
        assert season_exists(db_engine, GUILD, 1)
        assert not season_exists(db_engine, GUILD, 2)


class TestOneActiveIndex:
    """The partial unique index rejects a second active season."""

    def test_second_active_row_rejected(self, db_engine):
        get_or_create_active_season(db_engine, GUILD)
        with pytest.raises(IntegrityError):
            with get_session(db_engine) as session:
                session.add(Season(guild_id=GUILD, season_id=2, is_active=True, created_at=0))
