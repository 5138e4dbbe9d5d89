"""
tests/test_member_service.py — Member Metadata Cache Tests
===========================================================
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from cityforge.errors import ValidationError
from cityforge.services.member_service import (
    get_member,
    get_member_valor,
    get_members,
    set_member_valor,
    upsert_member,
)

GUILD = 100


class TestUpsertMember:
    """Insert-if-missing, then keep existing values for None fields."""

    def test_creates_row(self, db_engine):
        upsert_member(db_engine, GUILD, 1, username="alice", global_name="Alice")
        m = get_member(db_engine, GUILD, 1)
        assert (m.username, m.global_name, m.nickname) == ("alice", "Alice", None)
        assert m.valor == 0

    def test_none_never_clears(self, db_engine):
        upsert_member(db_engine, GUILD, 1, username="alice", nickname="Ally", bot_role="builder")
        upsert_member(db_engine, GUILD, 1, global_name="Alice")

        m = get_member(db_engine, GUILD, 1)
        assert (m.username, m.global_name, m.nickname, m.bot_role) == (
            "alice", "Alice", "Ally", "builder",
        )

    def test_name_timestamp_moves_only_with_names(self, db_engine):
        with patch("cityforge.services.member_service.now_ts", return_value=1_000):
            upsert_member(db_engine, GUILD, 1, username="alice")
        with patch("cityforge.services.member_service.now_ts", return_value=2_000):
            upsert_member(db_engine, GUILD, 1, bot_role="striker")
        assert get_member(db_engine, GUILD, 1).name_updated_at == 1_000

        with patch("cityforge.services.member_service.now_ts", return_value=3_000):
            upsert_member(db_engine, GUILD, 1, nickname="Al")
        assert get_member(db_engine, GUILD, 1).name_updated_at == 3_000

    def test_role_only_upsert_has_no_name_timestamp(self, db_engine):
        upsert_member(db_engine, GUILD, 1, bot_role="player")
        m = get_member(db_engine, GUILD, 1)
        assert m.bot_role == "player"
        assert m.name_updated_at is None

    def test_display_name_fallbacks(self, db_engine):
        upsert_member(db_engine, GUILD, 1, username="alice")
        upsert_member(db_engine, GUILD, 2, username="bob", nickname="Bobby")
        upsert_member(db_engine, GUILD, 3, bot_role="player")

        members = get_members(db_engine, GUILD, [1, 2, 3, 4])
        assert members[1].display_name == "alice"
        assert members[2].display_name == "Bobby"
        assert members[3].display_name == "3"
        assert 4 not in members


class TestValor:
    """get_member_valor() / set_member_valor()."""

    def test_unknown_member_is_zero(self, db_engine):
        assert get_member_valor(db_engine, GUILD, 1) == 0

    def test_set_creates_and_overwrites(self, db_engine):
        set_member_valor(db_engine, GUILD, 1, 10_000_000_000)
        assert get_member_valor(db_engine, GUILD, 1) == 10_000_000_000
        set_member_valor(db_engine, GUILD, 1, 5)
        assert get_member_valor(db_engine, GUILD, 1) == 5

    def test_upsert_keeps_valor(self, db_engine):
        set_member_valor(db_engine, GUILD, 1, 42)
        upsert_member(db_engine, GUILD, 1, username="alice")
        assert get_member(db_engine, GUILD, 1).valor == 42

    def test_negative_rejected(self, db_engine):
        with pytest.raises(ValidationError):
            set_member_valor(db_engine, GUILD, 1, -1)

    def test_guilds_are_separate(self, db_engine):
        set_member_valor(db_engine, GUILD, 1, 42)
        assert get_member_valor(db_engine, GUILD + 1, 1) == 0
