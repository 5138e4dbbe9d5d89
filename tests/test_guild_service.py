"""
tests/test_guild_service.py — Guild & Settings Registry Tests
==============================================================
"""

from __future__ import annotations

import pytest

from cityforge.database.models import Guild
from cityforge.errors import ValidationError
from cityforge.services.guild_service import (
    GuildSettingsUpdate,
    ensure_guild,
    get_guild_settings,
    get_timezone_offset,
    save_guild_settings,
)

GUILD = 100


class TestEnsureGuild:
    def test_idempotent(self, db_engine, db_session):
        ensure_guild(db_engine, GUILD)
        ensure_guild(db_engine, GUILD)
        assert db_session.query(Guild).count() == 1


class TestSettings:
    """Merge semantics of save_guild_settings()."""

    def test_defaults_before_first_save(self, db_engine):
        assert get_guild_settings(db_engine, GUILD) is None
        assert get_timezone_offset(db_engine, GUILD) == -360

    def test_first_save_creates_row_with_default_offset(self, db_engine):
        rec = save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(role_builder_id=11))
        assert rec.role_builder_id == 11
        assert rec.timezone_offset_minutes == -360

    def test_absent_fields_are_kept(self, db_engine):
        save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(
            roles_channel_id=1, roles_message_id=2, role_builder_id=11, role_striker_id=12,
        ))
        save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(timezone_offset_minutes=60))
        save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(role_player_id=14))

        rec = get_guild_settings(db_engine, GUILD)
        assert (rec.roles_channel_id, rec.roles_message_id) == (1, 2)
        assert (rec.role_builder_id, rec.role_striker_id) == (11, 12)
        assert rec.role_pinkcleaner_id is None
        assert rec.role_player_id == 14
        assert rec.timezone_offset_minutes == 60
        assert get_timezone_offset(db_engine, GUILD) == 60

    def test_fields_can_be_overwritten(self, db_engine):
        save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(role_builder_id=11))
        save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(role_builder_id=99))
        assert get_guild_settings(db_engine, GUILD).role_builder_id == 99

    def test_invalid_offset_rejected(self, db_engine):
        with pytest.raises(ValidationError):
            save_guild_settings(db_engine, GUILD, GuildSettingsUpdate(timezone_offset_minutes=900))
        assert get_guild_settings(db_engine, GUILD) is None

    def test_save_creates_guild(self, db_engine, db_session):
        save_guild_settings(db_engine, GUILD, GuildSettingsUpdate())
        assert db_session.get(Guild, GUILD) is not None
