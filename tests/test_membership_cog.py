"""
tests/test_membership_cog.py — Membership Cog Tests
====================================================

Discord objects are mocked; the cog writes to the shared in-memory DB.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from conftest import run_async

from cityforge.bot.cogs.membership import Membership
from cityforge.services.member_service import get_member

GUILD = 100


def _member(user_id=1, name="alice", global_name="Alice", nick=None, bot=False):
    member = MagicMock()
    member.id = user_id
    member.bot = bot
    member.name = name
    member.global_name = global_name
    member.nick = nick
    member.display_name = nick or global_name or name
    member.guild.id = GUILD
    return member


def _cog(engine) -> Membership:
    bot = MagicMock()
    bot.engine = engine
    return Membership(bot)


class TestMembershipCog:
    """on_member_join / on_member_update keep the name cache fresh."""

    def test_join_caches_names(self, db_engine):
        run_async(_cog(db_engine).on_member_join(_member()))

        m = get_member(db_engine, GUILD, 1)
        assert (m.username, m.global_name, m.nickname) == ("alice", "Alice", None)

    def test_bots_are_ignored(self, db_engine):
        run_async(_cog(db_engine).on_member_join(_member(bot=True)))
        assert get_member(db_engine, GUILD, 1) is None

    def test_nickname_change_updates_cache(self, db_engine):
        cog = _cog(db_engine)
        run_async(cog.on_member_join(_member()))
        run_async(cog.on_member_update(_member(), _member(nick="Ally")))

        m = get_member(db_engine, GUILD, 1)
        assert m.nickname == "Ally"
        assert m.username == "alice"

    def test_unrelated_update_skips_db(self, db_engine):
        cog = _cog(db_engine)
        with patch("cityforge.bot.cogs.membership.run_db") as mock_run_db:
            run_async(cog.on_member_update(_member(), _member()))
        mock_run_db.assert_not_called()

    def test_db_errors_are_logged_not_raised(self, db_engine, caplog):
        cog = _cog(db_engine)
        with patch(
            "cityforge.bot.cogs.membership.run_db", side_effect=RuntimeError("db down"),
        ):
            run_async(cog.on_member_join(_member()))
        assert "Error caching member_join" in caplog.text
