"""
cityforge.bot.cogs.membership — Member Metadata Capture
========================================================

Keeps the ``members`` name cache fresh from GUILD_MEMBER_ADD and
GUILD_MEMBER_UPDATE gateway events.  Requires the GUILD_MEMBERS
privileged intent.  Failures are logged and never reach Discord.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from cityforge.database.engine import run_db
from cityforge.services.member_service import upsert_member

if TYPE_CHECKING:
    from cityforge.bot.core import CityForgeBot

logger = logging.getLogger(__name__)


class Membership(commands.Cog, name="Membership"):
    """Caches member names on join and on profile changes."""

    def __init__(self, bot: CityForgeBot) -> None:
        self.bot = bot

    async def _cache(self, member: discord.Member) -> None:
        await run_db(
            upsert_member,
            self.bot.engine,
            member.guild.id,
            member.id,
            username=member.name,
            global_name=member.global_name,
            nickname=member.nick,
        )

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        try:
            if member.bot:
                return
            await self._cache(member)
            logger.info("Member joined: %s (ID: %d)", member.display_name, member.id)
        except Exception:
            logger.exception("Error caching member_join for %s", member.id)

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        try:
            if after.bot:
                return
            if (before.name, before.global_name, before.nick) == (
                after.name, after.global_name, after.nick,
            ):
                return
            await self._cache(after)
            logger.debug("Member renamed: %d → %s", after.id, after.display_name)
        except Exception:
            logger.exception("Error caching member_update for %s", after.id)


async def setup(bot: CityForgeBot) -> None:
    await bot.add_cog(Membership(bot))
