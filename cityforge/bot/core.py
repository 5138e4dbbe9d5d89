"""
cityforge.bot.core — Bot Instance & Cog Loader
===============================================

Defines :class:`CityForgeBot`, a ``commands.Bot`` subclass that:

1. Carries the shared config, DB engine, write-behind
   :class:`~cityforge.services.action_buffer.ActionBuffer` and
   :class:`~cityforge.services.request_service.RequestStore` so every Cog
   can reach them via ``self.bot.*``.
2. Loads the Cogs listed in :data:`EXTENSIONS`.
3. Syncs the slash-command tree on startup (guild-scoped when
   ``DEV_GUILD_ID`` is set, global otherwise).
4. Makes sure every guild it sits in has an active season.
5. On shutdown, flushes queued actions *before* the engine goes away.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from cityforge.config import CityForgeConfig
from cityforge.database.engine import run_db
from cityforge.errors import PersistenceFailure
from cityforge.services.action_buffer import ActionBuffer
from cityforge.services.request_service import RequestStore
from cityforge.services.season_service import get_or_create_active_season

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "cityforge.bot.cogs.membership",
]


class CityForgeBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`CityForgeConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` (PostgreSQL or SQLite).
    buffer:
        A started :class:`ActionBuffer`; the bot takes ownership and
        closes it on shutdown.
    """

    def __init__(self, cfg: CityForgeConfig, engine: Engine, buffer: ActionBuffer) -> None:
        intents = discord.Intents.default()
        intents.members = True            # Privileged: member name cache
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description="CityForge — build request tracker",
        )

        self.cfg = cfg
        self.engine = engine
        self.buffer = buffer
        self.requests = RequestStore(engine, buffer)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions before connecting.

        A Cog that fails to load is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        for guild in self.guilds:
            await self._bootstrap_guild(guild)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self._bootstrap_guild(guild)

    async def _bootstrap_guild(self, guild: discord.Guild) -> None:
        try:
            season_id = await run_db(get_or_create_active_season, self.engine, guild.id)
            logger.info("Guild %s (%d) active season: %d", guild.name, guild.id, season_id)
        except Exception:
            logger.exception("Failed to bootstrap season for guild %d", guild.id)

    async def close(self) -> None:
        """Graceful shutdown: final action flush, then disconnect and dispose."""
        logger.info("Bot shutting down…")
        try:
            await run_db(self.buffer.close)
        except PersistenceFailure as exc:
            logger.error("Final action flush failed — %d event(s) lost: %s", exc.dropped, exc)
        await super().close()
        self.engine.dispose()
