"""
cityforge.bot.__main__ — Entry point for ``python -m cityforge.bot``
====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (infrastructure settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Start the write-behind action buffer.
5. Create the CityForgeBot and hand it config + engine + buffer.
6. Start the bot (blocking — runs the asyncio event loop).

Shutdown runs in reverse: the bot's ``close()`` flushes the buffer, then
disposes of the engine.
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from cityforge.bot.core import CityForgeBot
from cityforge.config import load_config
from cityforge.database.engine import create_db_engine, init_db
from cityforge.services.action_buffer import ActionBuffer

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("cityforge")


def main() -> None:
    """Bootstrap and run the CityForge bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Infrastructure configuration.
    cfg = load_config()
    logger.info(
        "Config loaded — flush every %.0fs or at %d queued actions",
        cfg.action_flush_interval_seconds, cfg.action_max_queue,
    )

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Write-behind buffer.
    buffer = ActionBuffer(
        engine,
        max_queue=cfg.action_max_queue,
        flush_interval=cfg.action_flush_interval_seconds,
    )
    buffer.start()

    # 5. Bot.
    bot = CityForgeBot(cfg=cfg, engine=engine, buffer=buffer)

    # 6. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting CityForge bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")
    finally:
        # No-op if bot.close() already ran
        buffer.close()


if __name__ == "__main__":
    main()
