"""
cityforge.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for infrastructure settings (command prefix and buffer
tuning).  Secrets (``DISCORD_TOKEN``, ``DATABASE_URL``) come from ``.env``;
per-guild settings, the timezone offset included, live in the
``guild_settings`` table.

Usage::

    from cityforge.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.action_max_queue)  # 400
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from cityforge.constants import (
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_MAX_QUEUE,
)


@dataclass(frozen=True, slots=True)
class CityForgeConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Discord
    bot_prefix: str = "!"

    # Write-behind buffer
    action_flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS
    action_max_queue: int = DEFAULT_MAX_QUEUE


def load_config(path: str | Path = "config.yaml") -> CityForgeConfig:
    """Read *path* and return a :class:`CityForgeConfig` instance.

    Keys missing from the file fall back to the defaults above.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If the flush interval or queue size is not positive.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    interval = float(raw.get("action_flush_interval_seconds", DEFAULT_FLUSH_INTERVAL_SECONDS))
    max_queue = int(raw.get("action_max_queue", DEFAULT_MAX_QUEUE))
    if interval <= 0:
        raise ValueError("action_flush_interval_seconds must be positive")
    if max_queue < 1:
        raise ValueError("action_max_queue must be at least 1")

    return CityForgeConfig(
        bot_prefix=str(raw.get("bot_prefix", "!")),
        action_flush_interval_seconds=interval,
        action_max_queue=max_queue,
    )
