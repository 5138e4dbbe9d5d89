"""
CityForge — Build Request Tracking & Activity Stats for Discord
================================================================
Tracks a community's "build request → claim → complete" workflow and
derives daily build/hit statistics per member, per guild, per season,
bucketed by each guild's configured timezone offset.

Package layout::

    cityforge/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level bounds, timezone bounds, defaults
    ├── errors.py          # ValidationError / ConflictError / PersistenceFailure
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session + async helper
    │   └── models.py      # ORM models (guilds, seasons, members, requests, actions, settings)
    ├── engine/
    │   ├── values.py      # "10G" ↔ 10_000_000_000 codec
    │   ├── validation.py  # Level list + timezone offset validators
    │   ├── calendar.py    # Guild-local day math
    │   └── events.py      # ActionEvent envelope
    ├── services/
    │   ├── event_store.py     # Append-only actions table
    │   ├── action_buffer.py   # Write-behind buffer for action inserts
    │   ├── guild_service.py   # Guild rows + guild settings
    │   ├── season_service.py  # Season registry + rollover
    │   ├── request_service.py # Request lifecycle state machine
    │   ├── stats_service.py   # Timezone-aware rollups & leaderboards
    │   └── member_service.py  # Member metadata cache
    └── bot/
        ├── __main__.py    # python -m cityforge.bot
        ├── core.py        # Bot subclass, lifecycle wiring
        └── cogs/
            └── membership.py  # Member metadata observation
"""

__version__ = "0.1.0"
