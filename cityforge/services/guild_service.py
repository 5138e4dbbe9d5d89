"""
cityforge.services.guild_service — Guilds & Per-Guild Settings
================================================================

Guild rows are created lazily the first time anything references a guild.
Settings hold the role bindings, the role-picker message pointer and the
timezone offset used for every daily rollup.

Saving settings is a merge: fields left as ``None`` in a
:class:`GuildSettingsUpdate` keep whatever is already stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

from sqlalchemy import Engine, text
from sqlalchemy.orm import Session

from cityforge.constants import DEFAULT_TZ_OFFSET_MINUTES
from cityforge.database.engine import get_session
from cityforge.database.models import GuildSettings
from cityforge.engine.calendar import now_ts
from cityforge.engine.validation import validate_timezone_offset

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GuildSettingsRecord:
    """Detached snapshot of a ``guild_settings`` row."""

    guild_id: int
    roles_channel_id: int | None
    roles_message_id: int | None
    role_builder_id: int | None
    role_striker_id: int | None
    role_pinkcleaner_id: int | None
    role_player_id: int | None
    timezone_offset_minutes: int
    updated_at: int


@dataclass(frozen=True, slots=True)
class GuildSettingsUpdate:
    """Partial settings change.  ``None`` means "leave as is"."""

    roles_channel_id: int | None = None
    roles_message_id: int | None = None
    role_builder_id: int | None = None
    role_striker_id: int | None = None
    role_pinkcleaner_id: int | None = None
    role_player_id: int | None = None
    timezone_offset_minutes: int | None = None


def _to_record(row: GuildSettings) -> GuildSettingsRecord:
    return GuildSettingsRecord(
        guild_id=row.guild_id,
        roles_channel_id=row.roles_channel_id,
        roles_message_id=row.roles_message_id,
        role_builder_id=row.role_builder_id,
        role_striker_id=row.role_striker_id,
        role_pinkcleaner_id=row.role_pinkcleaner_id,
        role_player_id=row.role_player_id,
        timezone_offset_minutes=row.timezone_offset_minutes,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------
def ensure_guild_in_session(session: Session, guild_id: int) -> None:
    """Insert the guild row if missing, inside the caller's transaction."""
    session.execute(
        text("""
            INSERT INTO guilds (guild_id, created_at)
            VALUES (:guild_id, :now)
            ON CONFLICT (guild_id) DO NOTHING
        """),
        {"guild_id": guild_id, "now": now_ts()},
    )


def ensure_guild(engine: Engine, guild_id: int) -> None:
    """Idempotently create the guild row."""
    with get_session(engine) as session:
        ensure_guild_in_session(session, guild_id)


# ---------------------------------------------------------------------------
# Settings reads
# ---------------------------------------------------------------------------
def get_guild_settings(engine: Engine, guild_id: int) -> GuildSettingsRecord | None:
    with Session(engine) as session:
        row = session.get(GuildSettings, guild_id)
        return _to_record(row) if row is not None else None


def get_timezone_offset_in_session(session: Session, guild_id: int) -> int:
    offset = session.execute(
        text("SELECT timezone_offset_minutes FROM guild_settings WHERE guild_id = :g"),
        {"g": guild_id},
    ).scalar()
    return int(offset) if offset is not None else DEFAULT_TZ_OFFSET_MINUTES


def get_timezone_offset(engine: Engine, guild_id: int) -> int:
    """The guild's offset from UTC in minutes (−360 when never configured)."""
    with Session(engine) as session:
        return get_timezone_offset_in_session(session, guild_id)


# ---------------------------------------------------------------------------
# Settings writes
# ---------------------------------------------------------------------------
def save_guild_settings(
    engine: Engine,
    guild_id: int,
    update: GuildSettingsUpdate,
) -> GuildSettingsRecord:
    """Merge *update* into the guild's settings, creating the row if needed.

    Raises
    ------
    ValidationError
        If ``update.timezone_offset_minutes`` is outside −720..840.
    """
    if update.timezone_offset_minutes is not None:
        validate_timezone_offset(update.timezone_offset_minutes)

    now = now_ts()
    with get_session(engine) as session:
        ensure_guild_in_session(session, guild_id)
        session.execute(
            text("""
                INSERT INTO guild_settings (guild_id, timezone_offset_minutes, updated_at)
                VALUES (:guild_id, :tz, :now)
                ON CONFLICT (guild_id) DO NOTHING
            """),
            {"guild_id": guild_id, "tz": DEFAULT_TZ_OFFSET_MINUTES, "now": now},
        )
        row = session.get(GuildSettings, guild_id, with_for_update=True)

        changed = []
        for f in fields(update):
            value = getattr(update, f.name)
            if value is not None:
                setattr(row, f.name, value)
                changed.append(f.name)
        row.updated_at = now
        session.flush()
        record = _to_record(row)

    if changed:
        logger.info("Guild %d settings updated: %s", guild_id, ", ".join(changed))
    return record
