"""
cityforge.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- guilds          — One row per Discord guild, created lazily
- guild_settings  — Role bindings, role-picker pointer, timezone offset
- seasons         — Guild-scoped partitions; exactly one active per guild
- members         — Best-effort cache of display names, bot role, valor
- requests        — Build-request lifecycle rows (owned by RequestStore)
- actions         — Append-only build/hit events (written by ActionBuffer only)

All Discord ids are snowflakes stored as BigInteger.  Timestamps are
integer epoch seconds so that guild-local day bucketing is plain integer
arithmetic on every backend.
"""

from __future__ import annotations

import enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cityforge.constants import DEFAULT_TZ_OFFSET_MINUTES

# JSONB on Postgres, plain JSON text everywhere else
JSONDoc = JSON().with_variant(JSONB, "postgresql")


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all CityForge ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class RequestStatus(enum.StrEnum):
    """Build-request lifecycle states.

    open → claimed → completed, and open|claimed → cancelled.
    completed and cancelled are terminal.
    """
    OPEN = "open"
    CLAIMED = "claimed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------
class Guild(Base):
    __tablename__ = "guilds"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Guild id={self.guild_id}>"


# ---------------------------------------------------------------------------
# GuildSettings — per-guild configuration
# ---------------------------------------------------------------------------
class GuildSettings(Base):
    """Per-guild settings written by the setup and timezone commands.

    ``timezone_offset_minutes`` drives every daily rollup.  Changing it
    reshapes historical day boundaries for all later queries.
    """
    __tablename__ = "guild_settings"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    roles_channel_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    roles_message_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    role_builder_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    role_striker_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    role_pinkcleaner_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    role_player_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    timezone_offset_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_TZ_OFFSET_MINUTES,
        server_default=str(DEFAULT_TZ_OFFSET_MINUTES),
    )
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<GuildSettings guild={self.guild_id} "
            f"tz={self.timezone_offset_minutes}>"
        )


# ---------------------------------------------------------------------------
# Seasons — guild-scoped partitions for requests and actions
# ---------------------------------------------------------------------------
class Season(Base):
    __tablename__ = "seasons"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    season_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[int | None] = mapped_column(BigInteger, default=None)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        # At most one active season per guild
        Index(
            "uq_seasons_one_active", "guild_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Season guild={self.guild_id} id={self.season_id} "
            f"active={self.is_active}>"
        )


# ---------------------------------------------------------------------------
# Members — display-name cache, bot role, valor
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    bot_role: Mapped[str | None] = mapped_column(String(32), default=None)
    valor: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    username: Mapped[str | None] = mapped_column(String(100), default=None)
    global_name: Mapped[str | None] = mapped_column(String(100), default=None)
    nickname: Mapped[str | None] = mapped_column(String(100), default=None)
    name_updated_at: Mapped[int | None] = mapped_column(BigInteger, default=None)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Member guild={self.guild_id} user={self.user_id} role={self.bot_role!r}>"


# ---------------------------------------------------------------------------
# Requests — build-request lifecycle
# ---------------------------------------------------------------------------
class Request(Base):
    """A build request, keyed by the chat message that represents it.

    Status transitions are only ever applied as conditional UPDATEs by
    :class:`~cityforge.services.request_service.RequestStore`.
    """
    __tablename__ = "requests"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    season_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    message_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    requester_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    levels: Mapped[list] = mapped_column(JSONDoc, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RequestStatus.OPEN.value,
    )
    claimed_by: Mapped[int | None] = mapped_column(BigInteger, default=None)
    meta: Mapped[dict] = mapped_column(JSONDoc, nullable=False, default=dict)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("ix_requests_guild_season_status", "guild_id", "season_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Request guild={self.guild_id} season={self.season_id} "
            f"msg={self.message_id} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Actions — append-only build/hit events
# ---------------------------------------------------------------------------
class Action(Base):
    """Immutable point event.  Never updated or deleted.

    ``build`` rows carry the number of cities in a completed request;
    ``hit`` rows are one per level with value 1.
    """
    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True,
    )
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)
    meta: Mapped[dict | None] = mapped_column(JSONDoc, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("ix_actions_guild_season_type", "guild_id", "season_id", "type"),
        Index("ix_actions_guild_season_time", "guild_id", "season_id", "created_at"),
        Index("ix_actions_guild_season_user", "guild_id", "season_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Action id={self.id} type={self.type!r} "
            f"user={self.user_id} value={self.value}>"
        )
