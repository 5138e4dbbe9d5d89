"""Initial schema: guilds, settings, seasons, members, requests, actions

Revision ID: 5c2e9d41b7a0
Revises:
Create Date: 2026-10-19 09:12:04.118230

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e9d41b7a0'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONDoc = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create the six CityForge tables."""

    op.create_table(
        "guilds",
        sa.Column("guild_id", sa.BigInteger, primary_key=True),
        sa.Column("created_at", sa.BigInteger, nullable=False),
    )

    op.create_table(
        "guild_settings",
        sa.Column("guild_id", sa.BigInteger, primary_key=True),
        sa.Column("roles_channel_id", sa.BigInteger, nullable=True),
        sa.Column("roles_message_id", sa.BigInteger, nullable=True),
        sa.Column("role_builder_id", sa.BigInteger, nullable=True),
        sa.Column("role_striker_id", sa.BigInteger, nullable=True),
        sa.Column("role_pinkcleaner_id", sa.BigInteger, nullable=True),
        sa.Column("role_player_id", sa.BigInteger, nullable=True),
        sa.Column(
            "timezone_offset_minutes", sa.Integer, nullable=False, server_default="-360",
        ),
        sa.Column("updated_at", sa.BigInteger, nullable=False),
    )

    # --- seasons: at most one active per guild ---
    op.create_table(
        "seasons",
        sa.Column("guild_id", sa.BigInteger, primary_key=True),
        sa.Column("season_id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("is_active", sa.Boolean, nullable=False),
        sa.Column("created_by", sa.BigInteger, nullable=True),
        sa.Column("created_at", sa.BigInteger, nullable=False),
    )
    op.create_index(
        "uq_seasons_one_active", "seasons", ["guild_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active"),
    )

    op.create_table(
        "members",
        sa.Column("guild_id", sa.BigInteger, primary_key=True),
        sa.Column("user_id", sa.BigInteger, primary_key=True),
        sa.Column("bot_role", sa.String(32), nullable=True),
        sa.Column("valor", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("username", sa.String(100), nullable=True),
        sa.Column("global_name", sa.String(100), nullable=True),
        sa.Column("nickname", sa.String(100), nullable=True),
        sa.Column("name_updated_at", sa.BigInteger, nullable=True),
        sa.Column("created_at", sa.BigInteger, nullable=False),
        sa.Column("updated_at", sa.BigInteger, nullable=False),
    )

    op.create_table(
        "requests",
        sa.Column("guild_id", sa.BigInteger, primary_key=True),
        sa.Column("season_id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("message_id", sa.BigInteger, primary_key=True),
        sa.Column("requester_id", sa.BigInteger, nullable=False),
        sa.Column("levels", JSONDoc, nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("claimed_by", sa.BigInteger, nullable=True),
        sa.Column("meta", JSONDoc, nullable=False),
        sa.Column("created_at", sa.BigInteger, nullable=False),
        sa.Column("updated_at", sa.BigInteger, nullable=False),
    )
    op.create_index(
        "ix_requests_guild_season_status", "requests",
        ["guild_id", "season_id", "status"],
    )

    # --- actions: append-only event log ---
    op.create_table(
        "actions",
        sa.Column(
            "id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True, autoincrement=True,
        ),
        sa.Column("guild_id", sa.BigInteger, nullable=False),
        sa.Column("season_id", sa.Integer, nullable=False),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("value", sa.BigInteger, nullable=False),
        sa.Column("meta", JSONDoc, nullable=True),
        sa.Column("created_at", sa.BigInteger, nullable=False),
    )
    op.create_index(
        "ix_actions_guild_season_type", "actions", ["guild_id", "season_id", "type"],
    )
    op.create_index(
        "ix_actions_guild_season_time", "actions", ["guild_id", "season_id", "created_at"],
    )
    op.create_index(
        "ix_actions_guild_season_user", "actions", ["guild_id", "season_id", "user_id"],
    )


def downgrade() -> None:
    """Drop all CityForge tables."""
    op.drop_index("ix_actions_guild_season_user", table_name="actions")
    op.drop_index("ix_actions_guild_season_time", table_name="actions")
    op.drop_index("ix_actions_guild_season_type", table_name="actions")
    op.drop_table("actions")
    op.drop_index("ix_requests_guild_season_status", table_name="requests")
    op.drop_table("requests")
    op.drop_table("members")
    op.drop_index("uq_seasons_one_active", table_name="seasons")
    op.drop_table("seasons")
    op.drop_table("guild_settings")
    op.drop_table("guilds")
