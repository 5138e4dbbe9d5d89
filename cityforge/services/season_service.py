"""
cityforge.services.season_service — Season Registry
====================================================

Seasons partition requests and actions inside a guild.  After bootstrap
every guild has exactly one active season; the partial unique index
``uq_seasons_one_active`` backs that up at the storage level.

Rolling over to a new season deactivates every season of the guild and
inserts the new active one in the same transaction, so readers never see
zero or two active seasons.  Seasons are never deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, func, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cityforge.constants import FIRST_SEASON_ID
from cityforge.database.engine import get_session
from cityforge.database.models import Season
from cityforge.engine.calendar import now_ts
from cityforge.errors import ConflictError
from cityforge.services.guild_service import ensure_guild_in_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SeasonRecord:
    season_id: int
    is_active: bool
    created_by: int | None
    created_at: int


def _active_season_id(session: Session, guild_id: int) -> int | None:
    return session.scalar(
        select(Season.season_id).where(
            Season.guild_id == guild_id, Season.is_active.is_(True),
        )
    )


def get_active_season(engine: Engine, guild_id: int) -> int | None:
    """Active season id, or ``None`` if the guild was never bootstrapped."""
    with Session(engine) as session:
        return _active_season_id(session, guild_id)


def get_or_create_active_season(engine: Engine, guild_id: int) -> int:
    """Return the guild's active season, bootstrapping season 1 if needed.

    Two callers racing on a fresh guild both end up with the same season:
    the loser's insert is a no-op and it reads the winner's row.  If the
    guild has seasons but none is active, the newest one is reactivated.
    """
    with get_session(engine) as session:
        ensure_guild_in_session(session, guild_id)

        active = _active_season_id(session, guild_id)
        if active is not None:
            return active

        newest = session.scalar(
            select(func.max(Season.season_id)).where(Season.guild_id == guild_id)
        )
        if newest is None:
            # Conflicts on the PK or the one-active index are both no-ops
            session.execute(
                text("""
                    INSERT INTO seasons (guild_id, season_id, is_active, created_by, created_at)
                    VALUES (:guild_id, :season_id, :active, NULL, :now)
                    ON CONFLICT DO NOTHING
                """),
                {
                    "guild_id": guild_id,
                    "season_id": FIRST_SEASON_ID,
                    "active": True,
                    "now": now_ts(),
                },
            )
            logger.info("Guild %d bootstrapped with season %d", guild_id, FIRST_SEASON_ID)
        else:
            session.execute(
                update(Season)
                .where(Season.guild_id == guild_id, Season.season_id == newest)
                .values(is_active=True)
            )
            logger.warning(
                "Guild %d had no active season — reactivated season %d",
                guild_id, newest,
            )

        active = _active_season_id(session, guild_id)
        if active is None:
            raise RuntimeError(f"Could not resolve an active season for guild {guild_id}")
        return active


def season_exists(engine: Engine, guild_id: int, season_id: int) -> bool:
    with Session(engine) as session:
        return session.get(Season, (guild_id, season_id)) is not None


def list_seasons(engine: Engine, guild_id: int) -> list[SeasonRecord]:
    """All seasons of a guild, newest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Season)
            .where(Season.guild_id == guild_id)
            .order_by(Season.season_id.desc())
        ).all()
        return [
            SeasonRecord(
                season_id=r.season_id,
                is_active=r.is_active,
                created_by=r.created_by,
                created_at=r.created_at,
            )
            for r in rows
        ]


def start_new_season(
    engine: Engine,
    guild_id: int,
    season_id: int,
    created_by: int | None = None,
) -> int:
    """Make *season_id* the guild's only active season.

    Raises
    ------
    ConflictError
        If *season_id* already exists for the guild.
    """
    try:
        with get_session(engine) as session:
            ensure_guild_in_session(session, guild_id)
            if session.get(Season, (guild_id, season_id)) is not None:
                raise ConflictError(f"Season {season_id} already exists.")

            session.execute(
                update(Season)
                .where(Season.guild_id == guild_id, Season.is_active.is_(True))
                .values(is_active=False)
            )
            session.add(Season(
                guild_id=guild_id,
                season_id=season_id,
                is_active=True,
                created_by=created_by,
                created_at=now_ts(),
            ))
            session.flush()
    except IntegrityError as exc:
        raise ConflictError(f"Season {season_id} already exists.") from exc

    logger.info(
        "Guild %d rolled over to season %d (by %s)", guild_id, season_id, created_by,
    )
    return season_id
