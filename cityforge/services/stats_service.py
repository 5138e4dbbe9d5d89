"""
cityforge.services.stats_service — Timezone-Aware Rollups
==========================================================

Read-only aggregation over ``actions``.  Every query:

1. reads the guild's ``timezone_offset_minutes`` at query time,
2. buckets rows into guild-local days with
   ``(created_at + offset * 60) // 86400`` (see
   :mod:`cityforge.engine.calendar`), and
3. restricts windowed queries to the local calendar days
   ``today-(N-1) .. today``.

Changing a guild's offset therefore reshapes historical day boundaries for
all later queries; nothing is re-bucketed on write.

Series functions (``*_daily_series``) return exactly *N* rows, oldest
first, with missing days filled with zeros.  The other functions return
only days/users that have data.

All functions take an optional ``now`` (epoch seconds) so callers and tests
can pin "today".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import BigInteger, Engine, and_, case, func, literal_column, select
from sqlalchemy.orm import Session

from cityforge.constants import DEFAULT_LEADERBOARD_LIMIT
from cityforge.database.models import Action, Member
from cityforge.engine.calendar import (
    EPOCH_DATE,
    SECONDS_PER_DAY,
    day_index_to_date,
    local_day_index,
    now_ts,
    window_dates,
    window_start_ts,
)
from cityforge.engine.events import ActionType
from cityforge.services.guild_service import get_timezone_offset_in_session

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DailyTotals:
    day: date
    builds: int
    hits: int


@dataclass(frozen=True, slots=True)
class UserTotals:
    user_id: int
    builds: int
    hits: int


@dataclass(frozen=True, slots=True)
class UserDayTotal:
    day: date
    user_id: int
    total: int


@dataclass(frozen=True, slots=True)
class ActivityDelta:
    user_id: int
    today_builds: int
    yesterday_builds: int
    today_hits: int
    yesterday_hits: int


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    user_id: int
    total: int


@dataclass(frozen=True, slots=True)
class DailyBreakdownRow:
    """One user's totals on one local day, with cached member metadata."""

    day: date
    user_id: int
    bot_role: str
    nickname: str
    global_name: str
    username: str
    builds: int
    hits: int
    valor: int


# ---------------------------------------------------------------------------
# SQL building blocks
# ---------------------------------------------------------------------------
def _day_expr(offset_minutes: int):
    # Inlined as integer literals so GROUP BY matches the SELECT expression
    shift = literal_column(str(int(offset_minutes) * 60), BigInteger)
    per_day = literal_column(str(SECONDS_PER_DAY), BigInteger)
    return (Action.created_at + shift) // per_day


def _sum_of(action_type: ActionType):
    return func.coalesce(
        func.sum(case((Action.type == action_type.value, Action.value), else_=0)), 0,
    )


def _scope(guild_id: int, season_id: int):
    return and_(Action.guild_id == guild_id, Action.season_id == season_id)


def _zero_fill(
    now: int, offset: int, window_days: int, rows: dict[int, tuple[int, int]],
) -> list[DailyTotals]:
    out = []
    for d in window_dates(now, offset, window_days):
        builds, hits = rows.get((d - EPOCH_DATE).days, (0, 0))
        out.append(DailyTotals(day=d, builds=builds, hits=hits))
    return out


# ---------------------------------------------------------------------------
# Server-wide per-day totals
# ---------------------------------------------------------------------------
def daily_totals(
    engine: Engine,
    guild_id: int,
    season_id: int,
    window_days: int = 7,
    *,
    now: int | None = None,
) -> list[DailyTotals]:
    """Builds and hits per local day in the window, newest day first."""
    now = now_ts() if now is None else now
    with Session(engine) as session:
        offset = get_timezone_offset_in_session(session, guild_id)
        day = _day_expr(offset).label("day")
        rows = session.execute(
            select(day, _sum_of(ActionType.BUILD), _sum_of(ActionType.HIT))
            .where(
                _scope(guild_id, season_id),
                Action.created_at >= window_start_ts(now, offset, window_days),
            )
            .group_by(day)
            .order_by(day.desc())
        ).all()
    return [
        DailyTotals(day=day_index_to_date(int(d)), builds=int(b), hits=int(h))
        for d, b, h in rows
    ]


def server_daily_series(
    engine: Engine,
    guild_id: int,
    season_id: int,
    window_days: int = 14,
    *,
    now: int | None = None,
) -> list[DailyTotals]:
    """Exactly *window_days* rows of server totals, oldest first."""
    return _daily_series(engine, guild_id, season_id, None, window_days, now)


def user_daily_series(
    engine: Engine,
    guild_id: int,
    season_id: int,
    user_id: int,
    window_days: int = 14,
    *,
    now: int | None = None,
) -> list[DailyTotals]:
    """Exactly *window_days* rows of one user's totals, oldest first."""
    return _daily_series(engine, guild_id, season_id, user_id, window_days, now)


def _daily_series(
    engine: Engine,
    guild_id: int,
    season_id: int,
    user_id: int | None,
    window_days: int,
    now: int | None,
) -> list[DailyTotals]:
    now = now_ts() if now is None else now
    with Session(engine) as session:
        offset = get_timezone_offset_in_session(session, guild_id)
        day = _day_expr(offset).label("day")
        stmt = (
            select(day, _sum_of(ActionType.BUILD), _sum_of(ActionType.HIT))
            .where(
                _scope(guild_id, season_id),
                Action.created_at >= window_start_ts(now, offset, window_days),
                Action.created_at < window_start_ts(now, offset, 1) + SECONDS_PER_DAY,
            )
            .group_by(day)
        )
        if user_id is not None:
            stmt = stmt.where(Action.user_id == user_id)
        rows = {int(d): (int(b), int(h)) for d, b, h in session.execute(stmt)}
    return _zero_fill(now, offset, window_days, rows)


# ---------------------------------------------------------------------------
# Per-user totals
# ---------------------------------------------------------------------------
def _user_totals(session: Session, guild_id: int, season_id: int, since: int | None):
    builds = _sum_of(ActionType.BUILD).label("builds")
    hits = _sum_of(ActionType.HIT).label("hits")
    stmt = (
        select(Action.user_id, builds, hits)
        .where(_scope(guild_id, season_id))
        .group_by(Action.user_id)
        .order_by(builds.desc(), hits.desc(), Action.user_id)
    )
    if since is not None:
        stmt = stmt.where(Action.created_at >= since)
    return [
        UserTotals(user_id=int(u), builds=int(b), hits=int(h))
        for u, b, h in session.execute(stmt)
    ]


def totals_for_season(engine: Engine, guild_id: int, season_id: int) -> list[UserTotals]:
    """Season-to-date builds and hits per user, biggest builders first."""
    with Session(engine) as session:
        return _user_totals(session, guild_id, season_id, None)


def totals_for_window(
    engine: Engine,
    guild_id: int,
    season_id: int,
    window_days: int = 14,
    *,
    now: int | None = None,
) -> list[UserTotals]:
    now = now_ts() if now is None else now
    with Session(engine) as session:
        offset = get_timezone_offset_in_session(session, guild_id)
        return _user_totals(
            session, guild_id, season_id, window_start_ts(now, offset, window_days),
        )


def today_vs_yesterday(
    engine: Engine,
    guild_id: int,
    season_id: int,
    *,
    now: int | None = None,
) -> list[ActivityDelta]:
    """Per-user builds and hits for local today and local yesterday.

    Only users with activity in those two days are returned.
    """
    now = now_ts() if now is None else now
    with Session(engine) as session:
        offset = get_timezone_offset_in_session(session, guild_id)
        today = local_day_index(now, offset)
        day = _day_expr(offset)

        def _on(day_index: int, action_type: ActionType):
            return func.coalesce(func.sum(case(
                (and_(day == day_index, Action.type == action_type.value), Action.value),
                else_=0,
            )), 0)

        rows = session.execute(
            select(
                Action.user_id,
                _on(today, ActionType.BUILD),
                _on(today - 1, ActionType.BUILD),
                _on(today, ActionType.HIT),
                _on(today - 1, ActionType.HIT),
            )
            .where(
                _scope(guild_id, season_id),
                Action.created_at >= window_start_ts(now, offset, 2),
                Action.created_at < window_start_ts(now, offset, 1) + SECONDS_PER_DAY,
            )
            .group_by(Action.user_id)
            .order_by(Action.user_id)
        ).all()
    return [
        ActivityDelta(
            user_id=int(u),
            today_builds=int(tb),
            yesterday_builds=int(yb),
            today_hits=int(th),
            yesterday_hits=int(yh),
        )
        for u, tb, yb, th, yh in rows
    ]


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------
def leaderboard(
    engine: Engine,
    guild_id: int,
    season_id: int,
    action_type: ActionType | str,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> list[LeaderboardEntry]:
    """Top users by season total of *action_type*, descending."""
    total = func.sum(Action.value).label("total")
    with Session(engine) as session:
        rows = session.execute(
            select(Action.user_id, total)
            .where(_scope(guild_id, season_id), Action.type == str(action_type))
            .group_by(Action.user_id)
            .order_by(total.desc(), Action.user_id)
            .limit(limit)
        ).all()
    return [LeaderboardEntry(user_id=int(u), total=int(t)) for u, t in rows]


def daily_user_totals(
    engine: Engine,
    guild_id: int,
    season_id: int,
    action_type: ActionType | str,
    window_days: int = 7,
    *,
    now: int | None = None,
) -> list[UserDayTotal]:
    """Per user per local day totals of one type, newest day first."""
    now = now_ts() if now is None else now
    with Session(engine) as session:
        offset = get_timezone_offset_in_session(session, guild_id)
        day = _day_expr(offset).label("day")
        total = func.sum(Action.value).label("total")
        rows = session.execute(
            select(day, Action.user_id, total)
            .where(
                _scope(guild_id, season_id),
                Action.type == str(action_type),
                Action.created_at >= window_start_ts(now, offset, window_days),
            )
            .group_by(day, Action.user_id)
            .order_by(day.desc(), total.desc(), Action.user_id)
        ).all()
    return [
        UserDayTotal(day=day_index_to_date(int(d)), user_id=int(u), total=int(t))
        for d, u, t in rows
    ]


# ---------------------------------------------------------------------------
# Export feed
# ---------------------------------------------------------------------------
def daily_breakdown(
    engine: Engine,
    guild_id: int,
    season_id: int,
    window_days: int | None = None,
    *,
    now: int | None = None,
) -> list[DailyBreakdownRow]:
    """Per day per user totals joined with cached member metadata.

    Season-wide when *window_days* is ``None``.  Ordered by day ascending,
    then builds and hits descending.  Missing member fields come back as
    empty strings (valor as 0).
    """
    now = now_ts() if now is None else now
    with Session(engine) as session:
        offset = get_timezone_offset_in_session(session, guild_id)
        day = _day_expr(offset).label("day")
        builds = _sum_of(ActionType.BUILD).label("builds")
        hits = _sum_of(ActionType.HIT).label("hits")
        stmt = (
            select(
                day,
                Action.user_id,
                func.coalesce(Member.bot_role, ""),
                func.coalesce(Member.nickname, ""),
                func.coalesce(Member.global_name, ""),
                func.coalesce(Member.username, ""),
                builds,
                hits,
                func.coalesce(Member.valor, 0),
            )
            .select_from(Action)
            .outerjoin(
                Member,
                and_(Member.guild_id == Action.guild_id, Member.user_id == Action.user_id),
            )
            .where(_scope(guild_id, season_id))
            .group_by(
                day, Action.user_id, Member.bot_role, Member.nickname,
                Member.global_name, Member.username, Member.valor,
            )
            .order_by(day, builds.desc(), hits.desc(), Action.user_id)
        )
        if window_days is not None:
            stmt = stmt.where(
                Action.created_at >= window_start_ts(now, offset, window_days),
            )
        rows = session.execute(stmt).all()

    logger.debug(
        "Daily breakdown for guild %d season %d: %d row(s)", guild_id, season_id, len(rows),
    )
    return [
        DailyBreakdownRow(
            day=day_index_to_date(int(d)),
            user_id=int(u),
            bot_role=role,
            nickname=nick,
            global_name=gname,
            username=uname,
            builds=int(b),
            hits=int(h),
            valor=int(v),
        )
        for d, u, role, nick, gname, uname, b, h, v in rows
    ]
