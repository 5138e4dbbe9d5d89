"""
cityforge.services.member_service — Member Metadata Cache
==========================================================

Best-effort cache of the Discord names and bot role of guild members,
used to label exports and leaderboards without calling the Discord API.

Upserts never clear data: a field passed as ``None`` keeps whatever is
stored.  ``name_updated_at`` only moves when at least one name is given.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import Engine, select, text, update
from sqlalchemy.orm import Session

from cityforge.database.engine import get_session
from cityforge.database.models import Member
from cityforge.engine.calendar import now_ts
from cityforge.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MemberRecord:
    guild_id: int
    user_id: int
    bot_role: str | None
    valor: int
    username: str | None
    global_name: str | None
    nickname: str | None
    name_updated_at: int | None

    @property
    def display_name(self) -> str:
        """Best available label: nickname, then global name, then username."""
        return self.nickname or self.global_name or self.username or str(self.user_id)


def _to_record(row: Member) -> MemberRecord:
    return MemberRecord(
        guild_id=row.guild_id,
        user_id=row.user_id,
        bot_role=row.bot_role,
        valor=int(row.valor or 0),
        username=row.username,
        global_name=row.global_name,
        nickname=row.nickname,
        name_updated_at=row.name_updated_at,
    )


def _ensure_member(session: Session, guild_id: int, user_id: int, now: int) -> None:
    session.execute(
        text("""
            INSERT INTO members (guild_id, user_id, valor, created_at, updated_at)
            VALUES (:guild_id, :user_id, 0, :now, :now)
            ON CONFLICT (guild_id, user_id) DO NOTHING
        """),
        {"guild_id": guild_id, "user_id": user_id, "now": now},
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def upsert_member(
    engine: Engine,
    guild_id: int,
    user_id: int,
    *,
    bot_role: str | None = None,
    username: str | None = None,
    global_name: str | None = None,
    nickname: str | None = None,
) -> None:
    """Create the member row if missing, then overwrite only the given fields."""
    now = now_ts()
    names = {"username": username, "global_name": global_name, "nickname": nickname}
    values: dict = {k: v for k, v in names.items() if v is not None}
    if values:
        values["name_updated_at"] = now
    if bot_role is not None:
        values["bot_role"] = bot_role
    values["updated_at"] = now

    with get_session(engine) as session:
        _ensure_member(session, guild_id, user_id, now)
        session.execute(
            update(Member)
            .where(Member.guild_id == guild_id, Member.user_id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )


def set_member_valor(engine: Engine, guild_id: int, user_id: int, valor: int) -> None:
    """Store a member's valor, creating the member row if needed."""
    if valor < 0:
        raise ValidationError("valor cannot be negative")
    now = now_ts()
    with get_session(engine) as session:
        _ensure_member(session, guild_id, user_id, now)
        session.execute(
            update(Member)
            .where(Member.guild_id == guild_id, Member.user_id == user_id)
            .values(valor=valor, updated_at=now)
            .execution_options(synchronize_session=False)
        )
    logger.debug("Valor for %d in guild %d set to %d", user_id, guild_id, valor)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_member(engine: Engine, guild_id: int, user_id: int) -> MemberRecord | None:
    with Session(engine) as session:
        row = session.get(Member, (guild_id, user_id))
        return _to_record(row) if row is not None else None


def get_members(
    engine: Engine, guild_id: int, user_ids: Iterable[int],
) -> dict[int, MemberRecord]:
    """Cached metadata for *user_ids*; unknown users are simply absent."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    with Session(engine) as session:
        rows = session.scalars(
            select(Member).where(Member.guild_id == guild_id, Member.user_id.in_(ids))
        ).all()
        return {r.user_id: _to_record(r) for r in rows}


def get_member_valor(engine: Engine, guild_id: int, user_id: int) -> int:
    """A member's valor, 0 if the member is unknown."""
    with Session(engine) as session:
        valor = session.scalar(
            select(Member.valor).where(
                Member.guild_id == guild_id, Member.user_id == user_id,
            )
        )
        return int(valor) if valor is not None else 0
