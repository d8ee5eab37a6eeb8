from __future__ import annotations
import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.models.stats import LeaderboardEntry, UserStats
from castncatch.models.user import User
from castncatch.records import utcnow
from castncatch.services.users import DEFAULT_DISPLAY_NAME

log = structlog.get_logger()

LEADERBOARD_SIZE = 10


async def update_leaderboard(session: AsyncSession) -> list[LeaderboardEntry]:
    """Rewrite the top LEADERBOARD_SIZE by total ounces, best first."""
    rows = (await session.execute(
        select(UserStats.user_id, UserStats.total_ounces, User.display_name)
        .join(User, User.id == UserStats.user_id)
        .order_by(UserStats.total_ounces.desc(), UserStats.user_id.asc())
        .limit(LEADERBOARD_SIZE)
    )).all()

    now = utcnow()
    await session.execute(delete(LeaderboardEntry))
    entries = [
        LeaderboardEntry(
            position=pos,
            user_id=user_id,
            player_name=name or DEFAULT_DISPLAY_NAME,
            total_ounces=float(total or 0),
            updated_at=now,
        )
        for pos, (user_id, total, name) in enumerate(rows, start=1)
    ]
    session.add_all(entries)
    await session.flush()
    log.info("leaderboard_updated", entries=len(entries))
    return entries


async def get_leaderboard(session: AsyncSession) -> list[LeaderboardEntry]:
    return (await session.execute(
        select(LeaderboardEntry).order_by(LeaderboardEntry.position.asc())
    )).scalars().all()
