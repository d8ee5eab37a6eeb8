from __future__ import annotations
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.models.user import User


class UserCoinStats(BaseModel):
    users: int
    richest_user_id: str | None
    richest_coins: int
    average_coins: float
    users_over_10000: int
    users_over_50000: int


async def user_coin_stats(session: AsyncSession) -> UserCoinStats:
    count, total, over_10k, over_50k = (await session.execute(
        select(
            func.count(User.id),
            func.coalesce(func.sum(User.coins), 0),
            func.count(User.id).filter(User.coins > 10000),
            func.count(User.id).filter(User.coins > 50000),
        )
    )).one()
    richest = (await session.execute(
        select(User.id, User.coins).order_by(User.coins.desc(), User.id.asc()).limit(1)
    )).first()
    return UserCoinStats(
        users=count,
        richest_user_id=richest[0] if richest else None,
        richest_coins=int(richest[1]) if richest else 0,
        average_coins=(int(total) / count) if count else 0.0,
        users_over_10000=over_10k,
        users_over_50000=over_50k,
    )
