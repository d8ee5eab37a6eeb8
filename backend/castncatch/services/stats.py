from __future__ import annotations
import math
from typing import Iterable
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.errors import ErrorCode, GameError
from castncatch.models.stats import UserStats
from castncatch.records import utcnow


class CaughtFish(BaseModel):
    name: str = Field(min_length=1)
    ounces: float = Field(ge=0)

    @field_validator("ounces")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("ounces must be finite")
        return v


def empty_stats(user_id: str) -> UserStats:
    return UserStats(
        user_id=user_id,
        total_casts=0,
        total_catches=0,
        total_ounces=0.0,
        biggest_catch={"name": "", "ounces": 0.0},
        catches_by_fish={},
        updated_at=utcnow(),
    )


async def get_stats(session: AsyncSession, user_id: str) -> UserStats:
    return await session.get(UserStats, user_id) or empty_stats(user_id)


async def submit_round_stats(
    session: AsyncSession,
    user_id: str,
    total_casts: int,
    fish_caught: Iterable[CaughtFish],
) -> UserStats:
    """Fold one fishing round into the user's running totals."""
    if total_casts is None or total_casts < 0:
        raise GameError(ErrorCode.INVALID_INPUT, "totalCasts must be a non-negative integer")

    stats = await session.get(UserStats, user_id, with_for_update=True)
    if stats is None:
        stats = empty_stats(user_id)
        session.add(stats)

    biggest = dict(stats.biggest_catch or {"name": "", "ounces": 0.0})
    # JSON columns are only flushed on reassignment, so work on copies
    by_fish = {k: dict(v) for k, v in (stats.catches_by_fish or {}).items()}
    catches = stats.total_catches or 0
    ounces = stats.total_ounces or 0.0

    for fish in fish_caught:
        catches += 1
        ounces += fish.ounces
        if fish.ounces > float(biggest.get("ounces") or 0):
            biggest = {"name": fish.name, "ounces": fish.ounces}
        entry = by_fish.setdefault(fish.name, {"totalCaught": 0, "totalOunces": 0.0})
        entry["totalCaught"] += 1
        entry["totalOunces"] += fish.ounces

    stats.total_casts = (stats.total_casts or 0) + total_casts
    stats.total_catches = catches
    stats.total_ounces = ounces
    stats.biggest_catch = biggest
    stats.catches_by_fish = by_fish
    stats.updated_at = utcnow()
    await session.flush()
    return stats
