from __future__ import annotations
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.config import settings
from castncatch.db import get_session
from castncatch.models.challenge import Challenge, Location
from castncatch.models.friend_challenge import FriendChallenge
from castncatch.records import CHALLENGE_KINDS

router = APIRouter(tags=["system"])


class GameStatus(BaseModel):
    locations: int
    # unsettled ranked challenges per kind, expired ones included until a sweep settles them
    open_challenges: dict[str, int]
    open_friend_challenges: int
    loot_box_price: int


@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "service": settings.app_display_name,
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "challenge_kinds": list(CHALLENGE_KINDS),
        "request_id": getattr(request.state, "request_id", None),
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
    }

@router.get("/status", response_model=GameStatus)
async def game_status(session: AsyncSession = Depends(get_session)):
    """Configured content and unsettled work, for the scheduler dashboards."""
    locations = await session.scalar(select(func.count()).select_from(Location)) or 0
    rows = (await session.execute(
        select(Challenge.kind, func.count())
        .where(Challenge.completed.is_(False))
        .group_by(Challenge.kind)
    )).all()
    per_kind = {kind: 0 for kind in CHALLENGE_KINDS}
    per_kind.update({kind: count for kind, count in rows})
    duels = await session.scalar(
        select(func.count()).select_from(FriendChallenge).where(FriendChallenge.completed.is_(False))
    ) or 0
    return GameStatus(
        locations=locations,
        open_challenges=per_kind,
        open_friend_challenges=duels,
        loot_box_price=settings.loot_box_price,
    )
