from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.auth_deps import get_current_user_id
from castncatch.db import get_session
from castncatch.schemas.common import ActionResult
from castncatch.schemas.stats import LeaderboardEntryPublic, RoundStatsRequest, StatsPublic
from castncatch.services.leaderboard import get_leaderboard
from castncatch.services.stats import get_stats, submit_round_stats

router = APIRouter(tags=["stats"])

@router.post("/stats/rounds", response_model=ActionResult)
async def submit_round(payload: RoundStatsRequest, session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    await submit_round_stats(session, user_id, payload.total_casts, payload.fish_caught)
    await session.commit()
    return ActionResult(result="Success")

@router.get("/stats/me", response_model=StatsPublic)
async def my_stats(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    return await get_stats(session, user_id)

@router.get("/leaderboard", response_model=list[LeaderboardEntryPublic])
async def leaderboard(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    return await get_leaderboard(session)
