from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.auth_deps import require_admin_token
from castncatch.db import get_session
from castncatch.services.admin import UserCoinStats, user_coin_stats

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_token)])

@router.get("/user-stats", response_model=UserCoinStats)
async def user_stats(session: AsyncSession = Depends(get_session)):
    return await user_coin_stats(session)
