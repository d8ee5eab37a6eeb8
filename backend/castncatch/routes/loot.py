from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.auth_deps import get_current_user_id
from castncatch.db import get_session
from castncatch.schemas.loot import LootBoxOpened, LootBoxPurchase
from castncatch.services.lootbox import buy_loot_box, open_loot_box

router = APIRouter(prefix="/loot-boxes", tags=["loot-boxes"])

@router.post("/buy", response_model=LootBoxPurchase)
async def buy(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    user = await buy_loot_box(session, user_id)
    out = LootBoxPurchase(coins=user.coins, loot_boxes=user.loot_boxes)
    await session.commit()
    return out

@router.post("/open", response_model=LootBoxOpened)
async def open_box(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    item, remaining = await open_loot_box(session, user_id)
    out = LootBoxOpened(item=item.id, category=item.category, name=item.name, loot_boxes=remaining)
    await session.commit()
    return out
