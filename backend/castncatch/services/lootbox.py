from __future__ import annotations
import random
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.config import settings
from castncatch.errors import ErrorCode, GameError
from castncatch.models.loot import Item, ItemUnlock
from castncatch.models.user import User
from castncatch.records import utcnow
from castncatch.services.ledger import debit_coins

log = structlog.get_logger()


async def _locked_user(session: AsyncSession, user_id: str) -> User:
    user = await session.scalar(select(User).where(User.id == user_id).with_for_update())
    if user is None:
        raise GameError(ErrorCode.UNKNOWN_USER, "Invalid user ID.")
    return user


async def buy_loot_box(session: AsyncSession, user_id: str, price: int | None = None) -> User:
    """Spend `price` coins on one loot box. Coins and box count change in one transaction."""
    price = settings.loot_box_price if price is None else price
    await debit_coins(session, user_id, price)
    user = await _locked_user(session, user_id)
    user.loot_boxes = (user.loot_boxes or 0) + 1
    log.info("loot_box_bought", user_id=user_id, price=price, loot_boxes=user.loot_boxes)
    return user


async def open_loot_box(session: AsyncSession, user_id: str, rng: random.Random | None = None) -> tuple[Item, int]:
    """Unlock a random item the user doesn't own yet. Returns (item, boxes left)."""
    user = await _locked_user(session, user_id)
    if (user.loot_boxes or 0) <= 0:
        raise GameError(ErrorCode.INVALID_INPUT, "You don't have any loot boxes.")

    owned = select(ItemUnlock.item_id).where(ItemUnlock.user_id == user_id)
    options = (await session.execute(
        select(Item).where(Item.id.not_in(owned)).order_by(Item.id.asc())
    )).scalars().all()
    if not options:
        raise GameError(ErrorCode.NOT_FOUND, "You already own all of the gear!")

    item = (rng or random).choice(options)
    session.add(ItemUnlock(user_id=user_id, item_id=item.id, is_equipped=False, unlocked_at=utcnow()))
    user.loot_boxes -= 1
    await session.flush()
    log.info("loot_box_opened", user_id=user_id, item_id=item.id, loot_boxes=user.loot_boxes)
    return item, user.loot_boxes
