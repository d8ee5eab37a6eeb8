from __future__ import annotations
import math
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from castncatch.errors import ErrorCode, GameError, InsufficientFunds
from castncatch.models.user import User

log = structlog.get_logger()

# ---------- helpers: balances ----------

def clamp_balance(user_id: str, current: int | None, delta: int | float) -> int:
    """New balance after adding `delta`; negative or NaN totals clamp to 0."""
    total = (current or 0) + delta
    if math.isnan(total) or total < 0:
        log.error("coins_clamped", user_id=user_id, added=delta, total=total)
        return 0
    return int(total)


async def _locked_user(session: AsyncSession, user_id: str) -> User | None:
    """Row lock on the user so concurrent payouts serialize on the balance."""
    return await session.scalar(select(User).where(User.id == user_id).with_for_update())


async def add_coins(session: AsyncSession, user_id: str, delta: int) -> int:
    """Add (or subtract) coins inside the caller's transaction. Returns the new balance."""
    user = await _locked_user(session, user_id)
    if user is None:
        log.warning("coins_user_missing", user_id=user_id, added=delta)
        return 0
    user.coins = clamp_balance(user_id, user.coins, delta)
    return user.coins


async def debit_coins(session: AsyncSession, user_id: str, amount: int) -> int:
    """
    Atomic check-and-subtract.
    Raises InsufficientFunds if the balance is too low.
    """
    if amount < 0:
        raise GameError(ErrorCode.INVALID_INPUT, "amount must be >= 0")
    user = await _locked_user(session, user_id)
    if user is None:
        raise GameError(ErrorCode.NOT_FOUND, "Unrecognized user.")
    have = int(user.coins or 0)
    if have < amount:
        raise InsufficientFunds(need=amount, have=have)
    user.coins = have - amount
    return user.coins

# ---------- ledger collaborator ----------

class SqlLedger:
    """Coin ledger over the users table; each call is its own transaction."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def balance(self, user_id: str) -> int:
        async with self._sessions() as session:
            coins = await session.scalar(select(User.coins).where(User.id == user_id))
            return int(coins or 0)

    async def add_coins(self, user_id: str, delta: int) -> int:
        async with self._sessions() as session, session.begin():
            return await add_coins(session, user_id, delta)

    async def debit(self, user_id: str, amount: int) -> int:
        async with self._sessions() as session, session.begin():
            return await debit_coins(session, user_id, amount)
