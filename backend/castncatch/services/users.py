from __future__ import annotations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from castncatch.models.challenge import Location
from castncatch.models.user import User
from castncatch.records import UserRecord, validated

DEFAULT_DISPLAY_NAME = "Player"


class SqlUserDirectory:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def get_user(self, user_id: str) -> UserRecord | None:
        async with self._sessions() as session:
            user = await session.get(User, user_id)
            return validated(UserRecord, user) if user else None

    async def display_name(self, user_id: str) -> str:
        async with self._sessions() as session:
            name = await session.scalar(select(User.display_name).where(User.id == user_id))
            return name or DEFAULT_DISPLAY_NAME

    async def location_ids(self, limit: int) -> list[str]:
        async with self._sessions() as session:
            return (await session.execute(
                select(Location.id).order_by(Location.sort_order.asc(), Location.id.asc()).limit(limit)
            )).scalars().all()
