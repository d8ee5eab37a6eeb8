from __future__ import annotations
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from castncatch.config import settings

class Base(DeclarativeBase):
    pass

# stores, ledger and notifier each open their own session, so settlements fan out over the pool
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=False,
)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    # routes commit explicitly; anything uncommitted is rolled back on close
    async with SessionLocal() as session:
        yield session
