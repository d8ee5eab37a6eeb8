"""In-app notifications with best-effort push delivery.

The notification row is committed first; push delivery then runs as a tracked
background task, so a failing push never rolls back the notification or the
payout that triggered it.
"""
from __future__ import annotations
import asyncio
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from castncatch.models.notification import Notification
from castncatch.records import utcnow
from castncatch.services.notifications import device_tokens
from castncatch.services.push import PushGateway

log = structlog.get_logger()


class SqlNotifier:
    def __init__(self, sessions: async_sessionmaker[AsyncSession], push: PushGateway):
        self._sessions = sessions
        self._push = push
        self._pending: set[asyncio.Task] = set()

    async def notify(self, user_id: str, message: str, category: str, data: str = "") -> str:
        async with self._sessions() as session, session.begin():
            n = Notification(
                user_id=user_id,
                message=message,
                category=category,
                data=data or "",
                date=utcnow(),
                dismissed=False,
            )
            session.add(n)
            await session.flush()
            notification_id = n.id
        self.dispatch_push(user_id, message, category, data)
        return notification_id

    async def push_only(self, user_id: str, message: str, category: str, data: str = "") -> None:
        self.dispatch_push(user_id, message, category, data)

    def dispatch_push(self, user_id: str, message: str, category: str, data: str = "") -> asyncio.Task:
        task = asyncio.create_task(self._deliver(user_id, message, category, data or ""))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, user_id: str, message: str, category: str, data: str) -> None:
        try:
            async with self._sessions() as session:
                tokens = await device_tokens(session, user_id)
            if tokens:
                await self._push.send(list(tokens), message, category, data)
        except Exception:
            log.warning("push_failed", user_id=user_id, category=category, exc_info=True)

    async def drain(self) -> None:
        """Wait for outstanding push deliveries (jobs call this before exiting)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
