from __future__ import annotations
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.errors import ErrorCode, GameError
from castncatch.models.notification import Notification, DeviceToken
from castncatch.records import utcnow

MAX_DEVICE_TOKENS = 5


async def list_notifications(session: AsyncSession, user_id: str) -> list[Notification]:
    return (await session.execute(
        select(Notification)
        .where(Notification.user_id == user_id, Notification.dismissed.is_(False))
        .order_by(Notification.date.desc())
    )).scalars().all()


async def dismiss_notification(session: AsyncSession, user_id: str, notification_id: str) -> None:
    n = await session.scalar(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    )
    if not n:
        raise GameError(ErrorCode.NOT_FOUND, "Unable to find notification.")
    n.dismissed = True


async def dismiss_notifications(session: AsyncSession, user_id: str, ids: list[str]) -> int:
    """Dismiss several at once; unknown ids are ignored. Returns how many were dismissed."""
    if not ids:
        return 0
    rows = (await session.execute(
        select(Notification).where(Notification.user_id == user_id, Notification.id.in_(ids))
    )).scalars().all()
    for n in rows:
        n.dismissed = True
    return len(rows)


async def register_device_token(session: AsyncSession, user_id: str, token: str) -> bool:
    """
    Remember a push token for the user. Returns False if it was already known.
    Only the newest MAX_DEVICE_TOKENS are kept.
    """
    token = (token or "").strip()
    if not token:
        raise GameError(ErrorCode.INVALID_INPUT, "Registration token missing from request.")
    exists = await session.scalar(
        select(DeviceToken).where(DeviceToken.user_id == user_id, DeviceToken.token == token)
    )
    if exists:
        return False
    session.add(DeviceToken(user_id=user_id, token=token, created_at=utcnow()))
    await session.flush()

    count = await session.scalar(
        select(func.count()).select_from(DeviceToken).where(DeviceToken.user_id == user_id)
    ) or 0
    if count > MAX_DEVICE_TOKENS:
        oldest = (await session.execute(
            select(DeviceToken.id)
            .where(DeviceToken.user_id == user_id)
            .order_by(DeviceToken.created_at.asc(), DeviceToken.id.asc())
            .limit(count - MAX_DEVICE_TOKENS)
        )).scalars().all()
        await session.execute(delete(DeviceToken).where(DeviceToken.id.in_(oldest)))
    return True


async def device_tokens(session: AsyncSession, user_id: str) -> list[str]:
    return (await session.execute(
        select(DeviceToken.token)
        .where(DeviceToken.user_id == user_id)
        .order_by(DeviceToken.created_at.desc())
        .limit(MAX_DEVICE_TOKENS)
    )).scalars().all()
