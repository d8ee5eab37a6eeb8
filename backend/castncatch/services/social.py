from __future__ import annotations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.errors import ErrorCode, GameError
from castncatch.models.social import FriendRequest, Friendship
from castncatch.models.user import User
from castncatch.records import utcnow

SEARCH_LIMIT = 25
CATEGORY_FRIEND_REQUESTS = "friendRequests"


async def send_friend_request(session: AsyncSession, sender_id: str, recipient_id: str) -> FriendRequest:
    """
    Store a pending request from sender to recipient. A dismissed request for
    the same pair is reopened. The caller commits and pushes the alert.
    """
    sender = await session.get(User, sender_id)
    if sender is None:
        raise GameError(ErrorCode.UNKNOWN_USER, "Unrecognized user.")
    if sender_id == recipient_id:
        raise GameError(ErrorCode.INVALID_INPUT, "You can't send a friend request to yourself.")
    if await session.get(User, recipient_id) is None:
        raise GameError(ErrorCode.NOT_FOUND, "Unrecognized recipient.")

    req = await session.scalar(
        select(FriendRequest).where(
            FriendRequest.recipient_id == recipient_id, FriendRequest.sender_id == sender_id
        )
    )
    if req is not None and not req.dismissed:
        raise GameError(ErrorCode.ALREADY_ACTIVE, "You already have a pending friend request for this user.")

    if req is None:
        req = FriendRequest(recipient_id=recipient_id, sender_id=sender_id)
        session.add(req)
    req.sender_name = sender.display_name
    req.dismissed = False
    req.date = utcnow()
    await session.flush()
    return req


async def _pending_request(session: AsyncSession, user_id: str, sender_id: str) -> FriendRequest:
    req = await session.scalar(
        select(FriendRequest).where(
            FriendRequest.recipient_id == user_id,
            FriendRequest.sender_id == sender_id,
            FriendRequest.dismissed.is_(False),
        )
    )
    if req is None:
        raise GameError(ErrorCode.NOT_FOUND, "Unable to find friend request.")
    return req


async def add_friend(session: AsyncSession, user_id: str, friend_id: str) -> bool:
    """Add friend_id to user_id's list. Returns False if already there."""
    exists = await session.scalar(
        select(Friendship.id).where(Friendship.user_id == user_id, Friendship.friend_id == friend_id)
    )
    if exists:
        return False
    session.add(Friendship(user_id=user_id, friend_id=friend_id))
    return True


async def accept_friend_request(session: AsyncSession, user_id: str, sender_id: str) -> None:
    req = await _pending_request(session, user_id, sender_id)
    await add_friend(session, user_id, sender_id)
    await add_friend(session, sender_id, user_id)
    req.dismissed = True


async def dismiss_friend_request(session: AsyncSession, user_id: str, sender_id: str) -> None:
    req = await _pending_request(session, user_id, sender_id)
    req.dismissed = True


async def list_friend_requests(session: AsyncSession, user_id: str) -> list[FriendRequest]:
    return (await session.execute(
        select(FriendRequest)
        .where(FriendRequest.recipient_id == user_id, FriendRequest.dismissed.is_(False))
        .order_by(FriendRequest.date.desc())
    )).scalars().all()


async def list_friends(session: AsyncSession, user_id: str) -> list[User]:
    return (await session.execute(
        select(User)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id)
        .order_by(User.search_name.asc())
    )).scalars().all()


async def search_users(session: AsyncSession, user_id: str, query: str) -> list[User]:
    """Case-insensitive prefix match on display name."""
    prefix = (query or "").strip().lower()
    if not prefix:
        raise GameError(ErrorCode.INVALID_INPUT, "Search string is required.")
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return (await session.execute(
        select(User)
        .where(User.search_name.like(f"{escaped}%", escape="\\"), User.id != user_id)
        .order_by(User.search_name.asc())
        .limit(SEARCH_LIMIT)
    )).scalars().all()
