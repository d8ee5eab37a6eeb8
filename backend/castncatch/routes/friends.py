from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.auth_deps import get_current_user_id
from castncatch.db import get_session
from castncatch.deps import get_notifier
from castncatch.schemas.common import ActionResult
from castncatch.schemas.social import FriendRequestCreate, FriendRequestPublic, UserSummary
from castncatch.services import social
from castncatch.services.notifier import SqlNotifier

router = APIRouter(tags=["friends"])

@router.post("/friends/requests", response_model=ActionResult, status_code=201)
async def send_friend_request(
    payload: FriendRequestCreate,
    session: AsyncSession = Depends(get_session),
    notifier: SqlNotifier = Depends(get_notifier),
    user_id: str = Depends(get_current_user_id),
):
    req = await social.send_friend_request(session, user_id, payload.recipient_id)
    sender_name = req.sender_name
    await session.commit()
    # requests are push-only; the pending list is the in-app record
    await notifier.push_only(
        payload.recipient_id,
        f"You received a friend request from {sender_name}",
        social.CATEGORY_FRIEND_REQUESTS,
        user_id,
    )
    return ActionResult(result="Request sent.")

@router.get("/friends/requests", response_model=list[FriendRequestPublic])
async def list_friend_requests(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    return await social.list_friend_requests(session, user_id)

@router.post("/friends/requests/{sender_id}/accept", response_model=ActionResult)
async def accept_friend_request(sender_id: str, session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    await social.accept_friend_request(session, user_id, sender_id)
    await session.commit()
    return ActionResult(result="Success")

@router.post("/friends/requests/{sender_id}/dismiss", response_model=ActionResult)
async def dismiss_friend_request(sender_id: str, session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    await social.dismiss_friend_request(session, user_id, sender_id)
    await session.commit()
    return ActionResult(result="Success")

@router.get("/friends", response_model=list[UserSummary])
async def list_friends(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    return await social.list_friends(session, user_id)

@router.get("/users/search", response_model=list[UserSummary])
async def search_users(
    q: str = Query("", max_length=64),
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    return await social.search_users(session, user_id, q)
