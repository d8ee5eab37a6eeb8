from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.auth_deps import get_current_user_id
from castncatch.db import get_session
from castncatch.schemas.common import ActionResult
from castncatch.schemas.notification import DeviceTokenRequest, DismissManyRequest, DismissManyResponse, NotificationPublic
from castncatch.services import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])

@router.get("", response_model=list[NotificationPublic])
async def list_notifications(session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    return await notifications.list_notifications(session, user_id)

@router.post("/dismiss", response_model=DismissManyResponse)
async def dismiss_many(payload: DismissManyRequest, session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    count = await notifications.dismiss_notifications(session, user_id, payload.ids)
    await session.commit()
    return DismissManyResponse(dismissed=count)

@router.post("/tokens", response_model=ActionResult)
async def register_token(payload: DeviceTokenRequest, session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    added = await notifications.register_device_token(session, user_id, payload.token)
    await session.commit()
    return ActionResult(result="Success" if added else "Token already registered.")

@router.post("/{notification_id}/dismiss", response_model=ActionResult)
async def dismiss_one(notification_id: str, session: AsyncSession = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    await notifications.dismiss_notification(session, user_id, notification_id)
    await session.commit()
    return ActionResult(result="Success")
