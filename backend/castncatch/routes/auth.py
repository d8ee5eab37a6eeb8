from __future__ import annotations
from fastapi import APIRouter, Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from castncatch.auth_deps import get_current_user_id
from castncatch.db import get_session
from castncatch.errors import ErrorCode, GameError
from castncatch.models.user import User
from castncatch.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from castncatch.security import hash_password, verify_password, make_access_token, make_refresh_token, token_subject

router = APIRouter(prefix="/auth", tags=["auth"])

def _public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id, email=user.email, display_name=user.display_name,
        coins=user.coins, loot_boxes=user.loot_boxes, created_at=user.created_at,
    )

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower()
    exists = await session.scalar(select(User).where(User.email == email))
    if exists:
        raise GameError(ErrorCode.ALREADY_ACTIVE, "Email already registered")
    name = payload.display_name.strip()
    if not name:
        raise GameError(ErrorCode.INVALID_INPUT, "Display name is required.")
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        display_name=name,
        search_name=name.lower(),
        coins=0,
        loot_boxes=0,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return _public(user)

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(User).where(User.email == payload.email.lower()))
    if not user or not verify_password(payload.password, user.password_hash):
        raise GameError(ErrorCode.UNAUTHORIZED, "Invalid credentials")
    return TokenPair(access=make_access_token(user.id), refresh=make_refresh_token(user.id))

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None)):
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1]
    sub = token_subject(token, "refresh")
    return TokenPair(access=make_access_token(sub), refresh=make_refresh_token(sub))

@router.get("/me", response_model=UserPublic)
async def me(user_id: str = Depends(get_current_user_id), session: AsyncSession = Depends(get_session)):
    user = await session.get(User, user_id)
    if not user:
        raise GameError(ErrorCode.UNAUTHORIZED, "User not found")
    return _public(user)
