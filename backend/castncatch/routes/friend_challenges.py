from __future__ import annotations
from fastapi import APIRouter, Depends
from castncatch.auth_deps import get_current_user_id
from castncatch.deps import get_friend_engine
from castncatch.schemas.common import ActionResult
from castncatch.schemas.friend_challenge import (
    CreateFriendChallengeRequest,
    FriendChallengeListsPublic,
    FriendChallengePublic,
    FriendScoreRequest,
)
from castncatch.services.friend_challenges import FriendChallengeEngine

router = APIRouter(prefix="/friend-challenges", tags=["friend-challenges"])

@router.post("", response_model=FriendChallengePublic, status_code=201)
async def create_friend_challenge(
    payload: CreateFriendChallengeRequest,
    engine: FriendChallengeEngine = Depends(get_friend_engine),
    user_id: str = Depends(get_current_user_id),
):
    return await engine.create(user_id, payload.friend_id, payload.wager)

@router.get("", response_model=FriendChallengeListsPublic)
async def list_friend_challenges(
    engine: FriendChallengeEngine = Depends(get_friend_engine),
    user_id: str = Depends(get_current_user_id),
):
    lists = await engine.list_open(user_id)
    return FriendChallengeListsPublic(created=lists.created, received=lists.received)

@router.get("/{challenge_id}", response_model=FriendChallengePublic)
async def get_friend_challenge(
    challenge_id: str,
    engine: FriendChallengeEngine = Depends(get_friend_engine),
    user_id: str = Depends(get_current_user_id),
):
    return await engine.get(challenge_id, user_id)

@router.post("/{challenge_id}/accept", response_model=ActionResult)
async def accept_friend_challenge(
    challenge_id: str,
    engine: FriendChallengeEngine = Depends(get_friend_engine),
    user_id: str = Depends(get_current_user_id),
):
    return ActionResult(result=await engine.accept(challenge_id, user_id))

@router.post("/{challenge_id}/decline", response_model=ActionResult)
async def decline_friend_challenge(
    challenge_id: str,
    engine: FriendChallengeEngine = Depends(get_friend_engine),
    user_id: str = Depends(get_current_user_id),
):
    return ActionResult(result=await engine.decline(challenge_id, user_id))

@router.post("/{challenge_id}/scores", response_model=ActionResult, status_code=201)
async def submit_friend_score(
    challenge_id: str,
    payload: FriendScoreRequest,
    engine: FriendChallengeEngine = Depends(get_friend_engine),
    user_id: str = Depends(get_current_user_id),
):
    result = await engine.submit_score(challenge_id, user_id, payload.fish_caught, payload.total_weight)
    return ActionResult(result=result)
