from __future__ import annotations
from pydantic import BaseModel, Field
from castncatch.records import FriendChallengeRecord

FriendChallengePublic = FriendChallengeRecord

class CreateFriendChallengeRequest(BaseModel):
    friend_id: str = Field(min_length=1)
    wager: int | None = None

class FriendScoreRequest(BaseModel):
    fish_caught: float
    total_weight: float

class FriendChallengeListsPublic(BaseModel):
    created: list[FriendChallengeRecord]
    received: list[FriendChallengeRecord]
