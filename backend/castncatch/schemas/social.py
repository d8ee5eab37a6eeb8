from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class FriendRequestCreate(BaseModel):
    recipient_id: str = Field(min_length=1)

class FriendRequestPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sender_id: str
    sender_name: str
    date: datetime

class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
