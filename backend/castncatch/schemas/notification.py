from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class NotificationPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    message: str
    category: str
    data: str
    date: datetime

class DismissManyRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)

class DismissManyResponse(BaseModel):
    dismissed: int

class DeviceTokenRequest(BaseModel):
    token: str
