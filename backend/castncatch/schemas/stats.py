from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from castncatch.services.stats import CaughtFish

class RoundStatsRequest(BaseModel):
    total_casts: int = Field(ge=0)
    fish_caught: list[CaughtFish] = Field(default_factory=list)

class FishTotals(BaseModel):
    totalCaught: int
    totalOunces: float

class BiggestCatch(BaseModel):
    name: str = ""
    ounces: float = 0.0

class StatsPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_casts: int
    total_catches: int
    total_ounces: float
    biggest_catch: BiggestCatch
    catches_by_fish: dict[str, FishTotals]

class LeaderboardEntryPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: int
    user_id: str
    player_name: str
    total_ounces: float
    updated_at: datetime
