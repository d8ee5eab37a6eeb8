from __future__ import annotations
from pydantic import BaseModel, Field
from castncatch.records import ChallengeRecord, ScoreRecord

# Records already carry exactly the public shape
ChallengePublic = ChallengeRecord
ScorePublic = ScoreRecord

class SubmitScoreRequest(BaseModel):
    fish_caught: float = Field(description="whole number of fish caught")
    total_weight: float = Field(description="total weight in ounces")

class ScoreboardPublic(BaseModel):
    scores: list[ScoreRecord]
    individual_score: ScoreRecord | None = None

class ScoreLookup(BaseModel):
    score: ScoreRecord | None = None
