"""Typed records passed between the engines and their stores.

Rows coming back from storage are validated into these models on read, so a
malformed row surfaces as an ``InvalidInput`` error instead of leaking
``None`` or a string where a number is expected.
"""
from __future__ import annotations
import math
import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Type, TypeVar
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError
from castncatch.errors import ErrorCode, GameError

Goal = Literal["Fish", "Weight"]
ChallengeKind = Literal["hourly", "proTournament"]

GOALS: tuple[str, ...] = ("Fish", "Weight")
CHALLENGE_KINDS: tuple[str, ...] = ("hourly", "proTournament")


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything we store is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ScoreRecord(_Record):
    player_id: str
    player_name: Optional[str] = None
    fish_caught: int = Field(ge=0)
    total_weight: float = Field(ge=0)
    date: UtcDatetime
    coins: Optional[int] = None

    def metric(self, goal: str) -> float:
        return float(self.fish_caught) if goal == "Fish" else float(self.total_weight)


class ChallengeRecord(_Record):
    id: str
    kind: ChallengeKind
    goal: Goal
    location: str
    start_date: UtcDatetime
    end_date: UtcDatetime
    max_reward: int = Field(ge=0)
    completed: bool = False
    duration_seconds: int = 120
    custom_text: str = ""


class FriendScoreRecord(_Record):
    player_id: str
    player_name: Optional[str] = None
    fish_caught: int = Field(ge=0)
    total_weight: float = Field(ge=0)
    date: UtcDatetime

    def metric(self, goal: str) -> float:
        return float(self.fish_caught) if goal == "Fish" else float(self.total_weight)


class FriendChallengeRecord(_Record):
    id: str
    challenger_id: str
    recipient_id: str
    wager: int = Field(ge=0)
    wager_escrowed: bool = True
    goal: Goal
    location: str
    duration_seconds: int = 120
    start_date: UtcDatetime
    accepted: bool = False
    completed: bool = False
    scores: list[FriendScoreRecord] = Field(default_factory=list)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.challenger_id, self.recipient_id)


class UserRecord(_Record):
    id: str
    display_name: Optional[str] = None
    coins: int = 0


R = TypeVar("R", bound=BaseModel)


def validated(model: Type[R], row: object) -> R:
    """Validate a stored row (ORM object or mapping) into a typed record."""
    try:
        return model.model_validate(row)
    except ValidationError as e:
        raise GameError(
            ErrorCode.INVALID_INPUT,
            f"Stored {model.__name__} is malformed",
            details={"errors": e.errors(include_url=False)},
        ) from e


def check_score_values(fish_caught: object, total_weight: object) -> tuple[int, float]:
    """Reject negative, fractional or non-numeric submissions."""
    if isinstance(fish_caught, bool) or not isinstance(fish_caught, (int, float)):
        raise GameError(ErrorCode.INVALID_INPUT, "fishCaught must be a number")
    if isinstance(total_weight, bool) or not isinstance(total_weight, (int, float)):
        raise GameError(ErrorCode.INVALID_INPUT, "totalWeight must be a number")
    if not math.isfinite(fish_caught) or fish_caught < 0 or int(fish_caught) != fish_caught:
        raise GameError(ErrorCode.INVALID_INPUT, "fishCaught must be a non-negative integer")
    if not math.isfinite(total_weight) or total_weight < 0:
        raise GameError(ErrorCode.INVALID_INPUT, "totalWeight must be a non-negative number")
    return int(fish_caught), float(total_weight)
