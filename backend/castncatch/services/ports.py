"""Collaborator interfaces the challenge engines depend on.

The production implementations are SQL backed (see challenge_store, friend_store,
users, ledger and notifier); tests substitute in-memory fakes.
"""
from __future__ import annotations
from datetime import datetime
from typing import Callable, Optional, Protocol
from castncatch.records import (
    ChallengeRecord,
    FriendChallengeRecord,
    FriendScoreRecord,
    ScoreRecord,
    UserRecord,
)


class ChallengeStore(Protocol):
    async def create_challenge(self, challenge: ChallengeRecord) -> ChallengeRecord: ...
    async def get_challenge(self, kind: str, challenge_id: str) -> Optional[ChallengeRecord]: ...
    async def list_active(self, kind: str, now: datetime) -> list[ChallengeRecord]: ...
    async def list_incomplete(self, kind: str) -> list[ChallengeRecord]: ...
    async def mark_completed(self, kind: str, challenge_id: str) -> None: ...
    async def get_score(self, challenge_id: str, player_id: str) -> Optional[ScoreRecord]: ...
    async def list_scores(self, challenge_id: str) -> list[ScoreRecord]: ...
    async def top_scores(self, challenge_id: str, goal: str, limit: int) -> list[ScoreRecord]: ...
    async def add_score(self, challenge_id: str, score: ScoreRecord) -> None: ...
    async def award_score(self, challenge_id: str, player_id: str, coins: int) -> bool: ...


class FriendChallengeStore(Protocol):
    async def find_open(self, challenger_id: str, recipient_id: str) -> Optional[FriendChallengeRecord]: ...
    async def create(self, challenge: FriendChallengeRecord) -> FriendChallengeRecord: ...
    async def get(self, challenge_id: str) -> Optional[FriendChallengeRecord]: ...
    async def accept(self, challenge_id: str, recipient_id: str, stake: int) -> bool: ...
    async def decline(self, challenge_id: str, challenger_id: str, refund: int) -> bool: ...
    async def append_score(
        self,
        challenge_id: str,
        score: FriendScoreRecord,
        payouts: Optional[Callable[[FriendChallengeRecord], dict[str, int]]] = None,
    ) -> FriendChallengeRecord: ...
    async def list_open(self, user_id: str) -> tuple[list[FriendChallengeRecord], list[FriendChallengeRecord]]: ...


class UserDirectory(Protocol):
    async def get_user(self, user_id: str) -> Optional[UserRecord]: ...
    async def display_name(self, user_id: str) -> str: ...
    async def location_ids(self, limit: int) -> list[str]: ...


class Ledger(Protocol):
    async def balance(self, user_id: str) -> int: ...
    async def add_coins(self, user_id: str, delta: int) -> int: ...
    async def debit(self, user_id: str, amount: int) -> int: ...


class Notifier(Protocol):
    async def notify(self, user_id: str, message: str, category: str, data: str = "") -> Optional[str]: ...
    async def push_only(self, user_id: str, message: str, category: str, data: str = "") -> None: ...
