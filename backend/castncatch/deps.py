"""Wiring of the SQL-backed collaborators into the engines.

Routes depend on the ``get_*`` providers; tests swap them through
``app.dependency_overrides``. Jobs call the ``build_*`` factories directly.
"""
from __future__ import annotations
from functools import lru_cache
from fastapi import Path
from redis import Redis
from rq import Queue
from castncatch.config import settings
from castncatch.db import SessionLocal
from castncatch.errors import ErrorCode, GameError
from castncatch.records import CHALLENGE_KINDS
from castncatch.services.challenge_store import SqlChallengeStore
from castncatch.services.friend_challenges import FriendChallengeEngine
from castncatch.services.friend_store import SqlFriendChallengeStore
from castncatch.services.ledger import SqlLedger
from castncatch.services.notifier import SqlNotifier
from castncatch.services.push import build_push_gateway
from castncatch.services.ranked_challenges import RankedChallengeEngine
from castncatch.services.time_windows import Window, end_of_day_window, fixed_window
from castncatch.services.users import SqlUserDirectory


def challenge_window(kind: str) -> Window:
    if kind == "proTournament":
        return fixed_window(settings.pro_tournament_hours)
    return end_of_day_window(settings.challenge_timezone)


def build_notifier() -> SqlNotifier:
    return SqlNotifier(SessionLocal, build_push_gateway())


def build_ranked_engine(kind: str, notifier: SqlNotifier | None = None) -> RankedChallengeEngine:
    if kind not in CHALLENGE_KINDS:
        raise GameError(ErrorCode.NOT_FOUND, f"Unknown challenge type: {kind}")
    return RankedChallengeEngine(
        kind,
        SqlChallengeStore(SessionLocal),
        SqlUserDirectory(SessionLocal),
        notifier or build_notifier(),
        window=challenge_window(kind),
    )


def build_friend_engine(notifier: SqlNotifier | None = None) -> FriendChallengeEngine:
    return FriendChallengeEngine(
        SqlFriendChallengeStore(SessionLocal),
        SqlUserDirectory(SessionLocal),
        SqlLedger(SessionLocal),
        notifier or build_notifier(),
        escrow_default=settings.friend_wager_escrow,
    )

# ---------- request-scoped providers ----------

@lru_cache
def get_notifier() -> SqlNotifier:
    # one per process so background push tasks stay tracked
    return build_notifier()


@lru_cache
def _ranked_engine(kind: str) -> RankedChallengeEngine:
    return build_ranked_engine(kind, get_notifier())


def get_ranked_engine(kind: str = Path(...)) -> RankedChallengeEngine:
    return _ranked_engine(kind)


@lru_cache
def get_friend_engine() -> FriendChallengeEngine:
    return build_friend_engine(get_notifier())


@lru_cache
def get_queue() -> Queue:
    return Queue("default", connection=Redis.from_url(settings.redis_url))
