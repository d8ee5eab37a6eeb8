"""Ranked timed challenges: the solo "hourly" challenges and pro tournaments.

Both variants share this engine; they differ only in their storage namespace
(``kind``) and in how long a challenge stays open.

Lifecycle:
  - create_challenge() opens a challenge with a random goal, location and reward cap
  - submit_score() accepts one score per player while the challenge is open
  - sweep_expired() settles at most SWEEP_LIMIT expired challenges per run
  - settle() pays every participant in proportion to the best score, then
    marks the challenge completed
"""
from __future__ import annotations
import asyncio
import random
from datetime import datetime
from typing import Callable, Optional
import structlog
from pydantic import BaseModel
from castncatch.errors import ErrorCode, GameError
from castncatch.records import (
    GOALS,
    ChallengeRecord,
    ScoreRecord,
    check_score_values,
    new_id,
    utcnow,
)
from castncatch.services.ports import ChallengeStore, Notifier, UserDirectory
from castncatch.services.rewards import compute_reward, high_score, rank_scores, rank_string, reward_ratio
from castncatch.services.time_windows import Window

log = structlog.get_logger()

SWEEP_LIMIT = 2           # settlements per sweep; keeps a run inside the job time limit
LOCATION_POOL = 10        # locations are drawn from the first N known
SCOREBOARD_SIZE = 50
GAMEPLAY_SECONDS = 2 * 60
REWARD_STEP = 5           # max reward = 5 x [10, 19]
REWARD_MULTIPLE = (10, 19)

CATEGORY_RESULTS = "challengeResults"

KIND_LABELS = {"hourly": "challenge", "proTournament": "pro tournament"}


class Settlement(BaseModel):
    challenge_id: str
    participants: int = 0
    paid: int = 0
    coins_awarded: int = 0
    completed: bool = False


class Scoreboard(BaseModel):
    scores: list[ScoreRecord]
    individual_score: Optional[ScoreRecord] = None


class RankedChallengeEngine:
    def __init__(
        self,
        kind: str,
        store: ChallengeStore,
        users: UserDirectory,
        notifier: Notifier,
        *,
        window: Window,
        sweep_limit: int = SWEEP_LIMIT,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.kind = kind
        self.store = store
        self.users = users
        self.notifier = notifier
        self.window = window
        self.sweep_limit = sweep_limit
        self.rng = rng or random.Random()
        self.clock = clock

    @property
    def label(self) -> str:
        return KIND_LABELS.get(self.kind, "challenge")

    async def _require(self, challenge_id: str) -> ChallengeRecord:
        ch = await self.store.get_challenge(self.kind, challenge_id)
        if ch is None:
            raise GameError(ErrorCode.NOT_FOUND, "Unrecognized challenge.")
        return ch

    # ---------- create ----------

    async def create_challenge(self) -> ChallengeRecord:
        locations = await self.users.location_ids(limit=LOCATION_POOL)
        if not locations:
            raise GameError(ErrorCode.NOT_FOUND, "No fishing locations are configured.")
        now = self.clock()
        ch = ChallengeRecord(
            id=new_id(),
            kind=self.kind,
            goal=self.rng.choice(GOALS),
            location=self.rng.choice(locations),
            start_date=now,
            end_date=self.window(now),
            max_reward=REWARD_STEP * self.rng.randint(*REWARD_MULTIPLE),
            completed=False,
            duration_seconds=GAMEPLAY_SECONDS,
            custom_text="",
        )
        await self.store.create_challenge(ch)
        log.info("challenge_created", kind=self.kind, challenge_id=ch.id, goal=ch.goal, max_reward=ch.max_reward, end_date=ch.end_date.isoformat())
        return ch

    # ---------- read paths ----------

    async def list_active(self) -> list[ChallengeRecord]:
        return await self.store.list_active(self.kind, self.clock())

    async def get_score(self, challenge_id: str, user_id: str) -> Optional[ScoreRecord]:
        await self._require(challenge_id)
        return await self.store.get_score(challenge_id, user_id)

    async def get_scores(self, challenge_id: str, user_id: Optional[str] = None) -> Scoreboard:
        """Top SCOREBOARD_SIZE scores, plus the caller's own score when it missed the cut."""
        ch = await self._require(challenge_id)
        top = await self.store.top_scores(challenge_id, ch.goal, SCOREBOARD_SIZE)
        own = None
        if user_id and not any(s.player_id == user_id for s in top):
            own = await self.store.get_score(challenge_id, user_id)
        return Scoreboard(scores=top, individual_score=own)

    # ---------- submit ----------

    async def submit_score(self, challenge_id: str, user_id: str, fish_caught: int, total_weight: float) -> str:
        fish_caught, total_weight = check_score_values(fish_caught, total_weight)
        now = self.clock()

        ch = await self._require(challenge_id)
        if now > ch.end_date:
            raise GameError(ErrorCode.EXPIRED, "This challenge has expired.")
        if await self.store.get_score(challenge_id, user_id):
            raise GameError(ErrorCode.DUPLICATE_SUBMISSION, "You have already submitted a score for this challenge.")
        user = await self.users.get_user(user_id)
        if user is None:
            raise GameError(ErrorCode.UNKNOWN_USER, "Unrecognized user.")

        await self.store.add_score(
            challenge_id,
            ScoreRecord(
                player_id=user_id,
                player_name=user.display_name,
                fish_caught=fish_caught,
                total_weight=total_weight,
                date=now,
            ),
        )
        log.info("score_saved", kind=self.kind, challenge_id=challenge_id, user_id=user_id)
        return "Score saved"

    # ---------- sweep & settle ----------

    async def sweep_expired(self) -> list[str]:
        """Settle up to `sweep_limit` expired challenges concurrently; the rest wait for the next run."""
        now = self.clock()
        expired = [c for c in await self.store.list_incomplete(self.kind) if c.end_date < now]
        batch = sorted(expired, key=lambda c: c.end_date)[: self.sweep_limit]

        results = await asyncio.gather(*(self.settle(c.id) for c in batch), return_exceptions=True)
        for ch, res in zip(batch, results):
            if isinstance(res, BaseException):
                log.error("challenge_settlement_failed", kind=self.kind, challenge_id=ch.id, error=repr(res))

        log.info("sweep_finished", kind=self.kind, incomplete_expired=len(expired), processed=len(batch))
        return [c.id for c in batch]

    async def settle(self, challenge_id: str) -> Settlement:
        ch = await self._require(challenge_id)
        if ch.completed:
            log.info("challenge_already_settled", kind=self.kind, challenge_id=ch.id)
            return Settlement(challenge_id=ch.id, completed=True)

        scores = await self.store.list_scores(ch.id)
        if not scores:
            await self.store.mark_completed(self.kind, ch.id)
            log.info("challenge_settled", kind=self.kind, challenge_id=ch.id, participants=0)
            return Settlement(challenge_id=ch.id, completed=True)

        high = high_score(s.metric(ch.goal) for s in scores)
        ranked = rank_scores(scores, ch.goal)

        # scores that already carry coins were paid by an earlier, interrupted run
        jobs = [
            self._pay(ch, score, rank, high)
            for rank, score in enumerate(ranked, start=1)
            if score.coins is None
        ]
        results = await asyncio.gather(*jobs, return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        # None: an overlapping settlement got to that score first
        paid = [r for r in results if isinstance(r, int)]
        awarded = sum(paid)

        if failures:
            log.error(
                "challenge_settlement_incomplete",
                kind=self.kind,
                challenge_id=ch.id,
                failed=len(failures),
                first_error=repr(failures[0]),
            )
            return Settlement(
                challenge_id=ch.id,
                participants=len(scores),
                paid=len(paid),
                coins_awarded=awarded,
                completed=False,
            )

        await self.store.mark_completed(self.kind, ch.id)
        log.info("challenge_settled", kind=self.kind, challenge_id=ch.id, participants=len(scores), coins_awarded=awarded, high_score=high)
        return Settlement(
            challenge_id=ch.id,
            participants=len(scores),
            paid=len(paid),
            coins_awarded=awarded,
            completed=True,
        )

    async def _pay(self, ch: ChallengeRecord, score: ScoreRecord, rank: int, high: float) -> Optional[int]:
        ratio = reward_ratio(
            score.metric(ch.goal), high,
            challenge_id=ch.id, user_id=score.player_id, max_reward=ch.max_reward,
        )
        reward = compute_reward(ratio, ch.max_reward)

        if not await self.store.award_score(ch.id, score.player_id, reward):
            log.info("score_already_paid", kind=self.kind, challenge_id=ch.id, user_id=score.player_id)
            return None

        if reward > 0:
            message = f"You received {reward} coins for placing {rank_string(rank)} in a {self.label}."
            await notify_quietly(self.notifier, score.player_id, message, CATEGORY_RESULTS, ch.id)
        return reward


async def notify_quietly(notifier: Notifier, user_id: str, message: str, category: str, data: str = "") -> None:
    """A failed notification is logged; it never undoes the payout that triggered it."""
    try:
        await notifier.notify(user_id, message, category, data)
    except Exception:
        log.warning("notification_failed", user_id=user_id, category=category, exc_info=True)
