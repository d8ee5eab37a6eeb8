from __future__ import annotations
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from castncatch.errors import ErrorCode, GameError
from castncatch.models.challenge import Challenge, ChallengeScore
from castncatch.records import ChallengeRecord, ScoreRecord, validated
from castncatch.services.ledger import add_coins


class SqlChallengeStore:
    """Ranked challenges and their scores. One session per call so callers can fan out."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    # ---------- challenges ----------

    async def create_challenge(self, challenge: ChallengeRecord) -> ChallengeRecord:
        async with self._sessions() as session, session.begin():
            session.add(Challenge(**challenge.model_dump()))
        return challenge

    async def get_challenge(self, kind: str, challenge_id: str) -> ChallengeRecord | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(Challenge).where(Challenge.id == challenge_id, Challenge.kind == kind)
            )
            return validated(ChallengeRecord, row) if row else None

    async def list_active(self, kind: str, now: datetime) -> list[ChallengeRecord]:
        async with self._sessions() as session:
            rows = (await session.execute(
                select(Challenge)
                .where(Challenge.kind == kind, Challenge.end_date >= now)
                .order_by(Challenge.end_date.asc())
            )).scalars().all()
            return [validated(ChallengeRecord, r) for r in rows]

    async def list_incomplete(self, kind: str) -> list[ChallengeRecord]:
        async with self._sessions() as session:
            rows = (await session.execute(
                select(Challenge)
                .where(Challenge.kind == kind, Challenge.completed.is_(False))
                .order_by(Challenge.end_date.asc())
            )).scalars().all()
            return [validated(ChallengeRecord, r) for r in rows]

    async def mark_completed(self, kind: str, challenge_id: str) -> None:
        async with self._sessions() as session, session.begin():
            await session.execute(
                update(Challenge)
                .where(Challenge.id == challenge_id, Challenge.kind == kind)
                .values(completed=True)
            )

    # ---------- scores ----------

    async def get_score(self, challenge_id: str, player_id: str) -> ScoreRecord | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(ChallengeScore).where(
                    ChallengeScore.challenge_id == challenge_id,
                    ChallengeScore.player_id == player_id,
                )
            )
            return validated(ScoreRecord, row) if row else None

    async def list_scores(self, challenge_id: str) -> list[ScoreRecord]:
        async with self._sessions() as session:
            rows = (await session.execute(
                select(ChallengeScore)
                .where(ChallengeScore.challenge_id == challenge_id)
                .order_by(ChallengeScore.date.asc())
            )).scalars().all()
            return [validated(ScoreRecord, r) for r in rows]

    async def top_scores(self, challenge_id: str, goal: str, limit: int) -> list[ScoreRecord]:
        metric = ChallengeScore.fish_caught if goal == "Fish" else ChallengeScore.total_weight
        async with self._sessions() as session:
            rows = (await session.execute(
                select(ChallengeScore)
                .where(ChallengeScore.challenge_id == challenge_id)
                .order_by(metric.desc(), ChallengeScore.date.asc())
                .limit(limit)
            )).scalars().all()
            return [validated(ScoreRecord, r) for r in rows]

    async def add_score(self, challenge_id: str, score: ScoreRecord) -> None:
        try:
            async with self._sessions() as session, session.begin():
                session.add(ChallengeScore(challenge_id=challenge_id, **score.model_dump()))
        except IntegrityError:
            # lost a race with a concurrent submission from the same player
            raise GameError(
                ErrorCode.DUPLICATE_SUBMISSION,
                "You have already submitted a score for this challenge.",
            )

    async def award_score(self, challenge_id: str, player_id: str, coins: int) -> bool:
        """
        Record a score's reward and credit the player in one transaction.

        The write only lands while the score is still unpaid, so overlapping
        settlements of the same challenge credit each player once. Returns False
        when another run already paid this score.
        """
        async with self._sessions() as session, session.begin():
            result = await session.execute(
                update(ChallengeScore)
                .where(
                    ChallengeScore.challenge_id == challenge_id,
                    ChallengeScore.player_id == player_id,
                    ChallengeScore.coins.is_(None),
                )
                .values(coins=coins)
            )
            if result.rowcount != 1:
                return False
            await add_coins(session, player_id, coins)
        return True
