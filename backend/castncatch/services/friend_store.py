from __future__ import annotations
from typing import Callable
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from castncatch.errors import ErrorCode, GameError
from castncatch.models.friend_challenge import FriendChallenge, FriendChallengeScore
from castncatch.records import FriendChallengeRecord, FriendScoreRecord, validated
from castncatch.services.ledger import add_coins, debit_coins


class SqlFriendChallengeStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def find_open(self, challenger_id: str, recipient_id: str) -> FriendChallengeRecord | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(FriendChallenge)
                .where(
                    FriendChallenge.challenger_id == challenger_id,
                    FriendChallenge.recipient_id == recipient_id,
                    FriendChallenge.completed.is_(False),
                )
                .limit(1)
            )
            return validated(FriendChallengeRecord, row) if row else None

    async def create(self, challenge: FriendChallengeRecord) -> FriendChallengeRecord:
        try:
            async with self._sessions() as session, session.begin():
                session.add(FriendChallenge(**challenge.model_dump(exclude={"scores"})))
        except IntegrityError as e:
            raise GameError(ErrorCode.ALREADY_ACTIVE, "You already have an active challenge with this friend.") from e
        return challenge

    async def get(self, challenge_id: str) -> FriendChallengeRecord | None:
        async with self._sessions() as session:
            row = await session.get(FriendChallenge, challenge_id)
            return validated(FriendChallengeRecord, row) if row else None

    async def accept(self, challenge_id: str, recipient_id: str, stake: int) -> bool:
        """
        Flip a pending duel to accepted and take the recipient's stake in one
        transaction. Returns False when it was already accepted or is gone.
        """
        async with self._sessions() as session, session.begin():
            result = await session.execute(
                update(FriendChallenge)
                .where(
                    FriendChallenge.id == challenge_id,
                    FriendChallenge.recipient_id == recipient_id,
                    FriendChallenge.accepted.is_(False),
                    FriendChallenge.completed.is_(False),
                )
                .values(accepted=True)
            )
            if result.rowcount != 1:
                return False
            if stake:
                # InsufficientFunds rolls the acceptance back with it
                await debit_coins(session, recipient_id, stake)
        return True

    async def decline(self, challenge_id: str, challenger_id: str, refund: int) -> bool:
        """Delete a duel that was never accepted and return the challenger's stake."""
        async with self._sessions() as session, session.begin():
            result = await session.execute(
                delete(FriendChallenge).where(
                    FriendChallenge.id == challenge_id,
                    FriendChallenge.accepted.is_(False),
                )
            )
            if result.rowcount != 1:
                return False
            if refund:
                await add_coins(session, challenger_id, refund)
        return True

    async def append_score(
        self,
        challenge_id: str,
        score: FriendScoreRecord,
        payouts: Callable[[FriendChallengeRecord], dict[str, int]] | None = None,
    ) -> FriendChallengeRecord:
        """
        Append under a row lock and flip `completed` in the same transaction,
        so exactly one caller ever observes the second score. The second score
        also applies `payouts(finished duel)`; a failed credit rolls the score
        back so it can be resubmitted.
        """
        try:
            async with self._sessions() as session, session.begin():
                ch = await session.scalar(
                    select(FriendChallenge).where(FriendChallenge.id == challenge_id).with_for_update()
                )
                if ch is None:
                    raise GameError(ErrorCode.NOT_FOUND, "Unrecognized challenge.")
                if any(s.player_id == score.player_id for s in ch.scores):
                    raise GameError(
                        ErrorCode.DUPLICATE_SUBMISSION,
                        "You have already submitted a score for this challenge.",
                    )
                if len(ch.scores) >= 2:
                    raise GameError(ErrorCode.INVALID_INPUT, "This challenge is already complete.")
                ch.scores.append(FriendChallengeScore(seq=len(ch.scores), **score.model_dump()))
                ch.completed = len(ch.scores) == 2
                await session.flush()
                record = validated(FriendChallengeRecord, ch)
                if record.completed and payouts is not None:
                    for user_id, coins in payouts(record).items():
                        if coins:
                            await add_coins(session, user_id, coins)
                return record
        except IntegrityError:
            raise GameError(
                ErrorCode.DUPLICATE_SUBMISSION,
                "You have already submitted a score for this challenge.",
            )

    async def list_open(self, user_id: str) -> tuple[list[FriendChallengeRecord], list[FriendChallengeRecord]]:
        async with self._sessions() as session:
            created = (await session.execute(
                select(FriendChallenge)
                .where(FriendChallenge.challenger_id == user_id, FriendChallenge.completed.is_(False))
                .order_by(FriendChallenge.start_date.desc())
            )).scalars().all()
            received = (await session.execute(
                select(FriendChallenge)
                .where(FriendChallenge.recipient_id == user_id, FriendChallenge.completed.is_(False))
                .order_by(FriendChallenge.start_date.desc())
            )).scalars().all()
            return (
                [validated(FriendChallengeRecord, r) for r in created],
                [validated(FriendChallengeRecord, r) for r in received],
            )
