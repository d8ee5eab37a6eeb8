"""Two-player friend duels with an optional coin wager.

With escrow ("deduct") on, both players stake the wager up front: the
challenger when creating, the recipient when accepting. Declining a pending
duel refunds the challenger. The final score and its payout (both stakes to
the winner, or a refund to each on a draw) commit together.
"""
from __future__ import annotations
import random
from datetime import datetime
from typing import Callable, Optional
import structlog
from pydantic import BaseModel
from castncatch.errors import ErrorCode, GameError
from castncatch.records import (
    GOALS,
    FriendChallengeRecord,
    FriendScoreRecord,
    check_score_values,
    new_id,
    utcnow,
)
from castncatch.services.ports import FriendChallengeStore, Ledger, Notifier, UserDirectory
from castncatch.services.ranked_challenges import GAMEPLAY_SECONDS, LOCATION_POOL, notify_quietly

log = structlog.get_logger()

CATEGORY_REQUESTS = "challengeRequests"
CATEGORY_RESULTS = "friendChallengeResults"


class FriendChallengeLists(BaseModel):
    created: list[FriendChallengeRecord]
    received: list[FriendChallengeRecord]


class FriendChallengeEngine:
    def __init__(
        self,
        store: FriendChallengeStore,
        users: UserDirectory,
        ledger: Ledger,
        notifier: Notifier,
        *,
        escrow_default: bool = True,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.users = users
        self.ledger = ledger
        self.notifier = notifier
        self.escrow_default = escrow_default
        self.rng = rng or random.Random()
        self.clock = clock

    async def _require(self, challenge_id: str) -> FriendChallengeRecord:
        ch = await self.store.get(challenge_id)
        if ch is None:
            raise GameError(ErrorCode.NOT_FOUND, "Invalid challenge ID.")
        return ch

    async def _require_recipient(self, challenge_id: str, user_id: str) -> FriendChallengeRecord:
        ch = await self._require(challenge_id)
        if ch.recipient_id != user_id:
            raise GameError(ErrorCode.FORBIDDEN, "You are not the intended recipient of this challenge.")
        return ch

    # ---------- create ----------

    async def create(
        self,
        challenger_id: str,
        friend_id: str,
        wager: Optional[int],
        deduct: Optional[bool] = None,
    ) -> FriendChallengeRecord:
        if deduct is None:
            deduct = self.escrow_default
        if wager is None or isinstance(wager, bool) or not isinstance(wager, int) or wager < 0:
            raise GameError(ErrorCode.INVALID_INPUT, "Wager must be a non-negative whole number.")
        if challenger_id == friend_id:
            raise GameError(ErrorCode.INVALID_INPUT, "You can't challenge yourself.")
        if await self.users.get_user(friend_id) is None:
            raise GameError(ErrorCode.NOT_FOUND, "Unrecognized friend.")
        if await self.store.find_open(challenger_id, friend_id):
            raise GameError(ErrorCode.ALREADY_ACTIVE, "You already have an active challenge with this friend.")

        locations = await self.users.location_ids(limit=LOCATION_POOL)
        if not locations:
            raise GameError(ErrorCode.NOT_FOUND, "No fishing locations are configured.")

        if deduct:
            await self.ledger.debit(challenger_id, wager)

        ch = FriendChallengeRecord(
            id=new_id(),
            challenger_id=challenger_id,
            recipient_id=friend_id,
            wager=wager,
            wager_escrowed=deduct,
            goal=self.rng.choice(GOALS),
            location=self.rng.choice(locations),
            duration_seconds=GAMEPLAY_SECONDS,
            start_date=self.clock(),
        )
        try:
            ch = await self.store.create(ch)
        except Exception:
            if deduct:
                # stake was taken but no challenge exists to hold it
                await self.ledger.add_coins(challenger_id, wager)
            raise

        log.info("friend_challenge_created", challenge_id=ch.id, challenger_id=challenger_id, recipient_id=friend_id, wager=wager, escrowed=deduct)
        name = await self.users.display_name(challenger_id)
        await notify_quietly(self.notifier, friend_id, f"You received a challenge from {name}", CATEGORY_REQUESTS, ch.id)
        return ch

    # ---------- respond ----------

    async def accept(self, challenge_id: str, user_id: str, deduct: Optional[bool] = None) -> str:
        ch = await self._require_recipient(challenge_id, user_id)
        if ch.accepted:
            raise GameError(ErrorCode.INVALID_INPUT, "This challenge has already been accepted.")
        if deduct is None:
            deduct = ch.wager_escrowed

        if not await self.store.accept(ch.id, user_id, ch.wager if deduct else 0):
            # a concurrent accept or decline got there first
            raise GameError(ErrorCode.INVALID_INPUT, "This challenge has already been accepted.")
        log.info("friend_challenge_accepted", challenge_id=ch.id, user_id=user_id, staked=deduct)

        name = await self.users.display_name(user_id)
        await notify_quietly(self.notifier, ch.challenger_id, f"{name} accepted your challenge!", CATEGORY_REQUESTS, ch.id)
        return "Success"

    async def decline(self, challenge_id: str, user_id: str, deduct: Optional[bool] = None) -> str:
        """Only a pending duel can be declined; once accepted both stakes are in play."""
        ch = await self._require_recipient(challenge_id, user_id)
        if ch.accepted:
            raise GameError(ErrorCode.INVALID_INPUT, "You already accepted this challenge.")
        if deduct is None:
            deduct = ch.wager_escrowed

        if not await self.store.decline(ch.id, ch.challenger_id, ch.wager if deduct else 0):
            raise GameError(ErrorCode.INVALID_INPUT, "This challenge can no longer be declined.")
        log.info("friend_challenge_declined", challenge_id=ch.id, user_id=user_id, refunded=deduct)

        name = await self.users.display_name(user_id)
        await notify_quietly(self.notifier, ch.challenger_id, f"{name} declined your challenge.", CATEGORY_REQUESTS)
        return "Success"

    # ---------- scores ----------

    async def submit_score(
        self,
        challenge_id: str,
        user_id: str,
        fish_caught: int,
        total_weight: float,
        deduct: Optional[bool] = None,
    ) -> str:
        fish_caught, total_weight = check_score_values(fish_caught, total_weight)

        ch = await self._require(challenge_id)
        if not ch.is_participant(user_id):
            raise GameError(ErrorCode.FORBIDDEN, "You are not part of this challenge.")
        if not ch.accepted:
            raise GameError(ErrorCode.NOT_ACCEPTED, "This challenge has not been accepted.")
        if any(s.player_id == user_id for s in ch.scores):
            raise GameError(ErrorCode.DUPLICATE_SUBMISSION, "You have already submitted a score for this challenge.")
        user = await self.users.get_user(user_id)
        if user is None:
            raise GameError(ErrorCode.UNKNOWN_USER, "Unrecognized user.")

        if deduct is None:
            deduct = ch.wager_escrowed
        updated = await self.store.append_score(
            ch.id,
            FriendScoreRecord(
                player_id=user_id,
                player_name=user.display_name,
                fish_caught=fish_caught,
                total_weight=total_weight,
                date=self.clock(),
            ),
            # credited in the same transaction that stores the second score
            lambda done: settlement_credits(done, deduct),
        )
        log.info("friend_score_saved", challenge_id=ch.id, user_id=user_id, scores=len(updated.scores))

        if len(updated.scores) == 2:
            await self.settle(updated, deduct)
        return "Score saved"

    async def settle(self, ch: FriendChallengeRecord, deduct: Optional[bool] = None) -> Optional[str]:
        """
        Announce a finished duel. The coins from `settlement_credits` were
        already applied together with the final score. Returns the winner's id,
        or None on a draw or when unfinished.
        """
        if len(ch.scores) != 2:
            return None
        if deduct is None:
            deduct = ch.wager_escrowed

        winner_id = duel_winner(ch)
        if winner_id is None:
            for s in ch.scores:
                await notify_quietly(self.notifier, s.player_id, "Friend challenge was a draw!", CATEGORY_RESULTS, ch.id)
            log.info("friend_challenge_settled", challenge_id=ch.id, outcome="draw", refunded=deduct)
            return None

        payout = 2 * ch.wager
        loser_id = ch.challenger_id if winner_id == ch.recipient_id else ch.recipient_id
        await notify_quietly(
            self.notifier, winner_id,
            f"You won the friend challenge and received {payout} coins.", CATEGORY_RESULTS, ch.id,
        )
        await notify_quietly(
            self.notifier, loser_id,
            "You lost the friend challenge and received no coins.", CATEGORY_RESULTS, ch.id,
        )
        log.info("friend_challenge_settled", challenge_id=ch.id, outcome="win", winner_id=winner_id, payout=payout)
        return winner_id

    # ---------- read paths ----------

    async def get(self, challenge_id: str, user_id: str) -> FriendChallengeRecord:
        ch = await self._require(challenge_id)
        if not ch.is_participant(user_id):
            raise GameError(ErrorCode.FORBIDDEN, "You don't have permission to view this challenge.")
        return ch

    async def list_open(self, user_id: str) -> FriendChallengeLists:
        created, received = await self.store.list_open(user_id)
        return FriendChallengeLists(created=created, received=received)


def duel_winner(ch: FriendChallengeRecord) -> Optional[str]:
    """Player with the better goal metric, or None on a draw or an unfinished duel."""
    if len(ch.scores) != 2:
        return None
    first, second = ch.scores
    a, b = first.metric(ch.goal), second.metric(ch.goal)
    if a == b:
        return None
    return first.player_id if a > b else second.player_id


def settlement_credits(ch: FriendChallengeRecord, deduct: bool) -> dict[str, int]:
    """Coins owed per player once both scores are in: both stakes to the winner, refunds on a draw."""
    if len(ch.scores) != 2 or not ch.wager:
        return {}
    winner_id = duel_winner(ch)
    if winner_id is None:
        return {s.player_id: ch.wager for s in ch.scores} if deduct else {}
    return {winner_id: 2 * ch.wager}
