from __future__ import annotations
import asyncio
import random
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from castncatch.db import Base
import castncatch.models.user
import castncatch.models.challenge
import castncatch.models.friend_challenge
import castncatch.models.notification
import castncatch.models.social
import castncatch.models.stats
import castncatch.models.loot
from castncatch.errors import ErrorCode, GameError, InsufficientFunds
from castncatch.records import FriendChallengeRecord, UserRecord
from castncatch.services.friend_challenges import FriendChallengeEngine
from castncatch.services.ledger import clamp_balance
from castncatch.services.ranked_challenges import RankedChallengeEngine
from castncatch.services.time_windows import fixed_window

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw) -> None:
        self.now += timedelta(**kw)

# ---------- in-memory collaborators ----------

class FakeChallengeStore:
    def __init__(self, ledger: "FakeLedger"):
        self.ledger = ledger
        self.challenges = {}   # id -> ChallengeRecord
        self.scores = {}       # challenge id -> {player id -> ScoreRecord}
        self.fail_coins_for: set[str] = set()

    async def create_challenge(self, challenge):
        self.challenges[challenge.id] = challenge
        self.scores.setdefault(challenge.id, {})
        return challenge

    async def get_challenge(self, kind, challenge_id):
        ch = self.challenges.get(challenge_id)
        return ch if ch and ch.kind == kind else None

    async def list_active(self, kind, now):
        return sorted(
            (c for c in self.challenges.values() if c.kind == kind and c.end_date >= now),
            key=lambda c: c.end_date,
        )

    async def list_incomplete(self, kind):
        return [c for c in self.challenges.values() if c.kind == kind and not c.completed]

    async def mark_completed(self, kind, challenge_id):
        ch = self.challenges[challenge_id]
        self.challenges[challenge_id] = ch.model_copy(update={"completed": True})

    async def get_score(self, challenge_id, player_id):
        return self.scores.get(challenge_id, {}).get(player_id)

    async def list_scores(self, challenge_id):
        # yield like a real query so overlapping settlements interleave
        await asyncio.sleep(0)
        return list(self.scores.get(challenge_id, {}).values())

    async def top_scores(self, challenge_id, goal, limit):
        ranked = sorted(self.scores.get(challenge_id, {}).values(), key=lambda s: (-s.metric(goal), s.date))
        return ranked[:limit]

    async def add_score(self, challenge_id, score):
        bucket = self.scores.setdefault(challenge_id, {})
        if score.player_id in bucket:
            raise GameError(ErrorCode.DUPLICATE_SUBMISSION, "duplicate")
        bucket[score.player_id] = score

    async def award_score(self, challenge_id, player_id, coins):
        if player_id in self.fail_coins_for:
            raise RuntimeError("store unavailable")
        s = self.scores[challenge_id][player_id]
        if s.coins is not None:
            return False
        self.scores[challenge_id][player_id] = s.model_copy(update={"coins": coins})
        try:
            await self.ledger.add_coins(player_id, coins)
        except Exception:
            self.scores[challenge_id][player_id] = s  # rolled back with the credit
            raise
        return True


class FakeFriendStore:
    def __init__(self, ledger: "FakeLedger"):
        self.ledger = ledger
        self.challenges: dict[str, FriendChallengeRecord] = {}

    async def find_open(self, challenger_id, recipient_id):
        for ch in self.challenges.values():
            if ch.challenger_id == challenger_id and ch.recipient_id == recipient_id and not ch.completed:
                return ch
        return None

    async def create(self, challenge):
        self.challenges[challenge.id] = challenge
        return challenge

    async def get(self, challenge_id):
        await asyncio.sleep(0)
        return self.challenges.get(challenge_id)

    async def accept(self, challenge_id, recipient_id, stake):
        ch = self.challenges.get(challenge_id)
        if ch is None or ch.recipient_id != recipient_id or ch.accepted or ch.completed:
            return False
        self.challenges[challenge_id] = ch.model_copy(update={"accepted": True})
        if stake:
            try:
                await self.ledger.debit(recipient_id, stake)
            except Exception:
                self.challenges[challenge_id] = ch
                raise
        return True

    async def decline(self, challenge_id, challenger_id, refund):
        ch = self.challenges.get(challenge_id)
        if ch is None or ch.accepted:
            return False
        del self.challenges[challenge_id]
        if refund:
            try:
                await self.ledger.add_coins(challenger_id, refund)
            except Exception:
                self.challenges[challenge_id] = ch
                raise
        return True

    async def append_score(self, challenge_id, score, payouts=None):
        ch = self.challenges.get(challenge_id)
        if ch is None:
            raise GameError(ErrorCode.NOT_FOUND, "Unrecognized challenge.")
        scores = [*ch.scores, score]
        updated = ch.model_copy(update={"scores": scores, "completed": len(scores) == 2})
        if updated.completed and payouts is not None:
            with self.ledger.transaction():
                for user_id, coins in payouts(updated).items():
                    if coins:
                        await self.ledger.add_coins(user_id, coins)
        self.challenges[challenge_id] = updated
        return updated

    async def list_open(self, user_id):
        open_ = [c for c in self.challenges.values() if not c.completed]
        return (
            [c for c in open_ if c.challenger_id == user_id],
            [c for c in open_ if c.recipient_id == user_id],
        )


class FakeUsers:
    def __init__(self, locations=None):
        self.users: dict[str, UserRecord] = {}
        self.locations = list(locations if locations is not None else [str(i) for i in range(1, 13)])

    def add(self, user_id, name=None, coins=0):
        self.users[user_id] = UserRecord(id=user_id, display_name=name or user_id.title(), coins=coins)

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def display_name(self, user_id):
        u = self.users.get(user_id)
        return (u.display_name if u else None) or "Player"

    async def location_ids(self, limit):
        return self.locations[:limit]


class FakeLedger:
    def __init__(self, users: FakeUsers):
        self.users = users
        self.credits: list[tuple[str, int]] = []
        self.debits: list[tuple[str, int]] = []
        self.fail_credit_for: set[str] = set()

    def coins(self, user_id):
        return self.users.users[user_id].coins

    def _set(self, user_id, coins):
        self.users.users[user_id] = self.users.users[user_id].model_copy(update={"coins": coins})

    @contextmanager
    def transaction(self):
        """Undo every balance change made inside the block when it raises."""
        users, credits, debits = dict(self.users.users), list(self.credits), list(self.debits)
        try:
            yield
        except Exception:
            self.users.users, self.credits, self.debits = users, credits, debits
            raise

    async def balance(self, user_id):
        return self.coins(user_id)

    async def add_coins(self, user_id, delta):
        if user_id in self.fail_credit_for:
            raise RuntimeError("ledger unavailable")
        self.credits.append((user_id, delta))
        if user_id not in self.users.users:
            return 0
        new = clamp_balance(user_id, self.coins(user_id), delta)
        self._set(user_id, new)
        return new

    async def debit(self, user_id, amount):
        if user_id not in self.users.users:
            raise GameError(ErrorCode.NOT_FOUND, "Unrecognized user.")
        have = self.coins(user_id)
        if have < amount:
            raise InsufficientFunds(need=amount, have=have)
        self.debits.append((user_id, amount))
        self._set(user_id, have - amount)
        return have - amount


class FakeNotifier:
    def __init__(self):
        self.sent: list[tuple[str, str, str, str]] = []
        self.pushed: list[tuple[str, str, str, str]] = []

    async def notify(self, user_id, message, category, data=""):
        self.sent.append((user_id, message, category, data))
        return str(len(self.sent))

    async def push_only(self, user_id, message, category, data=""):
        self.pushed.append((user_id, message, category, data))

    def messages_for(self, user_id):
        return [m for (u, m, _, _) in self.sent if u == user_id]

# ---------- fixtures ----------

@pytest.fixture
def clock():
    return Clock()

@pytest.fixture
def users():
    u = FakeUsers()
    for uid in ("alice", "bob", "carol", "dave", "erin"):
        u.add(uid, coins=100)
    return u

@pytest.fixture
def ledger(users):
    return FakeLedger(users)

@pytest.fixture
def notifier():
    return FakeNotifier()

@pytest.fixture
def challenge_store(ledger):
    return FakeChallengeStore(ledger)

@pytest.fixture
def friend_store(ledger):
    return FakeFriendStore(ledger)

@pytest.fixture
def hourly_engine(challenge_store, users, notifier, clock):
    return RankedChallengeEngine(
        "hourly", challenge_store, users, notifier,
        window=fixed_window(1), rng=random.Random(7), clock=clock,
    )

@pytest.fixture
def friend_engine(friend_store, users, ledger, notifier, clock):
    return FriendChallengeEngine(
        friend_store, users, ledger, notifier,
        escrow_default=True, rng=random.Random(7), clock=clock,
    )

@pytest_asyncio.fixture
async def sessions(tmp_path):
    """Session factory over a throwaway SQLite database with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()

@pytest.fixture
def make_user(sessions):
    from castncatch.models.user import User

    async def _make(user_id: str, name: str | None = None, coins: int = 0, loot_boxes: int = 0):
        name = name or user_id.title()
        async with sessions() as session, session.begin():
            session.add(User(
                id=user_id,
                email=f"{user_id}@example.com",
                password_hash="x",
                display_name=name,
                search_name=name.lower(),
                coins=coins,
                loot_boxes=loot_boxes,
            ))
        return user_id
    return _make
