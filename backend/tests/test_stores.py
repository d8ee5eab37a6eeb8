from __future__ import annotations
from datetime import datetime, timedelta, timezone
import pytest
from castncatch.errors import ErrorCode, GameError
from castncatch.models.challenge import Location
from castncatch.records import ChallengeRecord, FriendChallengeRecord, FriendScoreRecord, ScoreRecord, new_id
from castncatch.services import challenge_store as challenge_store_mod
from castncatch.services import friend_store as friend_store_mod
from castncatch.services.challenge_store import SqlChallengeStore
from castncatch.services.friend_store import SqlFriendChallengeStore
from castncatch.services.ledger import SqlLedger
from castncatch.services.users import SqlUserDirectory

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _challenge(kind="hourly", ends_in=timedelta(hours=1), goal="Fish"):
    return ChallengeRecord(
        id=new_id(), kind=kind, goal=goal, location="1",
        start_date=NOW, end_date=NOW + ends_in, max_reward=60,
    )


def _score(pid, fish, weight, minute=0):
    return ScoreRecord(
        player_id=pid, player_name=pid.title(), fish_caught=fish, total_weight=weight,
        date=NOW + timedelta(minutes=minute),
    )


@pytest.mark.asyncio
async def test_challenge_roundtrip_is_utc_and_namespaced(sessions):
    store = SqlChallengeStore(sessions)
    ch = await store.create_challenge(_challenge())

    got = await store.get_challenge("hourly", ch.id)
    assert got == ch
    assert got.end_date.tzinfo is not None
    assert await store.get_challenge("proTournament", ch.id) is None


@pytest.mark.asyncio
async def test_active_and_incomplete_listing(sessions):
    store = SqlChallengeStore(sessions)
    expired = await store.create_challenge(_challenge(ends_in=timedelta(hours=-1)))
    later = await store.create_challenge(_challenge(ends_in=timedelta(hours=5)))
    soon = await store.create_challenge(_challenge(ends_in=timedelta(hours=2)))
    await store.create_challenge(_challenge(kind="proTournament"))

    assert [c.id for c in await store.list_active("hourly", NOW)] == [soon.id, later.id]

    await store.mark_completed("hourly", expired.id)
    incomplete = await store.list_incomplete("hourly")
    assert {c.id for c in incomplete} == {soon.id, later.id}


@pytest.mark.asyncio
async def test_scores_unique_per_player(sessions, make_user):
    await make_user("alice")
    store = SqlChallengeStore(sessions)
    ch = await store.create_challenge(_challenge())
    await store.add_score(ch.id, _score("alice", 3, 4.0))
    with pytest.raises(GameError) as e:
        await store.add_score(ch.id, _score("alice", 9, 9.0))
    assert e.value.code == ErrorCode.DUPLICATE_SUBMISSION
    assert (await store.get_score(ch.id, "alice")).fish_caught == 3


@pytest.mark.asyncio
async def test_top_scores_and_coins(sessions, make_user):
    store = SqlChallengeStore(sessions)
    ch = await store.create_challenge(_challenge())
    for i, (pid, fish, weight) in enumerate([("a", 2, 9.0), ("b", 5, 1.0), ("c", 5, 3.0), ("d", 1, 0.5)]):
        await make_user(pid)
        await store.add_score(ch.id, _score(pid, fish, weight, minute=i))

    assert [s.player_id for s in await store.top_scores(ch.id, "Fish", 3)] == ["b", "c", "a"]
    assert [s.player_id for s in await store.top_scores(ch.id, "Weight", 2)] == ["a", "c"]

    assert await store.award_score(ch.id, "b", 42) is True
    coins = {s.player_id: s.coins for s in await store.list_scores(ch.id)}
    assert coins == {"a": None, "b": 42, "c": None, "d": None}


@pytest.mark.asyncio
async def test_award_score_credits_once(sessions, make_user):
    await make_user("alice", coins=10)
    store = SqlChallengeStore(sessions)
    ledger = SqlLedger(sessions)
    ch = await store.create_challenge(_challenge())
    await store.add_score(ch.id, _score("alice", 3, 4.0))

    assert await store.award_score(ch.id, "alice", 30) is True
    assert await store.award_score(ch.id, "alice", 30) is False
    assert (await store.get_score(ch.id, "alice")).coins == 30
    assert await ledger.balance("alice") == 40


@pytest.mark.asyncio
async def test_award_score_rolls_back_with_failed_credit(sessions, make_user, monkeypatch):
    await make_user("alice", coins=10)
    store = SqlChallengeStore(sessions)
    ch = await store.create_challenge(_challenge())
    await store.add_score(ch.id, _score("alice", 3, 4.0))

    async def broken(session, user_id, delta):
        raise RuntimeError("db blip")

    monkeypatch.setattr(challenge_store_mod, "add_coins", broken)
    with pytest.raises(RuntimeError):
        await store.award_score(ch.id, "alice", 30)
    assert (await store.get_score(ch.id, "alice")).coins is None

    monkeypatch.undo()
    assert await store.award_score(ch.id, "alice", 30) is True
    assert await SqlLedger(sessions).balance("alice") == 40


def _duel(challenger="alice", recipient="bob"):
    return FriendChallengeRecord(
        id=new_id(), challenger_id=challenger, recipient_id=recipient, wager=10,
        goal="Fish", location="2", start_date=NOW,
    )


def _fscore(pid, fish):
    return FriendScoreRecord(player_id=pid, player_name=pid.title(), fish_caught=fish, total_weight=1.0, date=NOW)


@pytest.mark.asyncio
async def test_friend_store_lifecycle(sessions, make_user):
    for uid in ("alice", "bob"):
        await make_user(uid)
    store = SqlFriendChallengeStore(sessions)
    ch = await store.create(_duel())

    assert (await store.find_open("alice", "bob")).id == ch.id
    assert await store.find_open("bob", "alice") is None
    with pytest.raises(GameError) as e:
        await store.create(_duel())
    assert e.value.code == ErrorCode.ALREADY_ACTIVE

    assert await store.accept(ch.id, "bob", 0) is True
    assert await store.accept(ch.id, "bob", 0) is False
    one = await store.append_score(ch.id, _fscore("alice", 4))
    assert len(one.scores) == 1 and not one.completed
    with pytest.raises(GameError) as e:
        await store.append_score(ch.id, _fscore("alice", 5))
    assert e.value.code == ErrorCode.DUPLICATE_SUBMISSION

    two = await store.append_score(ch.id, _fscore("bob", 6))
    assert two.accepted and two.completed
    assert [s.player_id for s in two.scores] == ["alice", "bob"]
    with pytest.raises(GameError):
        await store.append_score(ch.id, _fscore("carol", 1))

    created, received = await store.list_open("alice")
    assert created == [] and received == []
    # a finished duel frees the pair
    assert await store.find_open("alice", "bob") is None
    await store.create(_duel())


@pytest.mark.asyncio
async def test_friend_store_delete_and_listing(sessions, make_user):
    for uid in ("alice", "bob", "carol"):
        await make_user(uid)
    store = SqlFriendChallengeStore(sessions)
    mine = await store.create(_duel("alice", "bob"))
    theirs = await store.create(_duel("carol", "alice"))

    created, received = await store.list_open("alice")
    assert [c.id for c in created] == [mine.id]
    assert [c.id for c in received] == [theirs.id]

    assert await store.decline(mine.id, "alice", 0) is True
    assert await store.get(mine.id) is None
    assert await store.decline(mine.id, "alice", 0) is False
    with pytest.raises(GameError) as e:
        await store.append_score(mine.id, _fscore("alice", 1))
    assert e.value.code == ErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_user_directory(sessions, make_user):
    await make_user("alice", name="Alice A")
    async with sessions() as session, session.begin():
        session.add_all([Location(id=str(i), name=f"Lake {i}", sort_order=i) for i in range(12, 0, -1)])
    users = SqlUserDirectory(sessions)

    assert (await users.get_user("alice")).display_name == "Alice A"
    assert await users.get_user("ghost") is None
    assert await users.display_name("ghost") == "Player"
    assert await users.location_ids(limit=3) == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_friend_accept_and_decline_move_stakes(sessions, make_user):
    await make_user("alice", coins=90)
    await make_user("bob", coins=5)
    store = SqlFriendChallengeStore(sessions)
    ledger = SqlLedger(sessions)
    ch = await store.create(_duel())

    with pytest.raises(GameError) as e:
        await store.accept(ch.id, "bob", 10)
    assert e.value.code == ErrorCode.INSUFFICIENT_FUNDS
    # the failed debit leaves the duel pending
    assert not (await store.get(ch.id)).accepted

    assert await store.accept(ch.id, "carol", 0) is False  # not the recipient
    await make_user("bob2", coins=50)
    other = await store.create(_duel("alice", "bob2"))
    assert await store.accept(other.id, "bob2", 10) is True
    assert await ledger.balance("bob2") == 40
    # accepted duels cannot be declined, so no refund happens
    assert await store.decline(other.id, "alice", 10) is False
    assert await ledger.balance("alice") == 90

    assert await store.decline(ch.id, "alice", 10) is True
    assert await ledger.balance("alice") == 100
    assert await store.get(ch.id) is None


@pytest.mark.asyncio
async def test_final_score_and_payout_commit_together(sessions, make_user, monkeypatch):
    for uid in ("alice", "bob"):
        await make_user(uid, coins=0)
    store = SqlFriendChallengeStore(sessions)
    ledger = SqlLedger(sessions)
    ch = await store.create(_duel())
    await store.accept(ch.id, "bob", 0)
    await store.append_score(ch.id, _fscore("alice", 4))

    def payouts(done):
        assert done.completed and len(done.scores) == 2
        return {"bob": 20}

    async def broken(session, user_id, delta):
        raise RuntimeError("db blip")

    monkeypatch.setattr(friend_store_mod, "add_coins", broken)
    with pytest.raises(RuntimeError):
        await store.append_score(ch.id, _fscore("bob", 6), payouts)
    still_open = await store.get(ch.id)
    assert not still_open.completed and [s.player_id for s in still_open.scores] == ["alice"]

    monkeypatch.undo()
    done = await store.append_score(ch.id, _fscore("bob", 6), payouts)
    assert done.completed
    assert await ledger.balance("bob") == 20
