from __future__ import annotations
import asyncio
import pytest
from castncatch.errors import ErrorCode, GameError
from castncatch.services.friend_challenges import duel_winner, settlement_credits


async def _accepted(engine, wager=50, deduct=None, goal=None, store=None):
    ch = await engine.create("alice", "bob", wager, deduct)
    if goal and store is not None:
        store.challenges[ch.id] = store.challenges[ch.id].model_copy(update={"goal": goal})
    await engine.accept(ch.id, "bob")
    return ch


@pytest.mark.asyncio
async def test_create_escrows_wager_and_notifies_recipient(friend_engine, friend_store, ledger, notifier):
    ch = await friend_engine.create("alice", "bob", 40)
    assert ch.wager_escrowed and not ch.accepted and not ch.completed and ch.scores == []
    assert ledger.coins("alice") == 60
    assert friend_store.challenges[ch.id].recipient_id == "bob"
    assert notifier.sent == [("bob", "You received a challenge from Alice", "challengeRequests", ch.id)]


@pytest.mark.asyncio
async def test_create_without_escrow_leaves_balance(friend_engine, ledger):
    ch = await friend_engine.create("alice", "bob", 40, deduct=False)
    assert not ch.wager_escrowed
    assert ledger.coins("alice") == 100


@pytest.mark.asyncio
@pytest.mark.parametrize("friend, wager, code", [
    ("bob", None, ErrorCode.INVALID_INPUT),
    ("bob", -5, ErrorCode.INVALID_INPUT),
    ("alice", 10, ErrorCode.INVALID_INPUT),
    ("ghost", 10, ErrorCode.NOT_FOUND),
    ("bob", 500, ErrorCode.INSUFFICIENT_FUNDS),
])
async def test_create_validation(friend_engine, ledger, friend, wager, code):
    with pytest.raises(GameError) as e:
        await friend_engine.create("alice", friend, wager)
    assert e.value.code == code
    assert ledger.coins("alice") == 100


@pytest.mark.asyncio
async def test_one_open_challenge_per_ordered_pair(friend_engine, ledger):
    await friend_engine.create("alice", "bob", 10)
    with pytest.raises(GameError) as e:
        await friend_engine.create("alice", "bob", 10)
    assert e.value.code == ErrorCode.ALREADY_ACTIVE
    assert ledger.coins("alice") == 90
    # the reverse direction is a different pair
    await friend_engine.create("bob", "alice", 10)


@pytest.mark.asyncio
async def test_failed_persist_refunds_stake(friend_engine, friend_store, ledger):
    async def broken(challenge):
        raise RuntimeError("db down")

    friend_store.create = broken
    with pytest.raises(RuntimeError):
        await friend_engine.create("alice", "bob", 30)
    assert ledger.coins("alice") == 100


@pytest.mark.asyncio
async def test_accept_debits_recipient_and_notifies(friend_engine, friend_store, ledger, notifier):
    ch = await friend_engine.create("alice", "bob", 25)
    assert await friend_engine.accept(ch.id, "bob") == "Success"
    assert friend_store.challenges[ch.id].accepted
    assert ledger.coins("bob") == 75
    assert ("alice", "Bob accepted your challenge!", "challengeRequests", ch.id) in notifier.sent

    with pytest.raises(GameError) as e:
        await friend_engine.accept(ch.id, "bob")
    assert e.value.code == ErrorCode.INVALID_INPUT
    assert ledger.coins("bob") == 75


@pytest.mark.asyncio
async def test_accept_checks(friend_engine, ledger, users):
    with pytest.raises(GameError) as e:
        await friend_engine.accept("missing", "bob")
    assert e.value.code == ErrorCode.NOT_FOUND

    ch = await friend_engine.create("alice", "bob", 60)
    with pytest.raises(GameError) as e:
        await friend_engine.accept(ch.id, "carol")
    assert e.value.code == ErrorCode.FORBIDDEN

    ledger._set("bob", 10)
    with pytest.raises(GameError) as e:
        await friend_engine.accept(ch.id, "bob")
    assert e.value.code == ErrorCode.INSUFFICIENT_FUNDS


@pytest.mark.asyncio
async def test_decline_refunds_and_deletes(friend_engine, friend_store, ledger, notifier):
    ch = await friend_engine.create("alice", "bob", 20)
    assert ledger.coins("alice") == 80
    with pytest.raises(GameError) as e:
        await friend_engine.decline(ch.id, "alice")
    assert e.value.code == ErrorCode.FORBIDDEN

    assert await friend_engine.decline(ch.id, "bob") == "Success"
    assert ch.id not in friend_store.challenges
    assert ledger.coins("alice") == 100
    assert ("alice", "Bob declined your challenge.", "challengeRequests", "") in notifier.sent


@pytest.mark.asyncio
async def test_decline_without_escrow_refunds_nothing(friend_engine, ledger):
    ch = await friend_engine.create("alice", "bob", 20, deduct=False)
    await friend_engine.decline(ch.id, "bob")
    assert ledger.coins("alice") == 100
    assert ledger.credits == []


@pytest.mark.asyncio
async def test_score_checks(friend_engine, friend_store):
    ch = await friend_engine.create("alice", "bob", 10)
    with pytest.raises(GameError) as e:
        await friend_engine.submit_score(ch.id, "alice", 3, 1.0)
    assert e.value.code == ErrorCode.NOT_ACCEPTED

    await friend_engine.accept(ch.id, "bob")
    with pytest.raises(GameError) as e:
        await friend_engine.submit_score(ch.id, "carol", 3, 1.0)
    assert e.value.code == ErrorCode.FORBIDDEN

    assert await friend_engine.submit_score(ch.id, "alice", 3, 1.0) == "Score saved"
    assert not friend_store.challenges[ch.id].completed
    with pytest.raises(GameError) as e:
        await friend_engine.submit_score(ch.id, "alice", 4, 1.0)
    assert e.value.code == ErrorCode.DUPLICATE_SUBMISSION

    with pytest.raises(GameError) as e:
        await friend_engine.submit_score("missing", "alice", 1, 1.0)
    assert e.value.code == ErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_winner_takes_both_stakes(friend_engine, friend_store, ledger, notifier):
    ch = await _accepted(friend_engine, wager=50, goal="Fish", store=friend_store)
    assert ledger.coins("alice") == 50 and ledger.coins("bob") == 50

    await friend_engine.submit_score(ch.id, "alice", 80, 1.0)
    await friend_engine.submit_score(ch.id, "bob", 60, 99.0)

    assert friend_store.challenges[ch.id].completed
    assert ("alice", 100) in ledger.credits
    assert not any(uid == "bob" for uid, _ in ledger.credits)
    assert ledger.coins("alice") == 150 and ledger.coins("bob") == 50
    assert "You won the friend challenge and received 100 coins." in notifier.messages_for("alice")
    assert "You lost the friend challenge and received no coins." in notifier.messages_for("bob")


@pytest.mark.asyncio
async def test_draw_refunds_both_with_escrow(friend_engine, friend_store, ledger, notifier):
    ch = await _accepted(friend_engine, wager=30, goal="Weight", store=friend_store)
    await friend_engine.submit_score(ch.id, "bob", 2, 12.0)
    await friend_engine.submit_score(ch.id, "alice", 9, 12.0)

    assert ("alice", 30) in ledger.credits and ("bob", 30) in ledger.credits
    assert ledger.coins("alice") == 100 and ledger.coins("bob") == 100
    for uid in ("alice", "bob"):
        assert notifier.messages_for(uid)[-1] == "Friend challenge was a draw!"
    draws = [n for n in notifier.sent if n[1] == "Friend challenge was a draw!"]
    assert all(cat == "friendChallengeResults" and data == ch.id for (_, _, cat, data) in draws)


@pytest.mark.asyncio
async def test_draw_without_escrow_pays_nothing(friend_engine, friend_store, ledger):
    ch = await _accepted(friend_engine, wager=30, deduct=False, goal="Fish", store=friend_store)
    await friend_engine.submit_score(ch.id, "bob", 5, 1.0)
    await friend_engine.submit_score(ch.id, "alice", 5, 2.0)
    assert ledger.credits == []
    assert ledger.coins("alice") == 100 and ledger.coins("bob") == 100


@pytest.mark.asyncio
async def test_settle_ignores_unfinished(friend_engine, friend_store, ledger):
    ch = await _accepted(friend_engine, wager=10)
    await friend_engine.submit_score(ch.id, "alice", 5, 1.0)
    assert await friend_engine.settle(friend_store.challenges[ch.id]) is None
    assert ledger.credits == []


@pytest.mark.asyncio
async def test_get_and_list(friend_engine):
    ch = await friend_engine.create("alice", "bob", 5)
    other = await friend_engine.create("carol", "alice", 5)

    assert (await friend_engine.get(ch.id, "bob")).id == ch.id
    with pytest.raises(GameError) as e:
        await friend_engine.get(ch.id, "carol")
    assert e.value.code == ErrorCode.FORBIDDEN

    lists = await friend_engine.list_open("alice")
    assert [c.id for c in lists.created] == [ch.id]
    assert [c.id for c in lists.received] == [other.id]


@pytest.mark.asyncio
async def test_decline_after_accept_is_rejected(friend_engine, friend_store, ledger):
    ch = await friend_engine.create("alice", "bob", 30)
    await friend_engine.accept(ch.id, "bob")

    with pytest.raises(GameError) as e:
        await friend_engine.decline(ch.id, "bob")
    assert e.value.code == ErrorCode.INVALID_INPUT
    # both stakes stay in the duel
    assert ch.id in friend_store.challenges
    assert ledger.coins("alice") == 70 and ledger.coins("bob") == 70


@pytest.mark.asyncio
async def test_concurrent_accepts_take_one_stake(friend_engine, ledger):
    ch = await friend_engine.create("alice", "bob", 25)

    results = await asyncio.gather(
        friend_engine.accept(ch.id, "bob"), friend_engine.accept(ch.id, "bob"), return_exceptions=True,
    )

    assert results.count("Success") == 1
    [err] = [r for r in results if isinstance(r, GameError)]
    assert err.code == ErrorCode.INVALID_INPUT
    assert ledger.debits.count(("bob", 25)) == 1
    assert ledger.coins("bob") == 75


@pytest.mark.asyncio
async def test_concurrent_declines_refund_once(friend_engine, ledger):
    ch = await friend_engine.create("alice", "bob", 20)

    results = await asyncio.gather(
        friend_engine.decline(ch.id, "bob"), friend_engine.decline(ch.id, "bob"), return_exceptions=True,
    )

    assert results.count("Success") == 1
    assert ledger.credits == [("alice", 20)]
    assert ledger.coins("alice") == 100


@pytest.mark.asyncio
async def test_failed_payout_rolls_back_final_score(friend_engine, friend_store, ledger, notifier):
    ch = await _accepted(friend_engine, wager=50, goal="Fish", store=friend_store)
    await friend_engine.submit_score(ch.id, "alice", 80, 1.0)

    ledger.fail_credit_for = {"alice"}
    with pytest.raises(RuntimeError):
        await friend_engine.submit_score(ch.id, "bob", 60, 1.0)

    stored = friend_store.challenges[ch.id]
    assert not stored.completed and [s.player_id for s in stored.scores] == ["alice"]
    assert ledger.coins("alice") == 50 and ledger.coins("bob") == 50
    assert notifier.messages_for("bob") == []

    ledger.fail_credit_for = set()
    assert await friend_engine.submit_score(ch.id, "bob", 60, 1.0) == "Score saved"
    assert friend_store.challenges[ch.id].completed
    assert ledger.credits == [("alice", 100)]
    assert ledger.coins("alice") == 150


def test_settlement_credits():
    from castncatch.records import FriendChallengeRecord, FriendScoreRecord, utcnow

    def duel(a, b, wager=40):
        scores = [
            FriendScoreRecord(player_id=p, player_name=p, fish_caught=f, total_weight=1.0, date=utcnow())
            for p, f in (("alice", a), ("bob", b))
        ]
        return FriendChallengeRecord(
            id="d1", challenger_id="alice", recipient_id="bob", wager=wager,
            goal="Fish", location="1", start_date=utcnow(), scores=scores,
        )

    assert settlement_credits(duel(3, 7), deduct=True) == {"bob": 80}
    assert settlement_credits(duel(3, 3), deduct=True) == {"alice": 40, "bob": 40}
    assert settlement_credits(duel(3, 3), deduct=False) == {}
    assert settlement_credits(duel(9, 1, wager=0), deduct=True) == {}
    assert duel_winner(duel(9, 1)) == "alice"
