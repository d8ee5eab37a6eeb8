"""Timer-triggered jobs. Each is a sync RQ entry point running one coroutine.

Push deliveries are drained and the engine's connection pool is disposed
before the event loop closes.
"""
from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, TypeVar
import structlog
from castncatch.db import SessionLocal, engine
from castncatch.deps import build_notifier, build_ranked_engine
from castncatch.logging_setup import configure_logging
from castncatch.services.leaderboard import update_leaderboard as _update_leaderboard
from castncatch.services.notifier import SqlNotifier

# the rq worker imports this module without going through main
configure_logging()
log = structlog.get_logger()

T = TypeVar("T")


def _run(work: Callable[[SqlNotifier], Awaitable[T]]) -> T:
    async def main() -> T:
        notifier = build_notifier()
        try:
            return await work(notifier)
        except Exception:
            log.error("job_failed", exc_info=True)
            raise
        finally:
            await notifier.drain()
            await engine.dispose()
    return asyncio.run(main())


def create_hourly_challenge() -> str:
    async def work(notifier: SqlNotifier) -> str:
        ch = await build_ranked_engine("hourly", notifier).create_challenge()
        return ch.id
    return _run(work)


def create_pro_tournament() -> str:
    async def work(notifier: SqlNotifier) -> str:
        ch = await build_ranked_engine("proTournament", notifier).create_challenge()
        return ch.id
    return _run(work)


def sweep_expired_challenges() -> list[str]:
    return _run(lambda notifier: build_ranked_engine("hourly", notifier).sweep_expired())


def sweep_expired_pro_tournaments() -> list[str]:
    return _run(lambda notifier: build_ranked_engine("proTournament", notifier).sweep_expired())


def update_leaderboard() -> int:
    async def work(notifier: SqlNotifier) -> int:
        async with SessionLocal() as session, session.begin():
            entries = await _update_leaderboard(session)
        return len(entries)
    return _run(work)


JOBS: dict[str, Callable[[], object]] = {
    "create_hourly_challenge": create_hourly_challenge,
    "create_pro_tournament": create_pro_tournament,
    "sweep_expired_challenges": sweep_expired_challenges,
    "sweep_expired_pro_tournaments": sweep_expired_pro_tournaments,
    "update_leaderboard": update_leaderboard,
}
