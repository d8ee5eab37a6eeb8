from __future__ import annotations
import structlog
from fastapi import APIRouter, Depends
from rq import Queue
from castncatch.auth_deps import require_cron_token
from castncatch.deps import get_queue
from castncatch.jobs import scheduled
from castncatch.schemas.jobs import JobEnqueued

log = structlog.get_logger()

# Scheduler-facing triggers; the work runs on the rq worker
router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_token)])

def _enqueue(q: Queue, func) -> JobEnqueued:
    job = q.enqueue(func, job_timeout=540)
    log.info("job_enqueued", job=func.__name__, job_id=job.id)
    return JobEnqueued(job=func.__name__, job_id=job.id)

@router.post("/challenges/hourly", response_model=JobEnqueued, status_code=202)
async def trigger_hourly_challenge(q: Queue = Depends(get_queue)):
    return _enqueue(q, scheduled.create_hourly_challenge)

@router.post("/challenges/proTournament", response_model=JobEnqueued, status_code=202)
async def trigger_pro_tournament(q: Queue = Depends(get_queue)):
    return _enqueue(q, scheduled.create_pro_tournament)

@router.post("/sweep/hourly", response_model=JobEnqueued, status_code=202)
async def trigger_sweep_hourly(q: Queue = Depends(get_queue)):
    return _enqueue(q, scheduled.sweep_expired_challenges)

@router.post("/sweep/proTournament", response_model=JobEnqueued, status_code=202)
async def trigger_sweep_pro(q: Queue = Depends(get_queue)):
    return _enqueue(q, scheduled.sweep_expired_pro_tournaments)

@router.post("/leaderboard", response_model=JobEnqueued, status_code=202)
async def trigger_leaderboard(q: Queue = Depends(get_queue)):
    return _enqueue(q, scheduled.update_leaderboard)
