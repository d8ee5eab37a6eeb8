from __future__ import annotations
from fastapi import APIRouter, Depends
from castncatch.auth_deps import get_current_user_id
from castncatch.deps import get_ranked_engine
from castncatch.schemas.challenge import ChallengePublic, ScoreboardPublic, ScoreLookup, SubmitScoreRequest
from castncatch.schemas.common import ActionResult
from castncatch.services.ranked_challenges import RankedChallengeEngine

# kind: hourly | proTournament (resolved by get_ranked_engine)
router = APIRouter(prefix="/challenges/{kind}", tags=["challenges"])

@router.get("", response_model=list[ChallengePublic])
async def list_active(
    engine: RankedChallengeEngine = Depends(get_ranked_engine),
    user_id: str = Depends(get_current_user_id),
):
    return await engine.list_active()

@router.get("/{challenge_id}/score", response_model=ScoreLookup)
async def get_my_score(
    challenge_id: str,
    engine: RankedChallengeEngine = Depends(get_ranked_engine),
    user_id: str = Depends(get_current_user_id),
):
    return ScoreLookup(score=await engine.get_score(challenge_id, user_id))

@router.get("/{challenge_id}/scores", response_model=ScoreboardPublic)
async def get_scores(
    challenge_id: str,
    engine: RankedChallengeEngine = Depends(get_ranked_engine),
    user_id: str = Depends(get_current_user_id),
):
    board = await engine.get_scores(challenge_id, user_id)
    return ScoreboardPublic(scores=board.scores, individual_score=board.individual_score)

@router.post("/{challenge_id}/scores", response_model=ActionResult, status_code=201)
async def submit_score(
    challenge_id: str,
    payload: SubmitScoreRequest,
    engine: RankedChallengeEngine = Depends(get_ranked_engine),
    user_id: str = Depends(get_current_user_id),
):
    result = await engine.submit_score(challenge_id, user_id, payload.fish_caught, payload.total_weight)
    return ActionResult(result=result)
