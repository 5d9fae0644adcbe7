"""Challenge API endpoints: 1 route."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.challenges.schemas import SubmissionResponse, SubmitChallengeRequest
from skillsquad.challenges.submission_service import submit_challenge
from skillsquad.dependencies import get_db
from skillsquad.matchmaking.lookups import get_squad

router = APIRouter(prefix="/api/v1", tags=["Challenges"])


@router.post(
    "/challenges/{challenge_id}/submissions",
    response_model=SubmissionResponse,
    status_code=201,
)
async def submit_challenge_endpoint(
    challenge_id: uuid.UUID,
    body: SubmitChallengeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Submit a squad member's answers for a challenge."""
    submission = await submit_challenge(
        db, challenge_id, body.squad_id, body.user_id, body.answers, body.time_taken,
    )
    squad = await get_squad(db, submission.squad_id)
    return SubmissionResponse(
        id=submission.id,
        challenge_id=submission.challenge_id,
        squad_id=submission.squad_id,
        user_id=submission.user_id,
        score=submission.score,
        time_taken=submission.time_taken,
        submitted_at=submission.submitted_at,
        squad_total_score=squad.total_score,
        squad_status=squad.status,
    )
