"""Challenge submissions and squad scoring.

Scoring is flat: every non-blank answer is worth ``POINTS_PER_ANSWER``.
A squad's ``total_score`` is the sum of its members' submissions and the
squad is ``completed`` once every member has submitted. In bot mode only
the human leader submits, which completes the squad and its bot opponent.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.db.models import (
    ROLE_LEADER,
    SQUAD_COMPLETED,
    ChallengeSubmission,
    Squad,
    SquadMember,
)
from skillsquad.matchmaking.errors import AlreadySubmitted, InvalidParameters, require_ids
from skillsquad.matchmaking.lookups import count_members, get_challenge, get_squad

logger = logging.getLogger(__name__)

POINTS_PER_ANSWER = 10


def score_answers(answers: dict[str, Any]) -> int:
    """Points for a set of answers: one flat award per non-blank answer."""
    answered = sum(1 for value in answers.values() if value is not None and str(value).strip())
    return answered * POINTS_PER_ANSWER


async def _get_membership(db: AsyncSession, squad_id: uuid.UUID, user_id: uuid.UUID) -> SquadMember | None:
    result = await db.execute(
        select(SquadMember).where(
            SquadMember.squad_id == squad_id,
            SquadMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _refresh_squad_score(db: AsyncSession, squad: Squad) -> int:
    """Recompute total_score from submissions. Returns the number of submissions."""
    result = await db.execute(
        select(func.coalesce(func.sum(ChallengeSubmission.score), 0), func.count(ChallengeSubmission.id))
        .where(ChallengeSubmission.squad_id == squad.id)
    )
    total, submitted = result.one()
    squad.total_score = int(total)
    return int(submitted)


async def submit_challenge(
    db: AsyncSession,
    challenge_id: uuid.UUID,
    squad_id: uuid.UUID | None,
    user_id: uuid.UUID | None,
    answers: dict[str, Any],
    time_taken: int | None = None,
) -> ChallengeSubmission:
    """Record a member's answers, update the squad score, and complete finished squads."""
    require_ids(squadId=squad_id, userId=user_id)

    try:
        challenge = await get_challenge(db, challenge_id)
        squad = await get_squad(db, squad_id)
        if squad.challenge_id != challenge.id:
            raise InvalidParameters("Squad does not belong to this challenge")

        membership = await _get_membership(db, squad.id, user_id)
        if membership is None:
            raise InvalidParameters("User is not a member of this squad")

        existing = await db.execute(
            select(ChallengeSubmission.id).where(
                ChallengeSubmission.squad_id == squad.id,
                ChallengeSubmission.user_id == user_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadySubmitted("Answers already submitted for this squad")

        submission = ChallengeSubmission(
            challenge_id=challenge.id,
            squad_id=squad.id,
            user_id=user_id,
            answers=answers,
            score=score_answers(answers),
            time_taken=time_taken,
        )
        db.add(submission)
        await db.flush()

        submitted = await _refresh_squad_score(db, squad)
        if squad.bot_mode and membership.role == ROLE_LEADER:
            squad.status = SQUAD_COMPLETED
            if squad.opponent_squad_id is not None:
                opponent = await get_squad(db, squad.opponent_squad_id)
                opponent.status = SQUAD_COMPLETED
        elif submitted >= await count_members(db, squad.id):
            squad.status = SQUAD_COMPLETED

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Submission by %s for squad %s scored %d (squad total %d, status %s)",
        user_id, squad_id, submission.score, squad.total_score, squad.status,
    )
    return submission
