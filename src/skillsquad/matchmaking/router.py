"""Matchmaking API.

Callable functions (4): find-1v1-opponent, create-1v1-match, match-squad,
create-bot-squad-match. REST (3): queue status, leave queue, squad detail.
Service errors are rendered by the global handler as ``{"error": ...}``.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.dependencies import get_db, get_redis_dep
from skillsquad.matchmaking.bot_service import create_bot_squad_match
from skillsquad.matchmaking.duel_service import (
    create_duel_match,
    find_duel_opponent,
    get_queue_entry,
    leave_queue,
)
from skillsquad.matchmaking.errors import NotFound
from skillsquad.matchmaking.events import publish_squad_matched
from skillsquad.matchmaking.schemas import (
    BotMatchRequest,
    BotMatchResponse,
    CreateDuelRequest,
    DuelCreatedResponse,
    DuelMatchedResponse,
    DuelWaitingResponse,
    FindOpponentRequest,
    MatchSquadRequest,
    MatchSquadResponse,
    QueueEntryResponse,
    SquadMemberResponse,
    SquadResponse,
)
from skillsquad.matchmaking.squad_service import get_squad_detail, match_squad

functions_router = APIRouter(prefix="/functions/v1", tags=["Matchmaking"])
router = APIRouter(prefix="/api/v1", tags=["Matchmaking"])

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


# ── Callable functions ──


@functions_router.options("/{function_name}", include_in_schema=False)
async def preflight(function_name: str) -> Response:
    """Bare pre-flight requests get an empty success."""
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)


@functions_router.post(
    "/find-1v1-opponent",
    response_model=DuelMatchedResponse | DuelWaitingResponse,
)
async def find_1v1_opponent_endpoint(
    body: FindOpponentRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Join the duel queue and pair with the oldest waiting user, if any. Safe to poll."""
    result = await find_duel_opponent(db, body.user_id, body.challenge_id, redis)
    if result["status"] == "matched":
        return DuelMatchedResponse(
            squad_id=result["squad_id"],
            opponent_squad_id=result["opponent_squad_id"],
        )
    return DuelWaitingResponse(
        message=result["message"],
        poll_interval_seconds=result["poll_interval_seconds"],
        timeout_seconds=result["timeout_seconds"],
    )


@functions_router.post("/create-1v1-match", response_model=DuelCreatedResponse)
async def create_1v1_match_endpoint(
    body: CreateDuelRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Create two linked one-member squads for an explicit pair of users."""
    squad, opponent_squad = await create_duel_match(db, body.challenge_id, body.user1_id, body.user2_id)
    await db.commit()
    await publish_squad_matched(
        redis,
        squad.challenge_id,
        [
            (body.user1_id, squad.id, opponent_squad.id),
            (body.user2_id, opponent_squad.id, squad.id),
        ],
        kind="duel",
    )
    return DuelCreatedResponse(squad_id=squad.id, opponent_squad_id=opponent_squad.id)


@functions_router.post("/match-squad", response_model=MatchSquadResponse)
async def match_squad_endpoint(
    body: MatchSquadRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Join (or start) a level-matched squad for a challenge."""
    result = await match_squad(db, body.user_id, body.challenge_id, body.skill_area_id, redis)
    return MatchSquadResponse(
        squad_id=result["squad_id"],
        message=result["message"],
        status=result["status"],
    )


@functions_router.post("/create-bot-squad-match", response_model=BotMatchResponse)
async def create_bot_squad_match_endpoint(
    body: BotMatchRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Start a practice match: caller + 2 bots vs 3 bots."""
    result = await create_bot_squad_match(db, body.user_id, body.challenge_id, redis)
    return BotMatchResponse(
        user_squad_id=result["user_squad_id"],
        opponent_squad_id=result["opponent_squad_id"],
    )


# ── Queue & squads ──


@router.get("/match-queue/{challenge_id}/{user_id}", response_model=QueueEntryResponse)
async def get_queue_entry_endpoint(
    challenge_id: uuid.UUID,
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Current queue entry for a user, for clients watching their own row."""
    entry = await get_queue_entry(db, user_id, challenge_id)
    if entry is None:
        raise NotFound("Queue entry not found")
    return QueueEntryResponse(
        user_id=entry.user_id,
        challenge_id=entry.challenge_id,
        status=entry.status,
        squad_id=entry.squad_id,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


@router.delete("/match-queue/{challenge_id}/{user_id}", status_code=204)
async def leave_queue_endpoint(
    challenge_id: uuid.UUID,
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Stop searching for a duel. Only waiting entries are removed."""
    if not await leave_queue(db, user_id, challenge_id):
        raise NotFound("No waiting queue entry")
    return Response(status_code=204)


@router.get("/squads/{squad_id}", response_model=SquadResponse)
async def get_squad_endpoint(
    squad_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Squad with members and opponent link."""
    squad, members = await get_squad_detail(db, squad_id)
    return SquadResponse(
        id=squad.id,
        challenge_id=squad.challenge_id,
        name=squad.name,
        status=squad.status,
        average_level=squad.average_level,
        opponent_squad_id=squad.opponent_squad_id,
        bot_mode=squad.bot_mode,
        total_score=squad.total_score,
        members=[
            SquadMemberResponse(
                user_id=member.user_id,
                username=profile.username,
                display_name=profile.display_name,
                avatar_url=profile.avatar_url,
                role=member.role,
            )
            for member, profile in members
        ],
    )
