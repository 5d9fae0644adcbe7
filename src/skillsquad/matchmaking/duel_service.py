"""Duel (1v1) pairing over the match queue.

Flow for one call:
1. A caller whose entry is already matched (another caller claimed them)
   gets the existing match back.
2. The caller's entry is upserted to ``waiting`` and committed, so it
   survives any failure further down.
3. In a second transaction the oldest other waiting row is picked, both
   rows are locked in id order, and both are claimed with a conditional
   update before the two duel squads are created and linked.

Queue position is kept across polls: re-upserting a still-waiting entry
does not reset its ``created_at``.

A matched entry stops counting as the current duel once the challenge time
limit plus the search timeout has passed since the claim, so a user whose
duel was never completed can search again.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta, timezone
from typing import Any

from sqlalchemy import case, delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.config import get_settings
from skillsquad.db.models import (
    QUEUE_MATCHED,
    QUEUE_WAITING,
    ROLE_LEADER,
    SQUAD_ACTIVE,
    SQUAD_COMPLETED,
    MatchQueueEntry,
    SkillLevel,
    Squad,
    SquadMember,
    utcnow,
)
from skillsquad.matchmaking.errors import InvalidParameters, StoreUnavailable, require_ids
from skillsquad.matchmaking.events import publish_squad_matched
from skillsquad.matchmaking.linkage import link_opponents
from skillsquad.matchmaking.lookups import get_challenge, get_profile
from skillsquad.matchmaking.naming import generate_squad_name

logger = logging.getLogger(__name__)

WAITING_MESSAGE = "Searching for opponent..."


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT construct supporting ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Upsert not supported for dialect {dialect!r}")


def _waiting() -> dict[str, Any]:
    settings = get_settings()
    return {
        "status": QUEUE_WAITING,
        "message": WAITING_MESSAGE,
        "poll_interval_seconds": settings.duel_poll_interval_seconds,
        "timeout_seconds": settings.duel_search_timeout_seconds,
    }


async def get_queue_entry(
    db: AsyncSession, user_id: uuid.UUID, challenge_id: uuid.UUID,
) -> MatchQueueEntry | None:
    """Get a user's queue entry for a challenge, reloaded from the database."""
    result = await db.execute(
        select(MatchQueueEntry)
        .where(
            MatchQueueEntry.user_id == user_id,
            MatchQueueEntry.challenge_id == challenge_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _is_stale(entry: MatchQueueEntry, time_limit: int | None) -> bool:
    """Whether a matched entry's duel can no longer be in progress."""
    claimed_at = entry.updated_at
    if claimed_at.tzinfo is None:
        claimed_at = claimed_at.replace(tzinfo=timezone.utc)
    horizon = (time_limit or 0) + get_settings().duel_search_timeout_seconds
    return utcnow() - claimed_at > timedelta(seconds=horizon)


async def _existing_match(
    db: AsyncSession, user_id: uuid.UUID, challenge_id: uuid.UUID, time_limit: int | None,
) -> dict[str, Any] | None:
    """Return the caller's current duel if their entry is matched to an unfinished squad."""
    entry = await get_queue_entry(db, user_id, challenge_id)
    if entry is None or entry.status != QUEUE_MATCHED or entry.squad_id is None:
        return None
    if _is_stale(entry, time_limit):
        logger.info("Matched entry for %s on challenge %s expired, requeueing", user_id, challenge_id)
        return None

    squad = await db.get(Squad, entry.squad_id, populate_existing=True)
    if squad is None or squad.status == SQUAD_COMPLETED:
        return None

    return {
        "status": QUEUE_MATCHED,
        "squad_id": squad.id,
        "opponent_squad_id": squad.opponent_squad_id,
    }


async def _upsert_waiting(db: AsyncSession, user_id: uuid.UUID, challenge_id: uuid.UUID) -> None:
    now = utcnow()
    insert = _insert_for(db)
    stmt = insert(MatchQueueEntry).values(
        id=uuid.uuid4(),
        user_id=user_id,
        challenge_id=challenge_id,
        status=QUEUE_WAITING,
        squad_id=None,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "challenge_id"],
        set_={
            "status": QUEUE_WAITING,
            "squad_id": None,
            "created_at": case(
                (MatchQueueEntry.status == QUEUE_WAITING, MatchQueueEntry.created_at),
                else_=stmt.excluded.created_at,
            ),
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await db.execute(stmt)


async def _duel_level(db: AsyncSession, user_id: uuid.UUID, skill_area_id: uuid.UUID) -> int:
    result = await db.execute(
        select(SkillLevel.level).where(
            SkillLevel.user_id == user_id,
            SkillLevel.skill_area_id == skill_area_id,
        )
    )
    level = result.scalar_one_or_none()
    return level if level is not None else get_settings().default_level


async def create_duel_match(
    db: AsyncSession,
    challenge_id: uuid.UUID,
    user1_id: uuid.UUID,
    user2_id: uuid.UUID,
) -> tuple[Squad, Squad]:
    """Create two one-member squads linked as opponents. Flushes, does not commit."""
    require_ids(challengeId=challenge_id, user1Id=user1_id, user2Id=user2_id)
    if user1_id == user2_id:
        raise InvalidParameters("A user cannot duel themselves")

    challenge = await get_challenge(db, challenge_id)
    squads = []
    for user_id in (user1_id, user2_id):
        profile = await get_profile(db, user_id)
        squad = Squad(
            challenge_id=challenge.id,
            name=generate_squad_name(prefix="Duel"),
            status=SQUAD_ACTIVE,
            average_level=float(await _duel_level(db, user_id, challenge.skill_area_id)),
        )
        db.add(squad)
        await db.flush()
        db.add(SquadMember(squad_id=squad.id, user_id=profile.id, role=ROLE_LEADER))
        squads.append(squad)

    squad_1, squad_2 = squads
    await link_opponents(db, squad_1, squad_2)
    logger.info("Duel created on challenge %s: %s vs %s", challenge.id, user1_id, user2_id)
    return squad_1, squad_2


async def _claim_and_match(
    db: AsyncSession, user_id: uuid.UUID, challenge_id: uuid.UUID, time_limit: int | None,
) -> dict[str, Any]:
    own = await get_queue_entry(db, user_id, challenge_id)
    if own is None or own.status != QUEUE_WAITING:
        # Claimed (or removed) by a concurrent call since our upsert
        await db.rollback()
        return await _existing_match(db, user_id, challenge_id, time_limit) or _waiting()

    opp_result = await db.execute(
        select(MatchQueueEntry)
        .where(
            MatchQueueEntry.challenge_id == challenge_id,
            MatchQueueEntry.status == QUEUE_WAITING,
            MatchQueueEntry.user_id != user_id,
        )
        .order_by(MatchQueueEntry.created_at, MatchQueueEntry.user_id)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    opponent = opp_result.scalar_one_or_none()
    if opponent is None:
        await db.commit()
        logger.info("No opponent yet for %s on challenge %s", user_id, challenge_id)
        return _waiting()

    # Id order, so two callers that picked each other queue on the same lock
    await db.execute(
        select(MatchQueueEntry.id)
        .where(MatchQueueEntry.id.in_([own.id, opponent.id]))
        .order_by(MatchQueueEntry.id)
        .with_for_update()
    )
    claimed = await db.execute(
        update(MatchQueueEntry)
        .where(
            MatchQueueEntry.id.in_([own.id, opponent.id]),
            MatchQueueEntry.status == QUEUE_WAITING,
        )
        .values(status=QUEUE_MATCHED, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 2:
        await db.rollback()
        logger.info("Lost claim race for %s on challenge %s", user_id, challenge_id)
        return await _existing_match(db, user_id, challenge_id, time_limit) or _waiting()

    squad, opponent_squad = await create_duel_match(db, challenge_id, user_id, opponent.user_id)

    own.status = QUEUE_MATCHED
    own.squad_id = squad.id
    opponent.status = QUEUE_MATCHED
    opponent.squad_id = opponent_squad.id
    await db.commit()

    return {
        "status": QUEUE_MATCHED,
        "squad_id": squad.id,
        "opponent_squad_id": opponent_squad.id,
        "opponent_user_id": opponent.user_id,
    }


async def find_duel_opponent(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    challenge_id: uuid.UUID | None,
    redis: object | None = None,
) -> dict[str, Any]:
    """Queue the caller for a duel and pair them with the oldest waiting user.

    Returns ``{"status": "matched", "squad_id", "opponent_squad_id"}`` or a
    ``waiting`` dict. Commits its own transactions.
    """
    require_ids(userId=user_id, challengeId=challenge_id)
    challenge = await get_challenge(db, challenge_id)
    time_limit = challenge.time_limit
    await get_profile(db, user_id)

    existing = await _existing_match(db, user_id, challenge_id, time_limit)
    if existing:
        return existing

    try:
        await _upsert_waiting(db, user_id, challenge_id)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to join match queue for %s: %s", user_id, e)
        raise StoreUnavailable("Failed to join match queue") from e

    try:
        result = await _claim_and_match(db, user_id, challenge_id, time_limit)
    except Exception:
        # Both queue entries stay waiting; the caller retries on the next poll
        await db.rollback()
        raise

    opponent_user_id = result.pop("opponent_user_id", None)
    if opponent_user_id is not None:
        await publish_squad_matched(
            redis,
            challenge_id,
            [
                (user_id, result["squad_id"], result["opponent_squad_id"]),
                (opponent_user_id, result["opponent_squad_id"], result["squad_id"]),
            ],
            kind="duel",
        )
    return result


async def leave_queue(db: AsyncSession, user_id: uuid.UUID, challenge_id: uuid.UUID) -> bool:
    """Remove a waiting queue entry. Matched entries are kept. Returns True if removed."""
    result = await db.execute(
        delete(MatchQueueEntry)
        .where(
            MatchQueueEntry.user_id == user_id,
            MatchQueueEntry.challenge_id == challenge_id,
            MatchQueueEntry.status == QUEUE_WAITING,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    removed = result.rowcount > 0
    if removed:
        logger.info("User %s left the queue for challenge %s", user_id, challenge_id)
    return removed
