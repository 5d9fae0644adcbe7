"""Squad formation: level-bucketed teams of up to ``max_squad_size``.

Rules:
- A user's level is their skill level in the challenge's skill area
- Candidate squads are ``forming`` with an average level within +/- level_range
- The oldest candidate with space wins; its average is recomputed from all members
- A squad becomes ``ready`` when full; two ready squads are then linked as opponents
- A user already in an unfinished squad on the challenge gets that squad back
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.config import get_settings
from skillsquad.db.models import (
    ROLE_LEADER,
    ROLE_MEMBER,
    SQUAD_ACTIVE,
    SQUAD_FORMING,
    SQUAD_READY,
    Challenge,
    Profile,
    Squad,
    SquadMember,
)
from skillsquad.matchmaking.errors import InvalidParameters, require_ids
from skillsquad.matchmaking.events import publish_squad_matched
from skillsquad.matchmaking.linkage import pair_ready_squads
from skillsquad.matchmaking.lookups import (
    average_level,
    count_members,
    get_challenge,
    get_member_levels,
    get_skill_level,
    get_squad,
)
from skillsquad.matchmaking.naming import generate_squad_name

logger = logging.getLogger(__name__)


async def get_current_squad(db: AsyncSession, user_id: uuid.UUID, challenge_id: uuid.UUID) -> Squad | None:
    """The user's unfinished, non-bot squad on a challenge, if any."""
    result = await db.execute(
        select(Squad)
        .join(SquadMember, SquadMember.squad_id == Squad.id)
        .where(
            SquadMember.user_id == user_id,
            Squad.challenge_id == challenge_id,
            Squad.bot_mode.is_(False),
            Squad.status.in_([SQUAD_FORMING, SQUAD_READY, SQUAD_ACTIVE]),
        )
        .order_by(Squad.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _join_candidate(
    db: AsyncSession,
    user_id: uuid.UUID,
    challenge: Challenge,
    level: int,
    max_size: int,
) -> Squad | None:
    """Add the user to the first forming squad in their level bucket that has space."""
    settings = get_settings()
    result = await db.execute(
        select(Squad)
        .where(
            Squad.challenge_id == challenge.id,
            Squad.status == SQUAD_FORMING,
            Squad.average_level >= level - settings.level_range,
            Squad.average_level <= level + settings.level_range,
        )
        .order_by(Squad.created_at, Squad.id)
        .with_for_update(skip_locked=True)
        .execution_options(populate_existing=True)
    )
    candidates = list(result.scalars().all())

    for squad in candidates:
        if await count_members(db, squad.id) >= max_size:
            continue

        db.add(SquadMember(squad_id=squad.id, user_id=user_id, role=ROLE_MEMBER))
        await db.flush()

        levels = await get_member_levels(db, squad.id, challenge.skill_area_id, settings.default_level)
        squad.average_level = average_level(levels)
        squad.status = SQUAD_READY if len(levels) >= max_size else SQUAD_FORMING
        await db.flush()
        logger.info(
            "User %s joined squad %s (%d/%d, avg level %.2f)",
            user_id, squad.id, len(levels), max_size, squad.average_level,
        )
        return squad

    return None


async def _create_forming_squad(
    db: AsyncSession, user_id: uuid.UUID, challenge: Challenge, level: int,
) -> Squad:
    squad = Squad(
        challenge_id=challenge.id,
        name=generate_squad_name(),
        status=SQUAD_FORMING,
        average_level=float(level),
    )
    db.add(squad)
    await db.flush()

    db.add(SquadMember(squad_id=squad.id, user_id=user_id, role=ROLE_LEADER))
    await db.flush()
    logger.info("User %s created squad %s on challenge %s (level %d)", user_id, squad.id, challenge.id, level)
    return squad


async def _squad_member_ids(db: AsyncSession, squad_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.execute(select(SquadMember.user_id).where(SquadMember.squad_id == squad_id))
    return list(result.scalars().all())


async def match_squad(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    challenge_id: uuid.UUID | None,
    skill_area_id: uuid.UUID | None = None,
    redis: object | None = None,
) -> dict[str, Any]:
    """Place a user into a squad for a challenge. Commits on success, rolls back on failure.

    Returns ``{"squad_id", "status", "created", "message", "paired"}``.
    """
    require_ids(userId=user_id, challengeId=challenge_id)

    try:
        challenge = await get_challenge(db, challenge_id)
        if skill_area_id is not None and skill_area_id != challenge.skill_area_id:
            raise InvalidParameters("skillAreaId does not match the challenge's skill area")

        level = await get_skill_level(db, user_id, challenge.skill_area_id)
        max_size = challenge.max_squad_size or get_settings().squad_max_size

        current = await get_current_squad(db, user_id, challenge.id)
        if current is not None:
            await db.commit()
            return {
                "squad_id": current.id,
                "status": current.status,
                "created": False,
                "message": "Already a member of this squad",
                "paired": None,
            }

        squad = await _join_candidate(db, user_id, challenge, level, max_size)
        created = squad is None
        if squad is None:
            squad = await _create_forming_squad(db, user_id, challenge, level)

        paired = await pair_ready_squads(db, challenge.id)
        pairings = []
        if paired:
            for own, other in (paired, paired[::-1]):
                for member_id in await _squad_member_ids(db, own.id):
                    pairings.append((member_id, own.id, other.id))

        squad_id = squad.id
        squad_status = squad.status
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if pairings:
        await publish_squad_matched(redis, challenge_id, pairings, kind="squad")

    return {
        "squad_id": squad_id,
        "status": squad_status,
        "created": created,
        "message": "Successfully matched to squad",
        "paired": (paired[0].id, paired[1].id) if paired else None,
    }


async def get_squad_detail(
    db: AsyncSession, squad_id: uuid.UUID,
) -> tuple[Squad, list[tuple[SquadMember, Profile]]]:
    """Get a squad with its members and their profiles (leader first)."""
    squad = await get_squad(db, squad_id)
    result = await db.execute(
        select(SquadMember, Profile)
        .join(Profile, Profile.id == SquadMember.user_id)
        .where(SquadMember.squad_id == squad.id)
        .order_by((SquadMember.role == ROLE_LEADER).desc(), SquadMember.joined_at)
    )
    return squad, [(member, profile) for member, profile in result.all()]
