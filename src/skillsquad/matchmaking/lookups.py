"""Read-side helpers shared by the matchmaking handlers.

Levels are per skill area: a user's level for a challenge is their
``user_skill_levels`` row for the challenge's skill area.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.db.models import Challenge, Profile, SkillLevel, Squad, SquadMember
from skillsquad.matchmaking.errors import NotFound


async def get_challenge(db: AsyncSession, challenge_id: uuid.UUID) -> Challenge:
    """Get a challenge by ID."""
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFound("Challenge not found")
    return challenge


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    """Get a profile by ID."""
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFound("User profile not found")
    return profile


async def get_squad(db: AsyncSession, squad_id: uuid.UUID) -> Squad:
    """Get a squad by ID."""
    squad = await db.get(Squad, squad_id, populate_existing=True)
    if squad is None:
        raise NotFound("Squad not found")
    return squad


async def get_skill_level(db: AsyncSession, user_id: uuid.UUID, skill_area_id: uuid.UUID) -> int:
    """Return the user's level in a skill area. Raises NotFound if never assessed."""
    result = await db.execute(
        select(SkillLevel.level).where(
            SkillLevel.user_id == user_id,
            SkillLevel.skill_area_id == skill_area_id,
        )
    )
    level = result.scalar_one_or_none()
    if level is None:
        raise NotFound("User skill level not found")
    return level


async def get_member_levels(
    db: AsyncSession,
    squad_id: uuid.UUID,
    skill_area_id: uuid.UUID,
    default_level: int = 1,
) -> list[int]:
    """Levels of every current squad member in one skill area.

    Members without a skill level row count as ``default_level``.
    """
    result = await db.execute(
        select(func.coalesce(SkillLevel.level, default_level))
        .select_from(SquadMember)
        .outerjoin(
            SkillLevel,
            (SkillLevel.user_id == SquadMember.user_id) & (SkillLevel.skill_area_id == skill_area_id),
        )
        .where(SquadMember.squad_id == squad_id)
    )
    return [int(level) for level in result.scalars().all()]


async def count_members(db: AsyncSession, squad_id: uuid.UUID) -> int:
    """Number of members currently in a squad."""
    result = await db.execute(
        select(func.count(SquadMember.id)).where(SquadMember.squad_id == squad_id)
    )
    return result.scalar_one()


def average_level(levels: Sequence[int | float]) -> float:
    """Arithmetic mean of member levels."""
    if not levels:
        raise ValueError("Cannot average an empty squad")
    return sum(levels) / len(levels)
