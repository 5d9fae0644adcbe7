"""Bot-filled practice matches: caller + 2 bots vs 3 bots.

Both squads have three members, so the split is fixed rather than
configured. Squad averages use skill-area levels, like squad formation;
bots without a level in the challenge's area count as ``default_level``.
"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.config import get_settings
from skillsquad.db.models import (
    ROLE_LEADER,
    ROLE_MEMBER,
    SQUAD_ACTIVE,
    Challenge,
    Profile,
    Squad,
    SquadMember,
)
from skillsquad.matchmaking.errors import InsufficientBots, require_ids
from skillsquad.matchmaking.events import publish_squad_matched
from skillsquad.matchmaking.linkage import link_opponents
from skillsquad.matchmaking.lookups import average_level, get_challenge, get_member_levels, get_profile

logger = logging.getLogger(__name__)

USER_TEAM_BOTS = 2
OPPONENT_BOTS = 3


async def get_eligible_bots(db: AsyncSession, user_id: uuid.UUID) -> list[Profile]:
    """Profiles that may stand in as bots for this caller.

    Every profile except the caller, narrowed to usernames starting with
    ``bot_username_prefix`` when one is configured.
    """
    settings = get_settings()
    q = select(Profile).where(Profile.id != user_id)
    if settings.bot_username_prefix:
        q = q.where(Profile.username.startswith(settings.bot_username_prefix, autoescape=True))
    q = q.order_by(Profile.username).limit(settings.bot_pool_limit)

    result = await db.execute(q)
    return list(result.scalars().all())


def pick_bots(pool: list[Profile], count: int, rng: random.Random | None = None) -> list[Profile]:
    """Uniform random selection of ``count`` distinct bots."""
    if len(pool) < count:
        raise InsufficientBots("Not enough bot profiles available")
    return (rng or random).sample(pool, count)


async def _create_bot_squad(
    db: AsyncSession, challenge: Challenge, name: str, members: list[tuple[Profile, str]],
) -> Squad:
    """Create an active bot-mode squad. Its average uses the same skill-area levels as squad formation."""
    default_level = get_settings().default_level
    squad = Squad(
        challenge_id=challenge.id,
        name=name,
        status=SQUAD_ACTIVE,
        bot_mode=True,
        average_level=float(default_level),
    )
    db.add(squad)
    await db.flush()

    for profile, role in members:
        db.add(SquadMember(squad_id=squad.id, user_id=profile.id, role=role))
    await db.flush()

    squad.average_level = average_level(
        await get_member_levels(db, squad.id, challenge.skill_area_id, default_level)
    )
    return squad


async def create_bot_squad_match(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    challenge_id: uuid.UUID | None,
    redis: object | None = None,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Create a practice match against bots. Commits on success, rolls back on failure.

    Returns ``{"user_squad_id", "opponent_squad_id", "user_team_bots", "opponent_bots"}``.
    """
    require_ids(userId=user_id, challengeId=challenge_id)
    settings = get_settings()

    try:
        challenge = await get_challenge(db, challenge_id)
        user = await get_profile(db, user_id)

        pool = await get_eligible_bots(db, user.id)
        bots = pick_bots(pool, USER_TEAM_BOTS + OPPONENT_BOTS, rng)
        user_team_bots = bots[:USER_TEAM_BOTS]
        opponent_bots = bots[USER_TEAM_BOTS:]

        logger.info(
            "Creating bot squad match for %s: teammates=%s opponents=%s",
            user.id,
            [b.username for b in user_team_bots],
            [b.username for b in opponent_bots],
        )

        user_squad = await _create_bot_squad(
            db,
            challenge,
            "User Squad",
            [(user, ROLE_LEADER)] + [(bot, ROLE_MEMBER) for bot in user_team_bots],
        )
        opponent_squad = await _create_bot_squad(
            db,
            challenge,
            "Opponent Squad",
            [(bot, ROLE_MEMBER) for bot in opponent_bots],
        )
        await link_opponents(db, user_squad, opponent_squad)

        result = {
            "user_squad_id": user_squad.id,
            "opponent_squad_id": opponent_squad.id,
            "user_team_bots": [b.id for b in user_team_bots],
            "opponent_bots": [b.id for b in opponent_bots],
        }
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await publish_squad_matched(
        redis,
        challenge_id,
        [(user_id, result["user_squad_id"], result["opponent_squad_id"])],
        kind="bot",
    )
    return result
