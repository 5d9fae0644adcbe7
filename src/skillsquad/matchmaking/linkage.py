"""Opponent linkage between squads.

Two linked squads always reference each other: if A.opponent_squad_id is B
then B.opponent_squad_id is A. Both rows are updated in the caller's
transaction so they commit (or roll back) together.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.db.models import SQUAD_ACTIVE, SQUAD_READY, Squad
from skillsquad.matchmaking.errors import LinkageError

logger = logging.getLogger(__name__)


async def link_opponents(
    db: AsyncSession,
    squad_a: Squad,
    squad_b: Squad,
    status: str = SQUAD_ACTIVE,
) -> None:
    """Link two squads as mutual opponents and move both to ``status``."""
    if squad_a.id == squad_b.id:
        raise LinkageError("A squad cannot be its own opponent")
    if squad_a.challenge_id != squad_b.challenge_id:
        raise LinkageError("Squads belong to different challenges")
    for squad, other in ((squad_a, squad_b), (squad_b, squad_a)):
        if squad.opponent_squad_id is not None and squad.opponent_squad_id != other.id:
            raise LinkageError(f"Squad {squad.id} is already linked to an opponent")

    squad_a.opponent_squad_id = squad_b.id
    squad_b.opponent_squad_id = squad_a.id
    squad_a.status = status
    squad_b.status = status
    await db.flush()
    logger.info("Linked squads %s <-> %s (status=%s)", squad_a.id, squad_b.id, status)


async def pair_ready_squads(db: AsyncSession, challenge_id: uuid.UUID) -> tuple[Squad, Squad] | None:
    """Link the two oldest ready, unpaired squads on a challenge, if there are two."""
    result = await db.execute(
        select(Squad)
        .where(
            Squad.challenge_id == challenge_id,
            Squad.status == SQUAD_READY,
            Squad.opponent_squad_id.is_(None),
        )
        .order_by(Squad.created_at, Squad.id)
        .limit(2)
        .with_for_update(skip_locked=True)
        .execution_options(populate_existing=True)
    )
    ready = list(result.scalars().all())
    if len(ready) < 2:
        return None

    squad_a, squad_b = ready
    await link_opponents(db, squad_a, squad_b)
    return squad_a, squad_b
