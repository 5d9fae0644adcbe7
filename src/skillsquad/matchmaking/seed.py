"""Bot profile seed data.

Bots are plain profiles named ``{prefix}{n:03d}``. Seeding is idempotent:
existing usernames are left untouched.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsquad.config import get_settings
from skillsquad.db.models import Profile

logger = logging.getLogger(__name__)

BOT_DISPLAY_NAMES = [
    "Ada", "Grace", "Linus", "Guido", "Barbara", "Ken", "Dennis", "Margaret",
    "Alan", "Edsger", "Donald", "Frances", "Niklaus", "Radia", "Tim", "Katherine",
]


def bot_username(n: int, prefix: str | None = None) -> str:
    prefix = prefix if prefix is not None else (get_settings().bot_username_prefix or "bot_")
    return f"{prefix}{n:03d}"


async def seed_bot_profiles(db: AsyncSession, count: int, prefix: str | None = None) -> int:
    """Ensure ``count`` bot profiles exist. Returns the number created."""
    usernames = [bot_username(n, prefix) for n in range(1, count + 1)]
    existing = await db.execute(select(Profile.username).where(Profile.username.in_(usernames)))
    present = set(existing.scalars().all())

    created = 0
    for n, username in enumerate(usernames, start=1):
        if username in present:
            continue
        name = BOT_DISPLAY_NAMES[(n - 1) % len(BOT_DISPLAY_NAMES)]
        db.add(Profile(
            username=username,
            display_name=f"{name} (bot)",
            current_level=1 + (n - 1) % 5,
        ))
        created += 1

    await db.commit()
    logger.info("Seeded %d bot profiles (%d already present)", created, len(present))
    return created
