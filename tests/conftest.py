"""Shared test fixtures.

Tests run against an in-memory SQLite database built from the ORM metadata;
Redis is replaced by a mock whose ``publish`` records match events.
"""

from __future__ import annotations

import os

os.environ["SKILLSQUAD_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SKILLSQUAD_LOG_FORMAT"] = "console"
os.environ["SKILLSQUAD_SEED_BOT_COUNT"] = "0"

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from skillsquad.config import get_settings  # noqa: E402
from skillsquad.database import close_db, get_engine, get_session, init_db  # noqa: E402
from skillsquad.db.base import Base  # noqa: E402
from skillsquad.db.models import Challenge, Profile, SkillArea, SkillLevel  # noqa: E402
from skillsquad.dependencies import get_redis_dep  # noqa: E402
from skillsquad.main import create_app  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema per test."""
    settings = get_settings()
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for setup and assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis stand-in recording published events."""
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest_asyncio.fixture
async def client(database, mock_redis) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client wired to the test database and mock Redis."""
    app = create_app()

    async def _redis_override() -> AsyncGenerator[object, None]:
        yield mock_redis

    app.dependency_overrides[get_redis_dep] = _redis_override

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


async def create_profile(db: AsyncSession, username: str, current_level: int = 1) -> Profile:
    """Create a test profile."""
    profile = Profile(username=username, display_name=username.title(), current_level=current_level)
    db.add(profile)
    await db.flush()
    return profile


async def create_skill_area(db: AsyncSession, name: str = "Backend") -> SkillArea:
    area = SkillArea(name=name)
    db.add(area)
    await db.flush()
    return area


async def create_challenge(
    db: AsyncSession,
    skill_area: SkillArea,
    challenge_type: str = "squad",
    max_squad_size: int | None = 3,
    title: str = "API Design Sprint",
) -> Challenge:
    challenge = Challenge(
        title=title,
        challenge_type=challenge_type,
        skill_area_id=skill_area.id,
        max_squad_size=max_squad_size,
        time_limit=600,
        content={"questions": [{"question": "Design a REST endpoint"}, {"question": "Add pagination"}]},
    )
    db.add(challenge)
    await db.flush()
    return challenge


async def set_skill_level(db: AsyncSession, user: Profile, skill_area: SkillArea, level: int) -> SkillLevel:
    row = SkillLevel(user_id=user.id, skill_area_id=skill_area.id, level=level, assessment_completed=True)
    db.add(row)
    await db.flush()
    return row


async def create_leveled_user(db: AsyncSession, username: str, skill_area: SkillArea, level: int) -> Profile:
    """Profile plus a skill level row in ``skill_area``."""
    user = await create_profile(db, username, current_level=level)
    await set_skill_level(db, user, skill_area, level)
    return user


async def create_bots(db: AsyncSession, count: int, prefix: str = "bot_") -> list[Profile]:
    return [await create_profile(db, f"{prefix}{n:03d}", current_level=1 + n % 3) for n in range(count)]


@pytest_asyncio.fixture
async def skill_area(db_session: AsyncSession) -> SkillArea:
    area = await create_skill_area(db_session)
    await db_session.commit()
    return area


@pytest_asyncio.fixture
async def squad_challenge(db_session: AsyncSession, skill_area: SkillArea) -> Challenge:
    challenge = await create_challenge(db_session, skill_area)
    await db_session.commit()
    return challenge


@pytest_asyncio.fixture
async def duel_challenge(db_session: AsyncSession, skill_area: SkillArea) -> Challenge:
    challenge = await create_challenge(
        db_session, skill_area, challenge_type="1v1", max_squad_size=1, title="Regex Duel",
    )
    await db_session.commit()
    return challenge


def random_id() -> uuid.UUID:
    return uuid.uuid4()
