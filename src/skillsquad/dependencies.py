"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from skillsquad.database import get_session as _get_session
from skillsquad.redis_client import get_optional_redis as _get_optional_redis

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client (or None when Redis is not configured) as a FastAPI dependency."""
    yield _get_optional_redis()
