"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from skillsquad.challenges.router import router as challenges_router
from skillsquad.config import get_settings
from skillsquad.database import close_db, get_session, init_db
from skillsquad.health.router import router as health_router
from skillsquad.matchmaking.router import functions_router as matchmaking_functions_router
from skillsquad.matchmaking.router import router as matchmaking_router
from skillsquad.matchmaking.seed import seed_bot_profiles
from skillsquad.middleware import setup_middleware
from skillsquad.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)

    # Seed bot profiles for practice matches (idempotent)
    if settings.seed_bot_count > 0:
        try:
            async for db in get_session():
                await seed_bot_profiles(db, settings.seed_bot_count)
                break
        except Exception:
            logger.warning("Bot seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SkillSquad Matchmaking API",
        description="Duel pairing, squad formation and bot-filled practice matches for skill challenges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(matchmaking_functions_router)
    app.include_router(matchmaking_router)
    app.include_router(challenges_router)

    return app


app = create_app()
