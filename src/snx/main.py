"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from snx.accounts.router import router as accounts_router
from snx.catalog.router import router as catalog_router
from snx.config import get_settings
from snx.database import close_db, create_tables, init_db
from snx.dependencies import reset_store
from snx.health.router import router as health_router
from snx.leaderboard.router import router as leaderboard_router
from snx.middleware import setup_middleware
from snx.progression.router import router as progression_router
from snx.quests.router import router as quests_router
from snx.redis_client import close_redis, init_redis
from snx.referrals.router import router as referrals_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await create_tables()
    if settings.redis_enabled:
        try:
            await init_redis(settings.redis_url)
        except Exception:
            logger.warning("Redis unavailable, pub/sub pushes disabled", exc_info=True)

    yield

    reset_store()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Stellar Nexus Experience API",
        description="Progression, rewards and referrals for the Nexus demo suite",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(accounts_router)
    app.include_router(progression_router)
    app.include_router(referrals_router)
    app.include_router(quests_router)
    app.include_router(leaderboard_router)
    app.include_router(catalog_router)

    return app


app = create_app()
