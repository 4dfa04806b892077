"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from questmap.admin.router import router as admin_router
from questmap.auth.router import router as auth_router
from questmap.config import get_settings
from questmap.database import LedgerStore
from questmap.health.router import router as health_router
from questmap.leaderboard.router import router as leaderboard_router
from questmap.middleware import setup_middleware
from questmap.redis_client import close_redis, init_redis
from questmap.seed import seed_catalog
from questmap.shop.router import router as shop_router
from questmap.tasks.router import router as tasks_router
from questmap.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    store = LedgerStore.from_url(settings.database_url, echo=settings.database_echo)
    app.state.store = store
    if not await init_redis(settings.redis_url):
        logger.info("Redis disabled, rate limiting is off")

    # Seed tasks, shop and admin (idempotent)
    if settings.seed_on_startup:
        try:
            await seed_catalog(store, settings)
        except Exception:
            logger.warning("Catalogue seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await store.dispose()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="QuestMap API",
        description="Backend API for QuestMap, a gamified learning quest with a points shop",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(tasks_router)
    app.include_router(shop_router)
    app.include_router(users_router)
    app.include_router(leaderboard_router)
    app.include_router(admin_router)

    return app


app = create_app()
