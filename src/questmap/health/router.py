"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from questmap.config import get_settings
from questmap.database import LedgerStore, get_store
from questmap.db.models import Task
from questmap.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """The process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(store: LedgerStore = Depends(get_store)) -> JSONResponse:  # noqa: B008
    """Ready when the ledger store answers. Redis only backs rate limiting, so
    a missing Redis is reported but does not fail the probe.
    """
    checks: dict[str, object] = {}
    ready = True

    try:
        async with store.session() as db:
            task_count = (await db.execute(select(func.count(Task.id)))).scalar_one()
        checks["database"] = "ok"
        checks["dialect"] = store.dialect
        checks["tasks"] = task_count
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc.__class__.__name__}"
        ready = False

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "disabled"
    except RedisError as exc:
        checks["redis"] = f"error: {exc.__class__.__name__}"

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "name": "questmap",
        "version": settings.app_version,
        "environment": settings.environment,
    }
