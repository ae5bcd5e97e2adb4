from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import settings
from ..core.database import get_engine
from ..services.cache import get_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/live", response_model=dict)
async def live() -> dict:
    return {"ok": True}


async def _database_ready() -> bool:
    try:
        async with get_engine().connect() as connection:
            await connection.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("History database is not reachable: %s", exc)
        return False
    return True


async def _cache_ready() -> bool:
    try:
        cache = await get_cache(settings.redis_url)
        return await cache.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Puzzle store is not reachable: %s", exc)
        return False


@router.get("/ready")
async def ready() -> JSONResponse:
    """Report whether the history database and the puzzle store respond."""

    checks = {"database": await _database_ready(), "cache": await _cache_ready()}
    ok = all(checks.values())
    return JSONResponse(status_code=200 if ok else 503, content={"ok": ok, **checks})
