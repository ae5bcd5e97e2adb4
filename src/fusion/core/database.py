from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..db.models import Base
from .config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Return the shared async engine, creating it from ``DATABASE_URL``."""

    global _engine, _session_factory

    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            pool_pre_ping=True,
            future=True,
            echo=settings.database_echo,
        )
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        get_engine()

    assert _session_factory is not None
    return _session_factory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error."""

    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def _prepare_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as connection:
        await connection.execute(text("SELECT 1"))
        await connection.run_sync(Base.metadata.create_all)


def _describe(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


async def connect_database() -> None:
    """Connect to the history database and create ``puzzle_history`` if needed.

    Postgres may still be starting when the API boots, so operational errors
    are retried ``DATABASE_CONNECT_RETRIES`` times. Any other SQLAlchemy error
    aborts startup straight away.
    """

    engine = get_engine()
    target = _describe(settings.database_url)

    attempts = max(1, settings.database_connect_retries)
    delay = max(0.0, settings.database_connect_retry_interval_seconds)
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            await _prepare_schema(engine)
        except OperationalError as exc:
            last_error = exc
            logger.warning("Database %s unavailable (attempt %s/%s): %s", target, attempt, attempts, exc)
            if attempt < attempts:
                await asyncio.sleep(delay)
            continue
        except SQLAlchemyError:
            logger.exception("Database initialisation failed for %s", target)
            raise
        logger.info("History database ready at %s", target)
        return

    raise RuntimeError(f"Could not connect to the database at {target}") from last_error


async def disconnect_database() -> None:
    global _engine, _session_factory

    _session_factory = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def register_database(app: FastAPI) -> None:
    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - FastAPI integration
        await connect_database()

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - FastAPI integration
        await disconnect_database()
