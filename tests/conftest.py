from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fusion.core import database as db_module  # noqa: E402
from fusion.db.models import Base  # noqa: E402
from fusion.puzzles.models import Puzzle  # noqa: E402
from fusion.services import cache as cache_module  # noqa: E402
from fusion.services.cache import InMemoryCache  # noqa: E402


async def _create_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest.fixture(autouse=True)
def setup_test_database() -> None:
    engine = asyncio.run(_create_engine())
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    original_engine = db_module._engine
    original_factory = db_module._session_factory
    db_module._engine = engine
    db_module._session_factory = session_factory

    try:
        yield
    finally:
        db_module._engine = original_engine
        db_module._session_factory = original_factory
        asyncio.run(engine.dispose())


@pytest.fixture(autouse=True)
def memory_cache() -> InMemoryCache:
    cache = InMemoryCache()
    original = cache_module._cache
    cache_module._cache = cache
    try:
        yield cache
    finally:
        cache_module._cache = original


@pytest.fixture
def puzzle() -> Puzzle:
    return Puzzle(
        entity_a="Ahri",
        entity_b="Yone",
        theme="Arcane",
        image_url="https://cdn.example.com/fusion-2024-01-01.png",
        date=date(2024, 1, 1),
    )
