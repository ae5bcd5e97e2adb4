from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from ..core.config import settings
from ..core.database import session_scope
from ..puzzles.models import HistoryEntry, Puzzle
from .cache import CacheBackend, get_cache
from .history_repository import (
    append_puzzle_record as repo_append_puzzle_record,
    list_puzzle_records as repo_list_puzzle_records,
)
from .stats import read_total

logger = logging.getLogger(__name__)

CURRENT_PUZZLE_KEY = "fusion:puzzle:current"


async def load_current_puzzle(cache: Optional[CacheBackend] = None) -> Optional[Puzzle]:
    if cache is None:
        cache = await get_cache(settings.redis_url)
    raw = await cache.get(CURRENT_PUZZLE_KEY)
    if raw is None:
        return None
    try:
        return Puzzle.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Stored current puzzle is malformed: %s", exc)
        return None


async def store_current_puzzle(puzzle: Puzzle, cache: Optional[CacheBackend] = None) -> None:
    if cache is None:
        cache = await get_cache(settings.redis_url)
    await cache.set(CURRENT_PUZZLE_KEY, puzzle.model_dump(mode="json", by_alias=True))


async def append_history(puzzle: Puzzle) -> bool:
    async with session_scope() as session:
        inserted = await repo_append_puzzle_record(
            session,
            puzzle.date,
            entity_a=puzzle.entity_a,
            entity_b=puzzle.entity_b,
            theme=puzzle.theme,
            image_url=puzzle.image_url,
        )
    if not inserted:
        logger.warning("History for %s already recorded; keeping the original entry", puzzle.date)
    return inserted


async def load_history(limit: Optional[int] = None, cache: Optional[CacheBackend] = None) -> List[HistoryEntry]:
    if limit is None:
        limit = max(settings.puzzle_history_days, 0) or None
    if cache is None:
        cache = await get_cache(settings.redis_url)
    async with session_scope() as session:
        records = await repo_list_puzzle_records(session, limit=limit)
    entries: List[HistoryEntry] = []
    for record in records:
        entries.append(
            HistoryEntry(
                date=record.puzzle_date,
                entity_a=record.entity_a,
                entity_b=record.entity_b,
                theme=record.theme,
                image_url=record.image_url,
                total_solvers=await read_total(record.puzzle_date, cache),
            )
        )
    return entries
