from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import models


async def get_puzzle_record(session: AsyncSession, puzzle_date: date) -> Optional[models.PuzzleHistory]:
    return await session.get(models.PuzzleHistory, puzzle_date)


async def append_puzzle_record(
    session: AsyncSession,
    puzzle_date: date,
    *,
    entity_a: str,
    entity_b: str,
    theme: str,
    image_url: str,
) -> bool:
    """Insert the history row for ``puzzle_date`` unless one already exists.

    Returns ``True`` when a new row was added. Existing rows are never
    modified.
    """

    existing = await get_puzzle_record(session, puzzle_date)
    if existing is not None:
        return False
    session.add(
        models.PuzzleHistory(
            puzzle_date=puzzle_date,
            entity_a=entity_a,
            entity_b=entity_b,
            theme=theme,
            image_url=image_url,
        )
    )
    await session.flush()
    return True


async def list_puzzle_records(
    session: AsyncSession,
    limit: Optional[int] = None,
) -> List[models.PuzzleHistory]:
    stmt = select(models.PuzzleHistory).order_by(models.PuzzleHistory.puzzle_date.desc())
    if limit is not None and limit > 0:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
