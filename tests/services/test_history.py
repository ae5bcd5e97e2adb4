from __future__ import annotations

from datetime import date

import pytest

from fusion.core.database import get_session_factory
from fusion.puzzles.models import Puzzle
from fusion.services import history_repository, puzzle_store, stats


def make_puzzle(day: date, entity_a: str = "Ahri", entity_b: str = "Yone", theme: str = "Arcane") -> Puzzle:
    return Puzzle(
        entity_a=entity_a,
        entity_b=entity_b,
        theme=theme,
        image_url=f"https://cdn.example.com/fusion-{day.isoformat()}.png",
        date=day,
    )


@pytest.mark.asyncio
async def test_history_keeps_the_first_entry_for_a_date() -> None:
    day = date(2024, 1, 1)

    assert await puzzle_store.append_history(make_puzzle(day)) is True
    assert await puzzle_store.append_history(make_puzzle(day, "Lux", "Garen", "Coven")) is False

    session_factory = get_session_factory()
    async with session_factory() as session:
        record = await history_repository.get_puzzle_record(session, day)

    assert record is not None
    assert record.entity_a == "Ahri"
    assert record.theme == "Arcane"


@pytest.mark.asyncio
async def test_history_is_newest_first_with_solver_totals(memory_cache) -> None:
    older = date(2024, 1, 1)
    newer = date(2024, 1, 2)
    await puzzle_store.append_history(make_puzzle(older))
    await puzzle_store.append_history(make_puzzle(newer, "Jinx", "Vi", "Star Guardian"))

    await stats.record_completion(older, 4, memory_cache)
    await stats.record_completion(older, 6, memory_cache)

    entries = await puzzle_store.load_history()

    assert [entry.date for entry in entries] == [newer, older]
    assert entries[0].total_solvers == 0
    assert entries[1].total_solvers == 2
    assert entries[0].model_dump(by_alias=True)["entityA"] == "Jinx"


@pytest.mark.asyncio
async def test_history_limit(monkeypatch) -> None:
    for offset in range(1, 6):
        await puzzle_store.append_history(make_puzzle(date(2024, 2, offset)))

    entries = await puzzle_store.load_history(limit=2)
    assert [entry.date.day for entry in entries] == [5, 4]

    monkeypatch.setattr(puzzle_store.settings, "puzzle_history_days", 3)
    assert len(await puzzle_store.load_history()) == 3


@pytest.mark.asyncio
async def test_current_puzzle_round_trip_and_malformed_value(puzzle, memory_cache) -> None:
    assert await puzzle_store.load_current_puzzle(memory_cache) is None

    await puzzle_store.store_current_puzzle(puzzle, memory_cache)
    stored = await memory_cache.get(puzzle_store.CURRENT_PUZZLE_KEY)
    assert stored["entityA"] == "Ahri"
    assert stored["imageUrl"] == puzzle.image_url
    assert await puzzle_store.load_current_puzzle(memory_cache) == puzzle

    await memory_cache.set(puzzle_store.CURRENT_PUZZLE_KEY, {"theme": "Arcane"})
    assert await puzzle_store.load_current_puzzle(memory_cache) is None
