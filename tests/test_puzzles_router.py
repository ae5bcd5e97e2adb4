from __future__ import annotations

import asyncio
from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fusion.puzzles.models import Puzzle
from fusion.routers import puzzles as puzzles_router
from fusion.services import puzzle_store, stats


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.include_router(puzzles_router.router, prefix="/puzzles")
    return TestClient(app)


@pytest.fixture
def published(puzzle: Puzzle, memory_cache) -> Puzzle:
    asyncio.run(puzzle_store.store_current_puzzle(puzzle, memory_cache))
    return puzzle


def test_today_hides_answers(client: TestClient, published: Puzzle) -> None:
    response = client.get("/puzzles/today")

    assert response.status_code == 200
    body = response.json()
    assert body == {"available": True, "date": "2024-01-01", "imageUrl": published.image_url}


def test_today_without_puzzle(client: TestClient) -> None:
    response = client.get("/puzzles/today")

    assert response.status_code == 200
    assert response.json()["available"] is False


def test_pair_guess_endpoint(client: TestClient, published: Puzzle) -> None:
    correct = client.post("/puzzles/guess/pair", json={"guess": " yone ", "foundSlots": []}).json()
    assert correct["correct"] is True
    assert correct["slot"] == "B"
    assert correct["phase"] == "seeking_pair"

    repeat = client.post("/puzzles/guess/pair", json={"guess": "Yone", "foundSlots": ["B"]}).json()
    assert repeat["correct"] is False
    assert repeat["alreadyFound"] is True

    wrong = client.post("/puzzles/guess/pair", json={"guess": "Lux", "foundSlots": ["B"]}).json()
    assert wrong["message"] == "Incorrect!"


def test_blank_guess_is_a_bad_request(client: TestClient, published: Puzzle) -> None:
    response = client.post("/puzzles/guess/pair", json={"guess": "   "})
    assert response.status_code == 400


def test_theme_guess_records_stats_when_attempts_given(
    client: TestClient, published: Puzzle, memory_cache
) -> None:
    response = client.post("/puzzles/guess/theme", json={"guess": "arcane", "attempts": 6})

    assert response.json()["phase"] == "won"
    result = asyncio.run(stats.read_stats(published.date, memory_cache))
    assert result.distribution == {6: 1}

    invalid = client.post("/puzzles/guess/theme", json={"guess": "arcane", "attempts": 0})
    assert invalid.status_code == 422


def test_session_guess_round_trip(client: TestClient, published: Puzzle) -> None:
    session = {"date": "2024-01-01"}
    for guess in ["Ahri", "Yone", "Arcane"]:
        body = client.post("/puzzles/guess", json={"guess": guess, "session": session}).json()
        session = body["session"]

    assert body["result"]["message"] == "YOU WON! Fusion completed."
    assert session["phase"] == "won"
    assert session["attempts"] == 3
    assert session["zoomLevel"] == 1.0
    assert sorted(session["foundSlots"]) == ["A", "B"]

    finished = client.post("/puzzles/guess", json={"guess": "Arcane", "session": session})
    assert finished.status_code == 400

    stats_body = client.get("/puzzles/stats").json()
    assert stats_body["total"] == 1
    assert stats_body["distribution"] == {"3": 1}
    assert stats_body["buckets"][0] == {"label": "3", "count": 1}


def test_guess_without_puzzle_is_unavailable(client: TestClient) -> None:
    body = client.post("/puzzles/guess", json={"guess": "Ahri"}).json()
    assert body["result"]["available"] is False
    assert body["result"]["message"] == "No active puzzle"


def test_give_up_and_solution(client: TestClient, published: Puzzle) -> None:
    body = client.post("/puzzles/give-up", json={"session": {"date": "2024-01-01", "attempts": 2}}).json()

    assert body["solution"] == {"entityA": "Ahri", "entityB": "Yone", "theme": "Arcane"}
    assert body["session"]["givenUp"] is True
    assert body["session"]["attempts"] == 2

    solution = client.get("/puzzles/solution").json()
    assert solution["entityB"] == "Yone"
    assert client.get("/puzzles/stats").json()["total"] == 0


def test_missing_puzzle_returns_not_found(client: TestClient) -> None:
    assert client.get("/puzzles/solution").status_code == 404
    assert client.post("/puzzles/give-up", json={}).status_code == 404


@pytest.mark.asyncio
async def test_history_endpoint_returns_newest_first(memory_cache) -> None:
    for day in (date(2024, 1, 1), date(2024, 1, 2)):
        await puzzle_store.append_history(
            Puzzle(
                entity_a="Ahri",
                entity_b="Yone",
                theme="Arcane",
                image_url=f"https://cdn.example.com/fusion-{day.isoformat()}.png",
                date=day,
            )
        )
    await stats.record_completion(date(2024, 1, 2), 3, memory_cache)

    entries = await puzzles_router.get_history(limit=None)

    assert [entry.date for entry in entries] == [date(2024, 1, 2), date(2024, 1, 1)]
    assert entries[0].total_solvers == 1

    limited = await puzzles_router.get_history(limit=1)
    assert len(limited) == 1
