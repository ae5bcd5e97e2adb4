from __future__ import annotations

import httpx
import pytest

from fusion.services import roster
from fusion.services.roster import (
    THEMES,
    Champion,
    RosterError,
    fetch_reference_image,
    load_roster,
    splash_url,
)

BASE_URL = "https://ddragon.example"


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_roster_uses_latest_version() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/api/versions.json":
            return httpx.Response(200, json=["14.2.1", "14.1.1"])
        return httpx.Response(
            200,
            json={
                "data": {
                    "Ahri": {"id": "Ahri", "name": "Ahri"},
                    "MonkeyKing": {"id": "MonkeyKing", "name": "Wukong"},
                }
            },
        )

    async with make_client(handler) as client:
        roster = await load_roster(BASE_URL, client=client)

    assert requested == ["/api/versions.json", "/cdn/14.2.1/data/en_US/champion.json"]
    assert roster == [Champion(id="Ahri", name="Ahri"), Champion(id="MonkeyKing", name="Wukong")]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "versions, champions",
    [
        (httpx.Response(500), None),
        (httpx.Response(200, json=[]), None),
        (httpx.Response(200, json=["14.2.1"]), httpx.Response(200, json={"type": "champion"})),
        (httpx.Response(200, json=["14.2.1"]), httpx.Response(200, text="<html>")),
    ],
)
async def test_roster_failures_raise(versions, champions) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/versions.json":
            return versions
        return champions

    async with make_client(handler) as client:
        with pytest.raises(RosterError):
            await load_roster(BASE_URL, client=client)


def test_splash_url_uses_default_skin() -> None:
    champion = Champion(id="MonkeyKing", name="Wukong")
    assert splash_url(BASE_URL, champion) == f"{BASE_URL}/cdn/img/champion/splash/MonkeyKing_0.jpg"


@pytest.mark.asyncio
async def test_missing_reference_image_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async with make_client(handler) as client:
        with pytest.raises(RosterError):
            await fetch_reference_image(client, f"{BASE_URL}/cdn/img/champion/splash/Nope_0.jpg")


def test_theme_list_has_no_duplicates() -> None:
    assert len(THEMES) == len(set(THEMES))
    assert "Arcane" in THEMES


@pytest.mark.asyncio
async def test_roster_client_uses_configured_timeout(monkeypatch) -> None:
    opened_with: list = []
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/versions.json":
            return httpx.Response(200, json=["14.2.1"])
        return httpx.Response(200, json={"data": {"Ahri": {"id": "Ahri", "name": "Ahri"}}})

    def client_factory(*, timeout):
        opened_with.append(timeout)
        return real_client(transport=httpx.MockTransport(handler), timeout=timeout)

    monkeypatch.setattr(roster.settings, "http_timeout_seconds", 7.5)
    monkeypatch.setattr(roster.httpx, "AsyncClient", client_factory)

    assert await load_roster(BASE_URL) == [Champion(id="Ahri", name="Ahri")]
    assert await load_roster(BASE_URL, timeout=3.0) == [Champion(id="Ahri", name="Ahri")]
    assert opened_with == [7.5, 3.0]
