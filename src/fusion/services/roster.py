from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

import httpx
from pydantic import BaseModel

from ..core.config import settings
from ..core.errors import GenerationError

logger = logging.getLogger(__name__)

THEMES: Tuple[str, ...] = (
    "Arcade",
    "Arcana",
    "Arcane",
    "Battle Academia",
    "Battle Bunny",
    "Bewitching",
    "Blood Moon",
    "Coven",
    "Cosmic",
    "Crime City",
    "Dark Star",
    "Dragonmancer",
    "Elderwood",
    "Empyrean",
    "Faerie Court",
    "Heartsteel",
    "High Noon",
    "Infernal",
    "K/DA",
    "Lunar Revel",
    "Mecha Kingdoms",
    "Odyssey",
    "Pool Party",
    "PROJECT",
    "Pulsefire",
    "Sentinel",
    "Snow Day",
    "Soul Fighter",
    "Space Groove",
    "Spirit Blossom",
    "Star Guardian",
    "Winterblessed",
)


class RosterError(GenerationError):
    """Raised when the champion roster or reference art is unavailable."""


class Champion(BaseModel):
    id: str
    name: str


async def _get_json(client: httpx.AsyncClient, url: str) -> Any:
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise RosterError(f"Roster request failed for {url}: {exc}") from exc


async def fetch_latest_version(client: httpx.AsyncClient, base_url: str) -> str:
    versions = await _get_json(client, f"{base_url}/api/versions.json")
    if not isinstance(versions, list) or not versions:
        raise RosterError("Data Dragon returned no versions")
    return str(versions[0])


async def fetch_champions(client: httpx.AsyncClient, base_url: str, version: str) -> List[Champion]:
    payload = await _get_json(client, f"{base_url}/cdn/{version}/data/en_US/champion.json")
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise RosterError("Data Dragon champion payload is missing 'data'")
    champions: List[Champion] = []
    for key, entry in data.items():
        if not isinstance(entry, dict):
            continue
        champions.append(
            Champion(id=str(entry.get("id") or key), name=str(entry.get("name") or key))
        )
    return champions


async def load_roster(
    base_url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> List[Champion]:
    """Return every champion in the latest Data Dragon release.

    Without an injected ``client`` a fresh one is opened using ``timeout``,
    or ``HTTP_TIMEOUT_SECONDS`` when no timeout is given.
    """

    if client is not None:
        version = await fetch_latest_version(client, base_url)
        return await fetch_champions(client, base_url, version)
    if timeout is None:
        timeout = settings.http_timeout_seconds
    async with httpx.AsyncClient(timeout=timeout) as own_client:
        version = await fetch_latest_version(own_client, base_url)
        return await fetch_champions(own_client, base_url, version)


def splash_url(base_url: str, champion: Champion) -> str:
    # skin 0 is the default splash
    return f"{base_url}/cdn/img/champion/splash/{champion.id}_0.jpg"


async def fetch_reference_image(client: httpx.AsyncClient, url: str) -> bytes:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Failed to fetch reference image %s: %s", url, exc)
        raise RosterError(f"Failed to fetch image: {url}") from exc
    return response.content
