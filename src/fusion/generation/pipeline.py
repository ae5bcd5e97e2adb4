from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional

import httpx
from google import genai

from ..core.config import Settings, settings as app_settings
from ..puzzles.engine import utc_today
from ..puzzles.models import Puzzle
from ..services.cache import CacheBackend, get_cache
from ..services.pollinations import MAX_SEED, synthesize_image
from ..services.roster import THEMES, fetch_reference_image, load_roster, splash_url
from ..services.storage import ObjectStorage, build_storage
from .prompts import compose_fusion_prompt
from .publication import publish_puzzle
from .refinement import refine_prompt
from .selection import select_pair_and_theme

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _http_client(
    client: Optional[httpx.AsyncClient], settings: Settings
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as own_client:
        yield own_client


async def generate_daily_puzzle(
    *,
    day: Optional[date] = None,
    settings: Optional[Settings] = None,
    cache: Optional[CacheBackend] = None,
    storage: Optional[ObjectStorage] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    genai_client: Optional[genai.Client] = None,
    rng: Optional[random.Random] = None,
) -> Puzzle:
    """Run the full generation chain once and publish the result.

    Roster, reference image, synthesis and storage failures propagate as
    ``GenerationError`` subclasses. Refinement problems never stop the run.
    Concurrent runs are not coordinated; the last one to publish wins.
    """

    settings = settings or app_settings
    day = day or utc_today()
    rng = rng or random.Random()
    cache = cache or await get_cache(settings.redis_url)
    storage = storage or build_storage(settings)

    async with _http_client(http_client, settings) as client:
        roster = await load_roster(settings.ddragon_base_url, client=client)
        selection = select_pair_and_theme(roster, THEMES, rng)
        champion_a, champion_b = selection.entity_a, selection.entity_b
        logger.info(
            "Generating fusion for %s: %s + %s in %s style",
            day,
            champion_a.name,
            champion_b.name,
            selection.theme,
        )

        reference_a = await fetch_reference_image(client, splash_url(settings.ddragon_base_url, champion_a))
        reference_b = await fetch_reference_image(client, splash_url(settings.ddragon_base_url, champion_b))

        prompt = compose_fusion_prompt(champion_a.name, champion_b.name, selection.theme)
        refinement = await refine_prompt(
            prompt,
            [reference_a, reference_b],
            model=settings.gemini_model,
            client=genai_client,
            api_key=settings.gemini_api_key,
        )

        image = await synthesize_image(
            refinement.prompt,
            settings,
            client=client,
            seed=rng.randrange(MAX_SEED),
        )

    puzzle = await publish_puzzle(
        image,
        day,
        entity_a=champion_a.name,
        entity_b=champion_b.name,
        theme=selection.theme,
        storage=storage,
        cache=cache,
    )
    logger.info("Published puzzle for %s", day)
    return puzzle
