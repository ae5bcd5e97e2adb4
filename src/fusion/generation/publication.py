from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..puzzles.models import Puzzle
from ..services.cache import CacheBackend
from ..services.puzzle_store import append_history, store_current_puzzle
from ..services.storage import ObjectStorage

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPE = "image/png"


def image_object_name(day: date) -> str:
    return f"fusion-{day.isoformat()}.png"


async def publish_puzzle(
    image: bytes,
    day: date,
    *,
    entity_a: str,
    entity_b: str,
    theme: str,
    storage: ObjectStorage,
    cache: Optional[CacheBackend] = None,
) -> Puzzle:
    """Upload the image, then point the current puzzle at it and log history.

    The upload overwrites any object already stored for ``day``. If a later
    step fails, the uploaded image stays in storage.
    """

    image_url = await storage.put(image_object_name(day), image, IMAGE_CONTENT_TYPE)
    logger.info("Uploaded fusion image for %s to %s", day, image_url)

    puzzle = Puzzle(
        entity_a=entity_a,
        entity_b=entity_b,
        theme=theme,
        image_url=image_url,
        date=day,
    )
    await store_current_puzzle(puzzle, cache)
    await append_history(puzzle)
    return puzzle
