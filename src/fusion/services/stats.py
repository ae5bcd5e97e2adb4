"""Per-day histogram of how many guesses winners needed.

Each day owns a hash (``fusion:stats:{date}``) mapping an attempt count to the
number of players who won with that many attempts, plus a plain counter
(``fusion:stats:{date}:total``). Both are only ever changed through atomic
increments, so any number of winners may record at the same time.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Mapping, Optional

from ..core.config import settings
from ..puzzles.models import AttemptStats, StatsBucket
from .cache import CacheBackend, get_cache

logger = logging.getLogger(__name__)

STATS_KEY_TEMPLATE = "fusion:stats:{date}"
TOTAL_KEY_TEMPLATE = "fusion:stats:{date}:total"

# two entity guesses plus one theme guess
MIN_DISPLAY_ATTEMPTS = 3
MAX_DISPLAY_ATTEMPTS = 12


def _stats_key(day: date) -> str:
    return STATS_KEY_TEMPLATE.format(date=day.isoformat())


def _total_key(day: date) -> str:
    return TOTAL_KEY_TEMPLATE.format(date=day.isoformat())


async def record_completion(day: date, attempts: int, cache: Optional[CacheBackend] = None) -> None:
    if attempts < 1:
        raise ValueError("attempts must be a positive integer")
    if cache is None:
        cache = await get_cache(settings.redis_url)
    await cache.incr_with_bucket(_total_key(day), _stats_key(day), str(attempts))
    logger.debug("Recorded completion for %s with %s attempts", day, attempts)


def bucket_distribution(distribution: Mapping[int, int]) -> List[StatsBucket]:
    buckets = [
        StatsBucket(label=str(attempts), count=distribution.get(attempts, 0))
        for attempts in range(MIN_DISPLAY_ATTEMPTS, MAX_DISPLAY_ATTEMPTS + 1)
    ]
    overflow = sum(
        count for attempts, count in distribution.items() if attempts > MAX_DISPLAY_ATTEMPTS
    )
    buckets.append(StatsBucket(label=f"{MAX_DISPLAY_ATTEMPTS + 1}+", count=overflow))
    return buckets


async def read_total(day: date, cache: Optional[CacheBackend] = None) -> int:
    if cache is None:
        cache = await get_cache(settings.redis_url)
    raw_total = await cache.get(_total_key(day))
    try:
        return int(raw_total) if raw_total is not None else 0
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed completion total for %s: %r", day, raw_total)
        return 0


async def read_stats(day: date, cache: Optional[CacheBackend] = None) -> AttemptStats:
    if cache is None:
        cache = await get_cache(settings.redis_url)
    raw = await cache.hgetall(_stats_key(day))
    distribution: Dict[int, int] = {}
    for field, count in raw.items():
        try:
            distribution[int(field)] = int(count)
        except (TypeError, ValueError):
            continue
    total = await read_total(day, cache)
    return AttemptStats(
        date=day,
        distribution=dict(sorted(distribution.items())),
        total=total,
        buckets=bucket_distribution(distribution),
    )
