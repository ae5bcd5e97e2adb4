from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from redis.asyncio import Redis


class CacheBackend(ABC):
    """Shared key/value store contract with atomic counters."""

    @abstractmethod
    async def get(self, key: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def incr(self, key: str, amount: int = 1) -> int:
        raise NotImplementedError

    @abstractmethod
    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        raise NotImplementedError

    @abstractmethod
    async def hgetall(self, key: str) -> Dict[str, int]:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def incr_with_bucket(self, counter_key: str, hash_key: str, field: str) -> None:
        """Bump a hash bucket and its companion counter.

        Each increment is atomic on its own; backends may additionally send
        both in one round trip.
        """

        await self.hincrby(hash_key, field)
        await self.incr(counter_key)


class InMemoryCache(CacheBackend):
    """Simple process-local cache with TTL support."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[Any, float | None]] = {}
        self._hashes: dict[str, dict[str, int]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at < time.time():
                del self._store[key]
                return None
            return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if value is None:
            async with self._lock:
                self._store.pop(key, None)
            return
        expires_at = time.time() + ttl if ttl else None
        async with self._lock:
            self._store[key] = (value, expires_at)

    async def incr(self, key: str, amount: int = 1) -> int:
        async with self._lock:
            current, expires_at = self._store.get(key, (0, None))
            updated = int(current) + amount
            self._store[key] = (updated, expires_at)
            return updated

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        async with self._lock:
            bucket = self._hashes.setdefault(key, {})
            bucket[field] = bucket.get(field, 0) + amount
            return bucket[field]

    async def hgetall(self, key: str) -> Dict[str, int]:
        async with self._lock:
            return dict(self._hashes.get(key, {}))


class RedisCache(CacheBackend):
    """Redis-backed cache."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def get(self, key: str) -> Any:
        raw = await self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if value is None:
            await self._client.delete(key)
            return
        payload = json.dumps(value, ensure_ascii=False)
        if ttl:
            await self._client.set(key, payload, ex=ttl)
        else:
            await self._client.set(key, payload)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def incr(self, key: str, amount: int = 1) -> int:
        return int(await self._client.incrby(key, amount))

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return int(await self._client.hincrby(key, field, amount))

    async def hgetall(self, key: str) -> Dict[str, int]:
        raw = await self._client.hgetall(key)
        return {str(field): int(value) for field, value in raw.items()}

    async def incr_with_bucket(self, counter_key: str, hash_key: str, field: str) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hincrby(hash_key, field, 1)
            pipe.incr(counter_key)
            await pipe.execute()


_cache: Optional[CacheBackend] = None


async def get_cache(redis_url: str | None = None) -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    if redis_url:
        redis_client = Redis.from_url(redis_url, decode_responses=True)
        _cache = RedisCache(redis_client)
    else:
        _cache = InMemoryCache()
    return _cache
