"""Meridian — Pre-computed risk score cache (Redis with in-memory fallback).

Serving a server-side CII snapshot lets fresh sessions skip the
15-minute learning window. A fresh copy lives for ``ttl`` seconds and a
stale copy for ``stale_ttl``; the stale copy is served when nothing
fresher exists.
"""

import json
import logging
import time
from typing import Optional

logger = logging.getLogger("meridian.cache")


class InMemoryScoreCache:
    """Fallback key/value store with per-key expiry when Redis is unavailable."""

    def __init__(self):
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ex: int) -> None:
        self._entries[key] = (time.monotonic() + ex, value)

    def clear(self) -> None:
        self._entries.clear()


class ScoreCache:
    """Caches the latest CII snapshot via Redis or the in-memory fallback."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key: str = "risk:scores:v2",
        stale_key: str = "risk:scores:stale:v2",
        ttl: int = 600,
        stale_ttl: int = 3600,
        use_redis: bool = False,
    ):
        self._redis_url = redis_url
        self._key = key
        self._stale_key = stale_key
        self._ttl = ttl
        self._stale_ttl = stale_ttl
        self._use_redis = use_redis
        self._redis = None
        self._memory = InMemoryScoreCache()

    async def connect(self):
        if self._use_redis:
            try:
                import redis.asyncio as aioredis
                self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
                await self._redis.ping()
                logger.info("Connected to Redis at %s", self._redis_url)
            except Exception as e:
                logger.warning("Redis unavailable (%s), falling back to in-memory score cache", e)
                self._redis = None
                self._use_redis = False
        else:
            logger.info("Using in-memory score cache (Redis disabled)")

    @property
    def backend(self):
        return self._redis or self._memory

    async def store_scores(self, payload: dict) -> None:
        """Write the snapshot under both the fresh and the stale key."""
        data = json.dumps(payload, default=str)
        try:
            await self.backend.set(self._key, data, ex=self._ttl)
            await self.backend.set(self._stale_key, data, ex=self._stale_ttl)
        except Exception as e:
            logger.error("Redis write error: %s", e)
            await self._memory.set(self._key, data, ex=self._ttl)
            await self._memory.set(self._stale_key, data, ex=self._stale_ttl)

    async def _read(self, key: str) -> Optional[dict]:
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            logger.error("Redis read error: %s", e)
            raw = await self._memory.get(key)
        return json.loads(raw) if raw else None

    async def get_cached_scores(self, allow_stale: bool = True) -> Optional[dict]:
        """The fresh snapshot, else (optionally) the stale one, flagged ``stale``."""
        fresh = await self._read(self._key)
        if fresh is not None:
            return {**fresh, "cached": True, "stale": False}
        if not allow_stale:
            return None
        stale = await self._read(self._stale_key)
        if stale is not None:
            return {**stale, "cached": True, "stale": True}
        return None

    async def close(self):
        if self._redis:
            await self._redis.close()
