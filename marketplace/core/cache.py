"""Response cache for read-only listing queries.

Only successful JSON bodies are cached. Entries expire after a fixed TTL and
can be dropped early by key prefix when the underlying listings change.
"""

import hashlib
import json
import logging
import time
from typing import Any, Protocol

import redis.asyncio as redis

from marketplace.config import settings

logger = logging.getLogger(__name__)

LISTINGS_PREFIX = "listings"


def build_cache_key(prefix: str, path: str, params: dict[str, Any]) -> str:
    """Build a deterministic key from a request path and its query parameters."""
    normalized = "&".join(f"{key}={params[key]}" for key in sorted(params))
    digest = hashlib.sha1(f"{path}?{normalized}".encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


class ResponseCache(Protocol):
    """Interface every cache backend implements."""

    ttl_seconds: int

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def invalidate_prefix(self, prefix: str) -> None: ...

    async def close(self) -> None: ...


class MemoryResponseCache:
    """In-process cache, one per worker."""

    def __init__(self, ttl_seconds: int = 60) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: dict[str, tuple[float, Any]] = {}

    def _cleanup_expired(self) -> None:
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]

    async def get(self, key: str) -> Any | None:
        self._cleanup_expired()
        entry = self._entries.get(key)
        return entry[1] if entry else None

    async def set(self, key: str, value: Any) -> None:
        self._entries[key] = (time.monotonic() + self.ttl_seconds, value)

    async def invalidate_prefix(self, prefix: str) -> None:
        for key in [k for k in self._entries if k.startswith(f"{prefix}:")]:
            del self._entries[key]

    async def close(self) -> None:
        self._entries.clear()


class RedisResponseCache:
    """Cache shared by all workers through Redis.

    Redis failures degrade to cache misses.
    """

    def __init__(self, redis_url: str | None = None, ttl_seconds: int = 60) -> None:
        self.ttl_seconds = ttl_seconds
        self._redis = redis.from_url(
            redis_url or settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._redis.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def invalidate_prefix(self, prefix: str) -> None:
        try:
            keys = [key async for key in self._redis.scan_iter(match=f"{prefix}:*")]
            if keys:
                await self._redis.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Cache invalidation failed for prefix {prefix}: {e}")

    async def close(self) -> None:
        await self._redis.aclose()


def create_response_cache() -> ResponseCache:
    """Build the cache backend selected in settings."""
    if settings.cache_backend == "redis":
        return RedisResponseCache(ttl_seconds=settings.cache_ttl_seconds)
    return MemoryResponseCache(ttl_seconds=settings.cache_ttl_seconds)
