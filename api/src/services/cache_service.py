"""
Application cache.

Provides:
- DistributedCache backends: in-process memory and Redis
- CacheService implementations: NoCacheService and DistributedCacheService
- build_cache_service(): picks the implementation from settings

Values are stored as JSON. Cache reads and writes are best effort: backend
failures are logged and reported as a miss so that callers fall back to the
source of truth.
"""

import json
import math
import time
from typing import Any, Awaitable, Callable, Optional, Protocol, Tuple

import redis.asyncio as aioredis
import structlog
from cachetools import TLRUCache
from fastapi.encoders import jsonable_encoder

from api.src.config import (
    MEMORY_DISTRIBUTED_CACHE,
    NO_CACHE,
    REDIS_CACHE,
    Settings,
)

logger = structlog.get_logger(__name__)

# ============================================================================
# Distributed Cache Backends
# ============================================================================


class DistributedCache(Protocol):
    """Byte-oriented key/value store with optional expiry."""

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def close(self) -> None:
        ...


def _time_to_use(key: str, entry: Tuple[bytes, Optional[float]], now: float) -> float:
    ttl = entry[1]
    return now + ttl if ttl is not None else math.inf


class MemoryDistributedCache:
    """
    In-process cache for single-instance deployments.

    Backed by a cachetools TLRUCache: each entry carries its own lifetime,
    expired entries are purged on every write and the least recently used
    entries are evicted once max_entries is reached.
    """

    def __init__(self, max_entries: int = 10000, clock: Callable[[], float] = time.monotonic):
        self._entries: TLRUCache = TLRUCache(maxsize=max_entries, ttu=_time_to_use, timer=clock)

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        self._entries[key] = (value, ttl)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def close(self) -> None:
        self._entries.clear()


class RedisDistributedCache:
    """Redis-backed cache shared by every API instance."""

    def __init__(self, client: aioredis.Redis, instance_name: str = ""):
        """
        Initialize Redis cache.

        Args:
            client: redis.asyncio client
            instance_name: Prefix applied to every key
        """
        self.client = client
        self.instance_name = instance_name

    @classmethod
    def from_url(cls, url: str, instance_name: str = "") -> "RedisDistributedCache":
        return cls(aioredis.from_url(url), instance_name)

    def _key(self, key: str) -> str:
        return f"{self.instance_name}{key}"

    async def get(self, key: str) -> Optional[bytes]:
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        if ttl is not None:
            await self.client.set(self._key(key), value, px=int(ttl * 1000))
        else:
            await self.client.set(self._key(key), value)

    async def remove(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def close(self) -> None:
        await self.client.aclose()


# ============================================================================
# Cache Services
# ============================================================================


class CacheService(Protocol):
    """Object cache used by request handlers."""

    async def get_object(self, key: str) -> Optional[Any]:
        ...

    async def save_object(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    async def get_or_save(
        self,
        key: str,
        source: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None
    ) -> Any:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def close(self) -> None:
        ...


class NoCacheService:
    """Cache that never stores anything."""

    async def get_object(self, key: str) -> Optional[Any]:
        return None

    async def save_object(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        return None

    async def get_or_save(
        self,
        key: str,
        source: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None
    ) -> Any:
        return await source()

    async def remove(self, key: str) -> None:
        return None

    async def close(self) -> None:
        return None


class DistributedCacheService:
    """JSON object cache on top of a DistributedCache backend."""

    def __init__(self, backend: DistributedCache):
        """
        Initialize cache service.

        Args:
            backend: Byte-level cache backend
        """
        self.backend = backend

    async def get_object(self, key: str) -> Optional[Any]:
        """
        Read and decode a cached object.

        Args:
            key: Cache key

        Returns:
            Decoded object, or None on a miss or backend failure
        """
        try:
            raw = await self.backend.get(key)
            if raw is None:
                return None
            return json.loads(raw.decode("utf-8"))
        except Exception as e:
            logger.error("cache_read_failed", key=key, error=str(e))
            return None

    async def save_object(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Encode and store an object.

        Args:
            key: Cache key
            value: JSON-encodable value (pydantic models are supported)
            ttl: Lifetime in seconds, None for no expiry
        """
        try:
            raw = json.dumps(jsonable_encoder(value)).encode("utf-8")
            await self.backend.set(key, raw, ttl)
        except Exception as e:
            logger.error("cache_write_failed", key=key, error=str(e))

    async def get_or_save(
        self,
        key: str,
        source: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None
    ) -> Any:
        """
        Return the cached object, loading and caching it on a miss.

        Args:
            key: Cache key
            source: Coroutine factory producing the value on a miss
            ttl: Lifetime in seconds for a freshly loaded value

        Returns:
            Cached or freshly loaded value
        """
        cached = await self.get_object(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return cached

        logger.debug("cache_miss", key=key)
        value = await source()
        await self.save_object(key, value, ttl)
        return value

    async def remove(self, key: str) -> None:
        try:
            await self.backend.remove(key)
        except Exception as e:
            logger.error("cache_remove_failed", key=key, error=str(e))

    async def close(self) -> None:
        await self.backend.close()


def build_cache_service(settings: Settings) -> CacheService:
    """
    Select the cache implementation from application_cache.implementation.

    Args:
        settings: Application settings

    Returns:
        Cache service instance
    """
    implementation = settings.application_cache.implementation

    if implementation == NO_CACHE:
        service = NoCacheService()
    elif implementation == REDIS_CACHE:
        service = DistributedCacheService(
            RedisDistributedCache.from_url(
                settings.redis_cache.configuration,
                settings.redis_cache.instance_name
            )
        )
    elif implementation == MEMORY_DISTRIBUTED_CACHE:
        service = DistributedCacheService(
            MemoryDistributedCache(max_entries=settings.application_cache.memory_max_entries)
        )
    else:
        raise ValueError(f"Unknown cache implementation: {implementation}")

    logger.info("cache_service_selected", implementation=implementation)
    return service
