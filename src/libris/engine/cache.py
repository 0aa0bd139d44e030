"""Metadata caches keyed by canonical ISBN."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from libris.core.exceptions import CacheError
from libris.core.models import BookMetadata
from libris.core.types import ResultSource

logger = logging.getLogger(__name__)


class CacheKeys:
    """Cache key builders for consistent key formatting."""

    PREFIX = "libris"

    @classmethod
    def isbn(cls, canonical: str) -> str:
        """Key for resolved metadata by canonical ISBN."""
        return f"{cls.PREFIX}:isbn:{canonical}"

    @classmethod
    def isbn_pattern(cls) -> str:
        """Match pattern covering every ISBN key."""
        return f"{cls.PREFIX}:isbn:*"


@runtime_checkable
class MetadataCache(Protocol):
    """Async cache of resolved metadata.

    ``get`` returns a copy stamped with ``ResultSource.CACHE`` provenance.
    ``put`` takes an optional per-entry TTL overriding the cache default.
    """

    async def get(self, identifier: str) -> BookMetadata | None: ...

    async def put(
        self, identifier: str, metadata: BookMetadata, ttl_seconds: int | None = None
    ) -> None: ...

    async def clear(self) -> None: ...

    async def size(self) -> int: ...


@dataclass(frozen=True, slots=True)
class CacheEntry:
    metadata: BookMetadata
    expires_at: float


class MemoryCache:
    """
    In-process cache with TTL expiry and LRU eviction.

    Entries expire ``ttl_seconds`` (or the TTL given to ``put``) after
    insertion and are dropped lazily on read. When ``max_entries`` is set
    the least recently used entry is evicted on overflow.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600 * 24,
        max_entries: int | None = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    async def get(self, identifier: str) -> BookMetadata | None:
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[identifier]
                return None
            self._entries.move_to_end(identifier)
        return entry.metadata.with_provenance(source=ResultSource.CACHE)

    async def put(
        self, identifier: str, metadata: BookMetadata, ttl_seconds: int | None = None
    ) -> None:
        ttl = ttl_seconds or self.ttl_seconds
        with self._lock:
            self._entries[identifier] = CacheEntry(metadata=metadata, expires_at=self._clock() + ttl)
            self._entries.move_to_end(identifier)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug(f"Evicted {evicted} from memory cache")

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def size(self) -> int:
        """Number of live entries; expired ones are purged first."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]
            return len(self._entries)


class RedisCache:
    """Redis-backed cache storing metadata as JSON with a per-key TTL."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 3600 * 24,
        max_connections: int = 20,
    ) -> None:
        self._redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._max_connections = max_connections
        self._pool: aioredis.ConnectionPool | None = None
        self._redis: aioredis.Redis | None = None

    @classmethod
    def from_client(cls, client: aioredis.Redis, ttl_seconds: int = 3600 * 24) -> RedisCache:
        """Wrap an existing client (the caller keeps ownership of its pool)."""
        cache = cls(redis_url="", ttl_seconds=ttl_seconds)
        cache._redis = client
        return cache

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis is not None:
            return
        self._pool = aioredis.ConnectionPool.from_url(
            self._redis_url,
            max_connections=self._max_connections,
            decode_responses=True,
        )
        self._redis = aioredis.Redis(connection_pool=self._pool)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._pool:
            if self._redis:
                await self._redis.aclose()
            await self._pool.disconnect()
        self._redis = None
        self._pool = None

    @property
    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            raise CacheError("Redis cache is not connected")
        return self._redis

    async def get(self, identifier: str) -> BookMetadata | None:
        key = CacheKeys.isbn(identifier)
        try:
            value = await self._client.get(key)
        except RedisError as e:
            raise CacheError(f"Redis get failed for {key}: {e}") from e
        if value is None:
            return None
        try:
            metadata = BookMetadata.model_validate_json(value)
        except ValidationError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None
        return metadata.with_provenance(source=ResultSource.CACHE)

    async def put(
        self, identifier: str, metadata: BookMetadata, ttl_seconds: int | None = None
    ) -> None:
        key = CacheKeys.isbn(identifier)
        try:
            await self._client.set(
                key, metadata.model_dump_json(), ex=ttl_seconds or self.ttl_seconds
            )
        except RedisError as e:
            raise CacheError(f"Redis set failed for {key}: {e}") from e

    async def clear(self) -> None:
        try:
            keys = [key async for key in self._client.scan_iter(match=CacheKeys.isbn_pattern())]
            if keys:
                await self._client.delete(*keys)
        except RedisError as e:
            raise CacheError(f"Redis clear failed: {e}") from e

    async def size(self) -> int:
        try:
            count = 0
            async for _ in self._client.scan_iter(match=CacheKeys.isbn_pattern()):
                count += 1
            return count
        except RedisError as e:
            raise CacheError(f"Redis scan failed: {e}") from e

    async def __aenter__(self) -> RedisCache:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
