"""Main library client for standalone usage."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from libris.config import LibrisSettings
from libris.core.models import BatchSummary, ProgressCallback
from libris.engine.cache import MemoryCache, MetadataCache, RedisCache
from libris.engine.cancellation import CancellationToken
from libris.engine.circuit_breaker import CircuitBreakerRegistry
from libris.engine.config import EngineConfig
from libris.engine.resolver import ISBNResolver
from libris.engine.strategy import Outcome
from libris.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


async def create_cache(settings: LibrisSettings) -> MetadataCache | None:
    """Build the cache backend selected by settings (``None`` when caching is off)."""
    if not settings.enable_caching:
        return None

    if settings.cache_backend == "redis":
        if settings.redis_url is None:
            raise ValueError("LIBRIS_REDIS_URL is required for the redis cache backend")
        cache = RedisCache(str(settings.redis_url), ttl_seconds=settings.cache_ttl)
        await cache.connect()
        logger.info("Redis cache initialized")
        return cache

    return MemoryCache(ttl_seconds=settings.cache_ttl, max_entries=settings.cache_max_entries)


class LibrisClient:
    """
    Main client for the libris library.

    Owns the provider clients, the cache and the shared circuit breakers,
    and hands out resolvers bound to them.

    Usage:
        async with LibrisClient() as client:
            outcome = await client.resolve_one("978-0-13-468599-1")
            outcomes = await client.resolve(["9780134685991", "0-306-40615-2"])

    Settings are loaded from environment variables or can be passed explicitly.
    """

    def __init__(
        self,
        settings: LibrisSettings | None = None,
        *,
        registry: ProviderRegistry | None = None,
        cache: MetadataCache | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Application settings. If not provided, loaded from environment.
            registry: Providers to use instead of the ones settings would build.
            cache: Cache to use instead of the one settings would build.
        """
        self._settings = settings or LibrisSettings()
        self._config = EngineConfig.from_settings(self._settings)
        self._cache = cache
        self._owns_cache = cache is None
        self._registry = registry
        self._owns_registry = registry is None
        self._breakers = CircuitBreakerRegistry(
            failure_threshold=self._settings.circuit_breaker_threshold,
            recovery_timeout=self._settings.circuit_breaker_timeout,
        )
        self._resolvers: dict[str, ISBNResolver] = {}

    async def __aenter__(self) -> LibrisClient:
        """Initialize resources on context entry."""
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Clean up resources on context exit."""
        await self.close()

    async def _initialize(self) -> None:
        if self._owns_registry:
            self._registry = ProviderRegistry.from_settings(self._settings)
        if self._owns_cache:
            self._cache = await create_cache(self._settings)

    async def close(self) -> None:
        """Close all resources."""
        if self._registry and self._owns_registry:
            await self._registry.close()
            self._registry = None

        if self._owns_cache and isinstance(self._cache, RedisCache):
            await self._cache.close()
        if self._owns_cache:
            self._cache = None
        self._resolvers.clear()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def breakers(self) -> CircuitBreakerRegistry:
        return self._breakers

    @property
    def cache(self) -> MetadataCache | None:
        return self._cache

    @property
    def registry(self) -> ProviderRegistry:
        if self._registry is None:
            raise RuntimeError("Client not initialized. Use 'async with LibrisClient() as client:'")
        return self._registry

    def resolver(self, provider: str | None = None) -> ISBNResolver:
        """Get the resolver for a provider (the configured default if omitted)."""
        client = self.registry.get(provider)
        resolver = self._resolvers.get(client.name)
        if resolver is None:
            resolver = ISBNResolver(
                client,
                config=self._config,
                cache=self._cache,
                breakers=self._breakers,
                rate_profile=self.registry.rate_profile(client.name),
            )
            self._resolvers[client.name] = resolver
        return resolver

    async def resolve(
        self,
        identifiers: Iterable[str],
        *,
        provider: str | None = None,
        config: EngineConfig | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Outcome]:
        """Resolve identifiers to outcomes in input order."""
        return await self.resolver(provider).resolve(
            identifiers,
            config=config,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

    async def resolve_with_summary(
        self,
        identifiers: Iterable[str],
        *,
        provider: str | None = None,
        config: EngineConfig | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[list[Outcome], BatchSummary]:
        return await self.resolver(provider).resolve_with_summary(
            identifiers,
            config=config,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

    async def resolve_one(
        self,
        identifier: str,
        *,
        provider: str | None = None,
        config: EngineConfig | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Outcome:
        return await self.resolver(provider).resolve_one(
            identifier,
            config=config,
            cancel_token=cancel_token,
        )


# Convenience function for one-off resolutions
async def resolve_isbns(
    identifiers: Iterable[str],
    *,
    settings: LibrisSettings | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[Outcome]:
    """
    Resolve ISBNs (convenience function).

    For repeated resolutions, use LibrisClient so the cache and circuit
    breakers persist between calls.
    """
    async with LibrisClient(settings) as client:
        return await client.resolve(identifiers, on_progress=on_progress)
