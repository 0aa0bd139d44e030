"""ISBN resolver: the engine's public entry point."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from uuid import uuid4

from libris.core.exceptions import CacheError, InvalidInputError
from libris.core.identifiers import IdentifierRejection, normalize_identifier
from libris.core.models import (
    BatchSummary,
    BookMetadata,
    Failed,
    Found,
    ProgressCallback,
)
from libris.core.types import ErrorKind, ExecutionPath
from libris.engine.cache import MemoryCache, MetadataCache
from libris.engine.cancellation import CancellationToken
from libris.engine.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from libris.engine.config import EngineConfig
from libris.engine.limiter import AdaptiveRateLimiter, ConcurrencyLimiter, TokenBucket
from libris.engine.retry import RetryPolicy
from libris.engine.strategy import BatchStrategySelector, GuardedProvider, Outcome
from libris.providers.base import ProviderClient, RateProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchRequest:
    """Unique canonical identifiers still needing a provider, in first-seen order."""

    identifiers: tuple[str, ...]
    config: EngineConfig
    request_id: str = field(default_factory=lambda: uuid4().hex)


class _Progress:
    """Reports ``(completed, total, found)`` over input positions."""

    def __init__(self, total: int, callback: ProgressCallback | None) -> None:
        self.total = total
        self.completed = 0
        self.found = 0
        self._callback = callback

    def start(self) -> None:
        self._emit()

    def advance(self, found: bool) -> None:
        self.completed += 1
        if found:
            self.found += 1
        self._emit()

    def _emit(self) -> None:
        if self._callback is not None:
            self._callback(self.completed, self.total, self.found)


class ISBNResolver:
    """
    Resolves ISBNs to book metadata through one provider.

    Guarantees, for every call:
    - one outcome per input position, in input order (duplicates included)
    - malformed identifiers fail fast as ``INVALID_INPUT`` without any I/O
    - cache hits never touch the limiter, breaker, retry policy or provider
    - one identifier's failure never affects another's outcome

    The breaker registry is shared state: resolvers built with the same
    registry see the same provider health. A per-call config that sets the
    breaker threshold or cool-down gets a breaker with those settings, and
    one that sets ``cache_ttl`` stores its results with that TTL.

    Rate limiting uses the call's explicit rate, else ``rate_profile``
    (by default the provider's own published profile).
    """

    def __init__(
        self,
        provider: ProviderClient,
        *,
        config: EngineConfig | None = None,
        cache: MetadataCache | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        rate_profile: RateProfile | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.rate_profile = rate_profile or getattr(provider, "rate_profile", None)
        self.config = config or EngineConfig()
        if cache is None and self.config.enable_caching:
            cache = MemoryCache(ttl_seconds=self.config.cache_ttl)
        self.cache = cache
        self.breakers = breakers or CircuitBreakerRegistry(
            failure_threshold=self.config.circuit_breaker_threshold,
            recovery_timeout=self.config.circuit_breaker_timeout,
        )
        self._sleep = sleep
        self._adapted_rate: float | None = None

    async def resolve(
        self,
        identifiers: Iterable[str],
        config: EngineConfig | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Outcome]:
        """
        Resolve identifiers to outcomes, ``output[i]`` answering ``identifiers[i]``.

        Raises:
            InvalidInputError: more identifiers than ``config.max_batch_size``
        """
        outcomes, _ = await self.resolve_with_summary(
            identifiers,
            config=config,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )
        return outcomes

    async def resolve_one(
        self,
        identifier: str,
        config: EngineConfig | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Outcome:
        outcomes = await self.resolve([identifier], config=config, cancel_token=cancel_token)
        return outcomes[0]

    async def resolve_with_summary(
        self,
        identifiers: Iterable[str],
        config: EngineConfig | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[list[Outcome], BatchSummary]:
        """Resolve identifiers and also return aggregate counts for the call."""
        config = config or self.config
        inputs = list(identifiers)
        total = len(inputs)
        if total > config.max_batch_size:
            raise InvalidInputError(
                f"Batch of {total} identifiers exceeds the maximum of {config.max_batch_size}",
                details={"count": total, "max_batch_size": config.max_batch_size},
            )

        start = time.monotonic()
        progress = _Progress(total, on_progress)
        progress.start()

        results: list[Outcome | None] = [None] * total
        positions: dict[str, list[int]] = {}

        for index, raw in enumerate(inputs):
            normalized = normalize_identifier(raw)
            if isinstance(normalized, IdentifierRejection):
                results[index] = Failed(
                    identifier=normalized.raw,
                    error_kind=ErrorKind.INVALID_INPUT,
                    message=normalized.reason,
                )
                logger.debug(f"Rejected identifier {normalized.raw!r}: {normalized.reason}")
                progress.advance(found=False)
            else:
                positions.setdefault(normalized.value, []).append(index)

        fresh: list[tuple[str, BookMetadata]] = []
        cache_hits: set[str] = set()

        def settle(canonical: str, outcome: Outcome) -> None:
            for index in positions[canonical]:
                if results[index] is not None:
                    continue
                results[index] = outcome.for_identifier(inputs[index])
                progress.advance(found=isinstance(outcome, Found))
            if isinstance(outcome, Failed):
                logger.debug(f"Lookup of {canonical} failed ({outcome.error_kind}): {outcome.message}")
            elif isinstance(outcome, Found) and canonical not in cache_hits:
                fresh.append((canonical, outcome.metadata))

        use_cache = config.enable_caching and self.cache is not None
        if use_cache:
            for canonical in positions:
                metadata = await self._cache_get(canonical)
                if metadata is not None:
                    cache_hits.add(canonical)
                    settle(canonical, Found(identifier=canonical, canonical=canonical, metadata=metadata))

        pending = tuple(c for c, idx in positions.items() if results[idx[0]] is None)
        path: ExecutionPath | None = ExecutionPath.CACHE if positions else None
        request: BatchRequest | None = None

        if pending:
            request = BatchRequest(identifiers=pending, config=config)
            path = await self._execute(request, settle, cancel_token)

        for canonical, indexes in positions.items():
            if any(results[i] is None for i in indexes):
                settle(
                    canonical,
                    Failed(
                        identifier=canonical,
                        canonical=canonical,
                        error_kind=ErrorKind.CANCELLED,
                        message="Cancelled before the lookup completed",
                    ),
                )

        if use_cache:
            ttl = config.cache_ttl if "cache_ttl" in config.model_fields_set else None
            for canonical, metadata in fresh:
                await self._cache_put(canonical, metadata, ttl)

        outcomes: list[Outcome] = [outcome for outcome in results if outcome is not None]
        summary = BatchSummary.from_outcomes(
            outcomes,
            provider=self.provider.name,
            path=path,
            request_id=request.request_id if request else None,
            duration_ms=(time.monotonic() - start) * 1000,
        )
        logger.info(
            f"Resolved {summary.total} identifiers via {summary.path or 'none'} "
            f"({len(pending)} unique to fetch): found={summary.found} "
            f"not_found={summary.not_found} failed={summary.failed} "
            f"cached={summary.cached} in {summary.duration_ms:.0f}ms"
        )
        return outcomes, summary

    async def _execute(
        self,
        request: BatchRequest,
        settle: Callable[[str, Outcome], None],
        cancel_token: CancellationToken | None,
    ) -> ExecutionPath:
        config = request.config
        strategy = BatchStrategySelector(config.native_batch_threshold)
        limiter = self._build_limiter(config)
        guarded = GuardedProvider(
            self.provider,
            limiter=limiter,
            retry=RetryPolicy.from_config(config, sleep=self._sleep),
            breaker=self._breaker(config) if config.enable_circuit_breaker else None,
        )

        task = asyncio.ensure_future(strategy.execute(request, guarded, settle))
        remove_callback = None
        if cancel_token is not None:
            loop = asyncio.get_running_loop()
            remove_callback = cancel_token.add_callback(
                lambda: loop.call_soon_threadsafe(task.cancel)
            )

        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if cancel_token is None or not cancel_token.is_cancelled():
                raise
            if current is not None and current.cancelling():
                raise
            logger.info(f"Resolve {request.request_id} cancelled by caller")
            return strategy.select(len(request.identifiers), self.provider)
        finally:
            if remove_callback is not None:
                remove_callback()
            if limiter.adaptive is not None:
                self._adapted_rate = limiter.adaptive.rate

    def _build_limiter(self, config: EngineConfig) -> ConcurrencyLimiter:
        if not config.enable_rate_limiting:
            return ConcurrencyLimiter(config.max_concurrent_requests)

        rate, burst = config.rate_limit(self.rate_profile)
        bucket = TokenBucket(rate, burst)
        adaptive = None
        if config.enable_adaptive_rate_limiting:
            # Start where the previous call left off
            adaptive = AdaptiveRateLimiter(
                bucket,
                min_rate=config.min_rate_limit_per_second,
                max_rate=config.max_rate_limit_per_second,
                initial_rate=self._adapted_rate,
            )
        return ConcurrencyLimiter(config.max_concurrent_requests, bucket=bucket, adaptive=adaptive)

    def _breaker(self, config: EngineConfig) -> CircuitBreaker:
        explicit = config.model_fields_set
        return self.breakers.get(
            self.provider.name,
            failure_threshold=(
                config.circuit_breaker_threshold
                if "circuit_breaker_threshold" in explicit
                else None
            ),
            recovery_timeout=(
                config.circuit_breaker_timeout if "circuit_breaker_timeout" in explicit else None
            ),
        )

    async def _cache_get(self, canonical: str) -> BookMetadata | None:
        assert self.cache is not None
        try:
            return await self.cache.get(canonical)
        except CacheError as e:
            logger.warning(f"Cache read failed for {canonical}, treating as miss: {e}")
            return None

    async def _cache_put(
        self, canonical: str, metadata: BookMetadata, ttl_seconds: int | None
    ) -> None:
        assert self.cache is not None
        try:
            await self.cache.put(canonical, metadata, ttl_seconds)
        except CacheError as e:
            logger.warning(f"Cache write failed for {canonical}: {e}")
