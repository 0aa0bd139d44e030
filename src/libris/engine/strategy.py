"""Execution path selection: one native batch call or per-identifier fan-out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from libris.core.exceptions import BatchLookupError, LibrisError, ResolutionError
from libris.core.models import BookMetadata, Failed, Found, NotFound
from libris.core.types import ErrorKind, ExecutionPath
from libris.engine.retry import RetryPolicy
from libris.providers.schemas import BatchLookupResponse, BatchOptions

if TYPE_CHECKING:
    from libris.engine.circuit_breaker import CircuitBreaker
    from libris.engine.limiter import ConcurrencyLimiter
    from libris.engine.resolver import BatchRequest
    from libris.providers.base import ProviderClient

logger = logging.getLogger(__name__)

# Client-side bound for one native batch call; the proxy itself gives up at 45s
NATIVE_BATCH_TIMEOUT = 60.0

Outcome = Found | NotFound | Failed
OutcomeSink = Callable[[str, Outcome], None]


def failed_from_error(canonical: str, error: BaseException) -> Failed:
    """Convert a lookup error into a ``Failed`` outcome."""
    if isinstance(error, LibrisError):
        return Failed(
            identifier=canonical,
            canonical=canonical,
            error_kind=error.kind,
            message=error.message,
            retry_after=getattr(error, "retry_after", None),
        )
    return Failed(
        identifier=canonical,
        canonical=canonical,
        error_kind=ErrorKind.PROVIDER_ERROR,
        message=f"Unexpected provider error: {error}",
    )


class GuardedProvider:
    """
    A provider behind the admission limiter, circuit breaker and retry policy.

    Every network call the engine makes goes through here, so the three
    guards apply identically to single and native batch lookups.
    """

    def __init__(
        self,
        provider: ProviderClient,
        limiter: ConcurrencyLimiter,
        retry: RetryPolicy,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.provider = provider
        self.limiter = limiter
        self.retry = retry
        self.breaker = breaker

    @property
    def name(self) -> str:
        return self.provider.name

    async def lookup_one(self, isbn: str) -> BookMetadata | None:
        return await self.retry.run(
            lambda: self.provider.lookup_one(isbn),
            self.breaker,
            slot=self.limiter.slot,
            label=f"{self.name} lookup {isbn}",
        )

    async def lookup_batch(
        self,
        isbns: Sequence[str],
        options: BatchOptions | None = None,
    ) -> BatchLookupResponse:
        # Single attempt: a failed batch falls back to fan-out, which retries per item
        policy = RetryPolicy(
            attempts=1,
            timeout=max(self.retry.timeout or 0.0, NATIVE_BATCH_TIMEOUT),
        )
        return await policy.run(
            lambda: self.provider.lookup_batch(isbns, options),
            self.breaker,
            slot=self.limiter.slot,
            label=f"{self.name} batch of {len(isbns)}",
        )


class BatchStrategySelector:
    """
    Chooses and runs the execution path for the non-cached identifiers of a
    resolve call.

    Native batch is used only when the provider supports it and there are at
    least ``native_batch_threshold`` unique identifiers. A failed native call
    falls back to fan-out for the whole set, once.
    """

    def __init__(self, native_batch_threshold: int = 10) -> None:
        if native_batch_threshold < 1:
            raise ValueError("native_batch_threshold must be at least 1")
        self.native_batch_threshold = native_batch_threshold

    def select(self, unique_count: int, provider: ProviderClient) -> ExecutionPath:
        if provider.supports_batch and unique_count >= self.native_batch_threshold:
            return ExecutionPath.NATIVE_BATCH
        return ExecutionPath.FAN_OUT

    async def execute(
        self,
        request: BatchRequest,
        provider: GuardedProvider,
        on_outcome: OutcomeSink,
    ) -> ExecutionPath:
        """
        Resolve every identifier in ``request``, reporting each outcome to
        ``on_outcome`` as it is produced. Returns the path that produced them.
        """
        path = self.select(len(request.identifiers), provider.provider)

        if path == ExecutionPath.NATIVE_BATCH:
            try:
                outcomes = await self._native_batch(request, provider)
            except ResolutionError as e:
                logger.warning(
                    f"Native batch via {provider.name} failed ({e.kind}): {e.message}; "
                    f"falling back to fan-out for {len(request.identifiers)} identifiers"
                )
            except Exception:
                logger.exception(
                    f"Native batch via {provider.name} raised unexpectedly; "
                    f"falling back to fan-out for {len(request.identifiers)} identifiers"
                )
            else:
                for canonical, outcome in outcomes.items():
                    on_outcome(canonical, outcome)
                return path

        await self._fan_out(request, provider, on_outcome)
        return ExecutionPath.FAN_OUT

    async def _native_batch(
        self,
        request: BatchRequest,
        provider: GuardedProvider,
    ) -> dict[str, Outcome]:
        response = await provider.lookup_batch(request.identifiers)

        by_isbn = response.by_isbn()
        missing = [c for c in request.identifiers if c not in by_isbn]
        if missing:
            raise BatchLookupError(
                message=f"Batch response missing {len(missing)} of {len(request.identifiers)} results",
                source=provider.name,
                partial=True,
                details={"missing": missing[:10]},
            )

        outcomes: dict[str, Outcome] = {}
        for canonical in request.identifiers:
            item = by_isbn[canonical]
            if item.found and item.metadata is not None:
                outcomes[canonical] = Found(
                    identifier=canonical, canonical=canonical, metadata=item.metadata
                )
            elif item.error and "not found" not in item.error.lower():
                outcomes[canonical] = Failed(
                    identifier=canonical,
                    canonical=canonical,
                    error_kind=ErrorKind.PROVIDER_ERROR,
                    message=item.error,
                )
            else:
                outcomes[canonical] = NotFound(identifier=canonical, canonical=canonical)
        return outcomes

    async def _fan_out(
        self,
        request: BatchRequest,
        provider: GuardedProvider,
        on_outcome: OutcomeSink,
    ) -> None:
        async def run(canonical: str) -> None:
            on_outcome(canonical, await self._lookup_one(provider, canonical))

        await asyncio.gather(*(run(canonical) for canonical in request.identifiers))

    async def _lookup_one(self, provider: GuardedProvider, canonical: str) -> Outcome:
        try:
            metadata = await provider.lookup_one(canonical)
        except ResolutionError as e:
            return failed_from_error(canonical, e)
        except Exception as e:
            logger.exception(f"Unexpected error looking up {canonical} via {provider.name}")
            return failed_from_error(canonical, e)

        if metadata is None:
            return NotFound(identifier=canonical, canonical=canonical)
        return Found(identifier=canonical, canonical=canonical, metadata=metadata)
