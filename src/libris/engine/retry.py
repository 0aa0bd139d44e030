"""Retry with backoff for transient provider failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, TypeVar

from libris.core.exceptions import LibrisError, RateLimitedError, RequestTimeoutError
from libris.core.types import BackoffStrategy

if TYPE_CHECKING:
    from libris.engine.circuit_breaker import CircuitBreaker
    from libris.engine.config import EngineConfig

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Runs an async operation up to ``attempts`` times.

    Only errors flagged ``retryable`` (network, timeout, rate limiting and
    5xx provider errors) are retried. A rate-limited attempt waits at least
    the provider's Retry-After hint. Each attempt's outcome is reported to
    the breaker, and once the breaker opens no further attempts are made.
    """

    def __init__(
        self,
        attempts: int = 3,
        delay: float = 1.0,
        backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL,
        max_delay: float = 60.0,
        *,
        timeout: float | None = None,
        jitter: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.delay = delay
        self.backoff = backoff
        self.max_delay = max_delay
        self.timeout = timeout
        self.jitter = jitter
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> RetryPolicy:
        return cls(
            attempts=config.retry_attempts,
            delay=config.retry_delay,
            backoff=config.retry_backoff,
            max_delay=config.max_retry_delay,
            timeout=config.request_timeout,
            jitter=config.retry_jitter,
            sleep=sleep,
        )

    def compute_delay(self, retry_number: int, retry_after: float | None = None) -> float:
        """Delay before retry ``retry_number`` (1-based)."""
        if self.backoff == BackoffStrategy.FIXED:
            delay = self.delay
        else:
            delay = self.delay * 2 ** (retry_number - 1)
        if self.jitter and delay > 0:
            # Spread simultaneous retries over 80-120% of the nominal delay
            delay *= random.uniform(0.8, 1.2)  # noqa: S311
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        breaker: CircuitBreaker | None = None,
        *,
        slot: Callable[[], AbstractAsyncContextManager[None]] | None = None,
        label: str = "call",
    ) -> T:
        """
        Run ``operation`` with retries.

        Raises the last error once attempts are exhausted, the error is not
        retryable, or the breaker has opened. ``CircuitOpenError`` from the
        breaker is raised before any network attempt. ``slot`` is entered
        around each attempt (admission waits do not count toward the
        timeout) and released before any back-off sleep.
        """
        last_error: LibrisError | None = None

        for attempt in range(1, self.attempts + 1):
            trial = False
            if breaker is not None:
                if last_error is not None and breaker.is_open:
                    logger.debug(f"{label}: circuit opened, abandoning retries")
                    raise last_error
                trial = breaker.before_call()

            try:
                result = await self._attempt(operation, slot, label)
            except LibrisError as e:
                if breaker is not None:
                    breaker.record(e, trial=trial)
                last_error = e
                if not e.retryable or attempt == self.attempts:
                    raise
                retry_after = e.retry_after if isinstance(e, RateLimitedError) else None
                wait = self.compute_delay(attempt, retry_after)
                logger.warning(
                    f"{label}: attempt {attempt}/{self.attempts} failed ({e.kind}): "
                    f"{e.message}. Retrying in {wait:.1f}s"
                )
                await self._sleep(wait)
            except BaseException:
                # Unexpected errors and cancellation release a half-open trial
                if breaker is not None:
                    breaker.record_neutral(trial=trial)
                raise
            else:
                if breaker is not None:
                    breaker.record_success(trial=trial)
                return result

        # Unreachable: the final attempt either returns or raises
        raise AssertionError("retry loop exited without a result")

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        slot: Callable[[], AbstractAsyncContextManager[None]] | None,
        label: str,
    ) -> T:
        if slot is None:
            return await self._timed(operation, label)
        async with slot():
            return await self._timed(operation, label)

    async def _timed(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        if self.timeout is None:
            return await operation()
        try:
            async with asyncio.timeout(self.timeout):
                return await operation()
        except TimeoutError as e:
            raise RequestTimeoutError(f"{label} timed out after {self.timeout:.1f}s") from e
