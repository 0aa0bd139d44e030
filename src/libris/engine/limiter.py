"""Admission control for provider calls: a concurrency gate plus a token bucket."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator

from libris.core.exceptions import LibrisError

logger = logging.getLogger(__name__)

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 32


class TokenBucket:
    """Async rate limiter with token bucket algorithm."""

    def __init__(
        self,
        rate_per_second: float,
        capacity: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        self.rate = rate_per_second
        self.capacity = capacity if capacity is not None else max(1, math.ceil(rate_per_second))
        if self.capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.capacity)
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        """Tokens currently available (refilled lazily)."""
        return min(
            float(self.capacity),
            self._tokens + (self._clock() - self._updated_at) * self.rate,
        )

    def set_rate(self, rate_per_second: float) -> None:
        """Change the refill rate; tokens earned so far are kept."""
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        self._refill()
        self.rate = rate_per_second

    async def acquire(self) -> None:
        """Wait until a token is available, then take it."""
        # Waiters queue on the lock so tokens are handed out in arrival order
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                await self._sleep((1.0 - self._tokens) / self.rate)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._updated_at
        if elapsed > 0:
            self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)
        self._updated_at = now


class AdaptiveRateLimiter:
    """
    Moves a token bucket's rate between ``min_rate`` and ``max_rate`` as
    provider calls succeed or fail.

    After every recorded call, the success rate and mean response time over
    the last ``window`` calls are scored: 60% for success against a 95%
    target, 40% for latency against a one-second target. A score above 0.9
    moves the rate ``adaptation_rate`` of the remaining distance toward
    ``max_rate``; a score below 0.7 moves it the same fraction toward
    ``min_rate``.
    """

    TARGET_SUCCESS_RATE = 0.95
    TARGET_RESPONSE_TIME = 1.0

    def __init__(
        self,
        bucket: TokenBucket,
        min_rate: float = 2.0,
        max_rate: float = 20.0,
        adaptation_rate: float = 0.2,
        window: int = 20,
        initial_rate: float | None = None,
    ) -> None:
        if not 0 < min_rate <= max_rate:
            raise ValueError("rates must satisfy 0 < min_rate <= max_rate")
        if not 0 < adaptation_rate <= 1:
            raise ValueError("adaptation_rate must be in (0, 1]")
        self.bucket = bucket
        self.min_rate = min_rate
        self.max_rate = max_rate
        self.adaptation_rate = adaptation_rate
        self.base_rate = self._clamp(bucket.rate)
        self._samples: deque[tuple[bool, float]] = deque(maxlen=window)
        bucket.set_rate(self._clamp(initial_rate or self.base_rate))

    @property
    def rate(self) -> float:
        return self.bucket.rate

    def record(self, success: bool, response_time: float) -> float:
        """Add one call's outcome and re-score the window. Returns the new rate."""
        self._samples.append((success, response_time))
        successes = sum(1 for ok, _ in self._samples if ok)
        mean_time = sum(t for _, t in self._samples) / len(self._samples)
        return self.adapt(successes / len(self._samples), mean_time)

    def adapt(self, success_rate: float, average_response_time: float) -> float:
        success_score = min(success_rate / self.TARGET_SUCCESS_RATE, 1.0)
        response_score = min(self.TARGET_RESPONSE_TIME / max(average_response_time, 0.01), 1.0)
        score = success_score * 0.6 + response_score * 0.4

        rate = self.bucket.rate
        if score > 0.9:
            rate = min(rate + (self.max_rate - rate) * self.adaptation_rate, self.max_rate)
        elif score < 0.7:
            rate = max(rate - (rate - self.min_rate) * self.adaptation_rate, self.min_rate)

        if rate != self.bucket.rate:
            logger.debug(
                f"Adaptive rate {self.bucket.rate:.2f}/s -> {rate:.2f}/s (score {score:.2f})"
            )
            self.bucket.set_rate(rate)
        return rate

    def reset(self) -> None:
        self._samples.clear()
        self.bucket.set_rate(self.base_rate)

    def _clamp(self, rate: float) -> float:
        return min(max(rate, self.min_rate), self.max_rate)


class ConcurrencyLimiter:
    """
    Bounds simultaneous provider calls and, optionally, their start rate.

    Usage:
        async with limiter.slot():
            await provider.lookup_one(isbn)

    The admission slot is taken first and released on every exit path,
    including cancellation while waiting for a token. With an adaptive
    limiter attached, each admitted call's outcome and duration feed it:
    transient failures count against the provider, other errors are not
    recorded.
    """

    def __init__(
        self,
        max_concurrent: int = 5,
        rate_limit_per_second: float | None = None,
        *,
        burst_size: int | None = None,
        bucket: TokenBucket | None = None,
        adaptive: AdaptiveRateLimiter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not MIN_CONCURRENCY <= max_concurrent <= MAX_CONCURRENCY:
            raise ValueError(
                f"max_concurrent must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, "
                f"got {max_concurrent}"
            )
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        if bucket is None and adaptive is not None:
            bucket = adaptive.bucket
        if bucket is None and rate_limit_per_second is not None:
            bucket = TokenBucket(rate_limit_per_second, burst_size)
        self.bucket = bucket
        self.adaptive = adaptive
        self._clock = clock
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously admitted calls seen so far."""
        return self._peak_in_flight

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold an admission slot (and a rate token, when limited) for one call."""
        async with self._semaphore:
            if self.bucket is not None:
                await self.bucket.acquire()
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            started = self._clock()
            try:
                yield
            except LibrisError as e:
                if self.adaptive is not None and e.retryable:
                    self.adaptive.record(False, self._clock() - started)
                raise
            else:
                if self.adaptive is not None:
                    self.adaptive.record(True, self._clock() - started)
            finally:
                self._in_flight -= 1
