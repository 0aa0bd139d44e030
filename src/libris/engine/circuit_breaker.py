"""
Per-provider circuit breaker.

States:
- CLOSED: normal operation, failures are counted
- OPEN: calls rejected immediately until the cool-down ends
- HALF_OPEN: one trial call admitted to test recovery
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from libris.core.exceptions import CircuitOpenError, LibrisError
from libris.core.types import CircuitStateName

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CircuitState:
    """Point-in-time view of a breaker."""

    name: CircuitStateName
    failure_count: int
    open_until: float | None = None


def is_transient_failure(error: BaseException) -> bool:
    """Whether an error says something about provider health."""
    return isinstance(error, LibrisError) and error.retryable


class CircuitBreaker:
    """
    Circuit breaker guarding one provider.

    Only transient failures (network, timeout, rate limiting, server errors)
    count toward ``failure_threshold``. A not-found answer is a healthy
    response; client-side errors neither trip nor reset the breaker.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if recovery_timeout <= 0:
            raise ValueError("recovery_timeout must be positive")
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitStateName.CLOSED
        self._failure_count = 0
        self._open_until: float | None = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        """Current state; an expired open circuit reads as half-open."""
        name = self._state
        open_until = self._open_until
        if name == CircuitStateName.OPEN and open_until is not None and self._clock() >= open_until:
            name = CircuitStateName.HALF_OPEN
        return CircuitState(name=name, failure_count=self._failure_count, open_until=open_until)

    @property
    def is_open(self) -> bool:
        return self.state.name == CircuitStateName.OPEN

    def before_call(self) -> bool:
        """
        Admit a call or raise ``CircuitOpenError``.

        After the cool-down the first caller becomes the half-open trial;
        everyone else is rejected until that trial reports back. Returns
        True for the trial, which must pass ``trial=True`` when recording
        its outcome.
        """
        with self._lock:
            if self._state == CircuitStateName.CLOSED:
                return False

            now = self._clock()
            if self._state == CircuitStateName.OPEN:
                assert self._open_until is not None
                if now < self._open_until:
                    raise CircuitOpenError(
                        message=f"Circuit open for {self.name}",
                        source=self.name,
                        retry_after=self._open_until - now,
                    )
                self._state = CircuitStateName.HALF_OPEN
                logger.info(f"Circuit for {self.name} half-open, admitting trial call")

            if self._trial_in_flight:
                raise CircuitOpenError(
                    message=f"Circuit for {self.name} is testing recovery",
                    source=self.name,
                    retry_after=0.0,
                )
            self._trial_in_flight = True
            return True

    def record_success(self, trial: bool = False) -> None:
        """Record a healthy response.

        Resets the failure count while CLOSED; only the trial closes a
        half-open circuit. Late reports from calls admitted before the
        circuit opened are ignored.
        """
        with self._lock:
            if self._state == CircuitStateName.CLOSED:
                self._failure_count = 0
            elif trial and self._state == CircuitStateName.HALF_OPEN:
                logger.info(f"Circuit for {self.name} closed")
                self._close()

    def record_failure(self, trial: bool = False) -> None:
        """Record a transient failure - move toward OPEN."""
        with self._lock:
            if self._state == CircuitStateName.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.failure_threshold:
                    self._open()
            elif trial and self._state == CircuitStateName.HALF_OPEN:
                self._failure_count += 1
                self._open()

    def record_neutral(self, trial: bool = False) -> None:
        """Record an outcome that says nothing about provider health."""
        with self._lock:
            if trial:
                self._trial_in_flight = False

    def record(self, error: BaseException | None, *, trial: bool = False) -> None:
        """Classify an attempt's outcome and record it."""
        if error is None:
            self.record_success(trial=trial)
        elif is_transient_failure(error):
            self.record_failure(trial=trial)
        else:
            self.record_neutral(trial=trial)

    def reset(self) -> None:
        with self._lock:
            self._close()

    def _close(self) -> None:
        # Caller holds the lock
        self._state = CircuitStateName.CLOSED
        self._failure_count = 0
        self._open_until = None
        self._trial_in_flight = False

    def _open(self) -> None:
        # Caller holds the lock
        self._state = CircuitStateName.OPEN
        self._open_until = self._clock() + self.recovery_timeout
        self._trial_in_flight = False
        logger.warning(
            f"Circuit for {self.name} opened after {self._failure_count} failures; "
            f"cooling down {self.recovery_timeout:.0f}s"
        )


class CircuitBreakerRegistry:
    """
    One breaker per provider and breaker settings, shared by every engine
    given this registry.

    Calls that override the threshold or cool-down get their own breaker
    for the provider; ``states`` reports the breakers built with the
    registry's own settings.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._breakers: dict[tuple[str, int, float], CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get(
        self,
        provider: str,
        failure_threshold: int | None = None,
        recovery_timeout: float | None = None,
    ) -> CircuitBreaker:
        """Get or create the breaker for a provider with the given settings."""
        threshold = failure_threshold or self.failure_threshold
        timeout = recovery_timeout or self.recovery_timeout
        key = (provider, threshold, float(timeout))
        with self._lock:
            breaker = self._breakers.get(key)
            if breaker is None:
                breaker = CircuitBreaker(
                    provider,
                    failure_threshold=threshold,
                    recovery_timeout=timeout,
                    clock=self._clock,
                )
                self._breakers[key] = breaker
            return breaker

    def states(self) -> dict[str, CircuitState]:
        return {
            name: breaker.state
            for (name, threshold, timeout), breaker in self._breakers.items()
            if threshold == self.failure_threshold and timeout == self.recovery_timeout
        }

    def reset(self) -> None:
        for breaker in list(self._breakers.values()):
            breaker.reset()
