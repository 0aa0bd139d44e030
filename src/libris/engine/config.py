"""Per-invocation execution configuration for the resolution engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from libris.core.normalization import to_camel_case
from libris.core.types import BackoffStrategy, NetworkCondition

if TYPE_CHECKING:
    from libris.config import LibrisSettings
    from libris.providers.base import RateProfile

# Token rate used when neither the call nor the provider sets one
DEFAULT_RATE_LIMIT_PER_SECOND = 10.0

# Named presets for import workloads
_PRESETS: dict[str, dict[str, Any]] = {
    "conservative": {
        "max_concurrent_requests": 2,
        "rate_limit_per_second": 0.5,
        "rate_limit_burst_size": 5,
        "enable_rate_limiting": True,
    },
    "aggressive": {
        "max_concurrent_requests": 3,
        "rate_limit_per_second": 1.0,
        "rate_limit_burst_size": 10,
        "enable_rate_limiting": True,
    },
    "sequential": {
        "max_concurrent_requests": 1,
        "rate_limit_per_second": 5.0,
        "rate_limit_burst_size": 5,
        "enable_rate_limiting": True,
    },
    "unlimited": {
        "max_concurrent_requests": 6,
        "rate_limit_per_second": 100.0,
        "rate_limit_burst_size": 100,
        "enable_rate_limiting": False,
    },
}

_NETWORK_PRESETS: dict[NetworkCondition, str] = {
    NetworkCondition.EXCELLENT: "aggressive",
    NetworkCondition.GOOD: "conservative",
    NetworkCondition.POOR: "sequential",
    NetworkCondition.OFFLINE: "sequential",
}


class EngineConfig(BaseModel):
    """
    Execution configuration for one resolve call.

    Accepts both snake_case names and the camelCase option names used by
    import clients (``maxConcurrentRequests``, ``cacheTTL``, ...).

    When ``rate_limit_per_second`` is unset, rate limiting uses the
    provider's published profile, falling back to 10 calls per second.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel_case,
        populate_by_name=True,
    )

    max_concurrent_requests: int = Field(default=5, ge=1, le=32)
    request_timeout: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_delay: float = Field(default=1.0, ge=0)
    retry_backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    retry_jitter: bool = True
    max_retry_delay: float = Field(default=60.0, ge=0)
    rate_limit_per_second: float | None = Field(default=None, gt=0)
    rate_limit_burst_size: int | None = Field(default=None, ge=1)
    enable_rate_limiting: bool = False
    enable_adaptive_rate_limiting: bool = False
    min_rate_limit_per_second: float = Field(default=2.0, gt=0)
    max_rate_limit_per_second: float = Field(default=20.0, gt=0)
    enable_circuit_breaker: bool = True
    circuit_breaker_threshold: int = Field(default=3, ge=1)
    circuit_breaker_timeout: float = Field(default=30.0, gt=0)
    enable_caching: bool = True
    cache_ttl: int = Field(default=3600 * 24, ge=1, alias="cacheTTL")
    max_batch_size: int = Field(default=100, ge=1)
    native_batch_threshold: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def _check_rate_bounds(self) -> EngineConfig:
        if self.min_rate_limit_per_second > self.max_rate_limit_per_second:
            raise ValueError("min_rate_limit_per_second must not exceed max_rate_limit_per_second")
        return self

    def rate_limit(self, profile: RateProfile | None = None) -> tuple[float, int | None]:
        """Token rate and burst size to apply; explicit options win over the profile."""
        if self.rate_limit_per_second is not None:
            return self.rate_limit_per_second, self.rate_limit_burst_size
        if profile is not None:
            return profile.rate_per_second, self.rate_limit_burst_size or profile.burst
        return DEFAULT_RATE_LIMIT_PER_SECOND, self.rate_limit_burst_size

    @classmethod
    def preset(cls, name: str, **overrides: Any) -> EngineConfig:
        """Build a named preset (conservative, aggressive, sequential, unlimited)."""
        try:
            values = _PRESETS[name]
        except KeyError:
            raise ValueError(f"Unknown engine preset: {name}") from None
        return cls(**{**values, **overrides})

    @classmethod
    def conservative(cls, **overrides: Any) -> EngineConfig:
        """Low concurrency and a slow token rate; the safe default for imports."""
        return cls.preset("conservative", **overrides)

    @classmethod
    def aggressive(cls, **overrides: Any) -> EngineConfig:
        return cls.preset("aggressive", **overrides)

    @classmethod
    def sequential(cls, **overrides: Any) -> EngineConfig:
        """One call at a time, for debugging or unstable connections."""
        return cls.preset("sequential", **overrides)

    @classmethod
    def unlimited(cls, **overrides: Any) -> EngineConfig:
        return cls.preset("unlimited", **overrides)

    @classmethod
    def for_network_condition(
        cls, condition: NetworkCondition | str, **overrides: Any
    ) -> EngineConfig:
        """Pick the preset suited to the observed network quality."""
        return cls.preset(_NETWORK_PRESETS[NetworkCondition(condition)], **overrides)

    @classmethod
    def from_settings(cls, settings: LibrisSettings) -> EngineConfig:
        """Build the engine defaults from application settings."""
        return cls(
            max_concurrent_requests=settings.max_concurrent_requests,
            request_timeout=settings.request_timeout,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay,
            retry_backoff=settings.retry_backoff,
            retry_jitter=settings.retry_jitter,
            max_retry_delay=settings.max_retry_delay,
            rate_limit_per_second=settings.rate_limit_per_second,
            rate_limit_burst_size=settings.rate_limit_burst_size,
            enable_rate_limiting=settings.enable_rate_limiting,
            enable_adaptive_rate_limiting=settings.enable_adaptive_rate_limiting,
            min_rate_limit_per_second=settings.min_rate_limit_per_second,
            max_rate_limit_per_second=settings.max_rate_limit_per_second,
            enable_circuit_breaker=settings.enable_circuit_breaker,
            circuit_breaker_threshold=settings.circuit_breaker_threshold,
            circuit_breaker_timeout=settings.circuit_breaker_timeout,
            enable_caching=settings.enable_caching,
            cache_ttl=settings.cache_ttl,
            max_batch_size=settings.max_batch_size,
            native_batch_threshold=settings.native_batch_threshold,
        )
