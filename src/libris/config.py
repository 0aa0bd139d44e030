"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from libris.core.types import BackoffStrategy, ProviderName


class LibrisSettings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="LIBRIS_",
    )

    # Provider selection
    default_provider: ProviderName = Field(
        default=ProviderName.PROXY,
        description="Provider client used by the engine (proxy, google_books, open_library)",
    )
    proxy_base_url: str = Field(
        default="https://books-api-proxy.jukasdrj.workers.dev",
        description="Base URL of the books API proxy",
    )
    proxy_upstream: ProviderName = Field(
        default=ProviderName.ISBNDB,
        description="Upstream catalog the proxy should query",
    )
    google_books_api_key: str | None = Field(
        default=None,
        description="Google Books API key (optional, increases rate limits)",
    )

    # Concurrency and rate limiting
    max_concurrent_requests: int = Field(
        default=5,
        ge=1,
        le=32,
        description="Simultaneous in-flight provider calls (3-8 recommended)",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-attempt request timeout in seconds",
    )
    rate_limit_per_second: float | None = Field(
        default=None,
        gt=0,
        description="Provider call rate when rate limiting is enabled; None uses the provider profile",
    )
    rate_limit_burst_size: int | None = Field(
        default=None,
        ge=1,
        description="Token bucket capacity; None uses the provider profile or the rate",
    )
    enable_rate_limiting: bool = Field(
        default=False,
        description="Enable the token-bucket rate limiter",
    )
    enable_adaptive_rate_limiting: bool = Field(
        default=False,
        description="Adjust the token rate from observed success rate and latency",
    )
    min_rate_limit_per_second: float = Field(
        default=2.0,
        gt=0,
        description="Lowest rate the adaptive limiter may fall to",
    )
    max_rate_limit_per_second: float = Field(
        default=20.0,
        gt=0,
        description="Highest rate the adaptive limiter may climb to",
    )

    # Retry
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per provider call, including the first",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Base delay between attempts in seconds",
    )
    retry_backoff: BackoffStrategy = Field(
        default=BackoffStrategy.EXPONENTIAL,
        description="Fixed or exponential delay growth",
    )
    retry_jitter: bool = Field(
        default=True,
        description="Scale each retry delay by a random factor between 0.8 and 1.2",
    )
    max_retry_delay: float = Field(
        default=60.0,
        ge=0,
        description="Upper bound for a single retry delay, including Retry-After hints",
    )

    # Circuit breaker
    enable_circuit_breaker: bool = Field(
        default=True,
        description="Fail fast after repeated provider failures",
    )
    circuit_breaker_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive failures that open the circuit",
    )
    circuit_breaker_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Cool-down in seconds before a half-open trial",
    )

    # Caching
    enable_caching: bool = Field(
        default=True,
        description="Serve repeated lookups from cache",
    )
    cache_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Cache storage backend",
    )
    cache_ttl: int = Field(
        default=3600 * 24,
        ge=1,
        description="Cache entry time-to-live in seconds",
    )
    cache_max_entries: int | None = Field(
        default=10_000,
        ge=1,
        description="Maximum in-memory cache entries (LRU eviction); None for unbounded",
    )
    redis_url: RedisDsn | None = Field(
        default=None,
        description="Redis connection URL (required for the redis cache backend)",
    )

    # Batching
    max_batch_size: int = Field(
        default=100,
        ge=1,
        description="Maximum identifiers accepted by one resolve call",
    )
    native_batch_threshold: int = Field(
        default=10,
        ge=1,
        description="Unique identifiers needed before the native batch path is used",
    )

    # App settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )


@lru_cache
def get_settings() -> LibrisSettings:
    """Get cached settings instance."""
    return LibrisSettings()
