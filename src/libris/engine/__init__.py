"""Resolution engine: caching, admission control, retries and circuit breaking."""

from .cache import CacheKeys, MemoryCache, MetadataCache, RedisCache
from .cancellation import CancellationToken
from .circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, CircuitState
from .config import EngineConfig
from .limiter import ConcurrencyLimiter, TokenBucket
from .resolver import BatchRequest, ISBNResolver
from .retry import RetryPolicy
from .strategy import BatchStrategySelector, GuardedProvider

__all__ = [
    "BatchRequest",
    "BatchStrategySelector",
    "CacheKeys",
    "CancellationToken",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitState",
    "ConcurrencyLimiter",
    "EngineConfig",
    "GuardedProvider",
    "ISBNResolver",
    "MemoryCache",
    "MetadataCache",
    "RedisCache",
    "RetryPolicy",
    "TokenBucket",
]
