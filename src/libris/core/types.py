"""Core enums and type definitions."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Why a lookup could not produce metadata."""

    INVALID_INPUT = "invalid_input"  # Malformed identifier or oversized batch
    NETWORK_ERROR = "network_error"  # Transport failure
    PROVIDER_ERROR = "provider_error"  # Remote 4xx/5xx other than 429
    RATE_LIMITED = "rate_limited"  # HTTP 429
    TIMEOUT = "timeout"
    CIRCUIT_OPEN = "circuit_open"  # Failed fast, no network attempt
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


class LookupStatus(StrEnum):
    """Discriminator for lookup outcomes."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ProviderName(StrEnum):
    """Known catalog providers."""

    AUTO = "auto"
    ISBNDB = "isbndb"
    GOOGLE_BOOKS = "google_books"
    OPEN_LIBRARY = "open_library"
    PROXY = "proxy"


class ResultSource(StrEnum):
    """Where a piece of metadata was served from."""

    API = "api"
    CACHE = "cache"


class CircuitStateName(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class BackoffStrategy(StrEnum):
    """Delay growth between retry attempts."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class ExecutionPath(StrEnum):
    """How a set of unique identifiers is sent to the provider."""

    NATIVE_BATCH = "native_batch"  # One request carrying many identifiers
    FAN_OUT = "fan_out"  # One request per identifier
    CACHE = "cache"  # Nothing dispatched


class MatchMethod(StrEnum):
    """Which signature matched an existing record."""

    PROVIDER_ID = "provider_id"
    ISBN = "isbn"
    TITLE_AUTHOR = "title_author"


class NetworkCondition(StrEnum):
    """Observed network quality, used to pick an engine preset."""

    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    OFFLINE = "offline"
