"""Custom exception hierarchy for libris."""

from typing import Any

from .types import ErrorKind


class LibrisError(Exception):
    """Base exception for all libris errors."""

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(LibrisError):
    """Malformed identifier or a batch over the configured size cap."""

    kind = ErrorKind.INVALID_INPUT


class ResolutionError(LibrisError):
    """A lookup could not be completed."""

    pass


class NetworkError(ResolutionError):
    """Transport failure talking to a provider."""

    kind = ErrorKind.NETWORK_ERROR
    retryable = True


class RequestTimeoutError(ResolutionError):
    """A provider call exceeded the request timeout."""

    kind = ErrorKind.TIMEOUT
    retryable = True


class ProviderError(ResolutionError):
    """Provider answered with an error status or an unusable payload."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        source: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source
        self.status_code = status_code

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        # Only server-side faults are worth another attempt
        return self.status_code is not None and self.status_code >= 500


class RateLimitedError(ResolutionError):
    """Provider rejected the call with HTTP 429."""

    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(
        self,
        message: str,
        source: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source
        self.retry_after = retry_after


class CircuitOpenError(ResolutionError):
    """The provider's circuit is open; no network attempt was made."""

    kind = ErrorKind.CIRCUIT_OPEN

    def __init__(
        self,
        message: str,
        source: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source
        self.retry_after = retry_after


class CancelledLookupError(ResolutionError):
    """The caller cancelled the operation before this lookup finished."""

    kind = ErrorKind.CANCELLED


class BatchLookupError(ResolutionError):
    """A native batch call failed as a whole or came back partial."""

    def __init__(
        self,
        message: str,
        source: str,
        partial: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source
        self.partial = partial


class CacheError(LibrisError):
    """Cache operation failed."""

    pass
