"""Core types, models, and utilities."""

from .exceptions import (
    BatchLookupError,
    CacheError,
    CancelledLookupError,
    CircuitOpenError,
    InvalidInputError,
    LibrisError,
    NetworkError,
    ProviderError,
    RateLimitedError,
    RequestTimeoutError,
    ResolutionError,
)
from .identifiers import (
    ISBN,
    IdentifierRejection,
    NormalizedIdentifier,
    clean_isbn,
    is_valid_checksum,
    normalize_identifier,
)
from .models import (
    BatchSummary,
    BookMetadata,
    Failed,
    Found,
    LookupOutcome,
    NotFound,
    ProgressCallback,
    Provenance,
)
from .normalization import normalize_isbn_string, normalize_text, to_camel_case
from .types import (
    BackoffStrategy,
    CircuitStateName,
    ErrorKind,
    ExecutionPath,
    LookupStatus,
    MatchMethod,
    ProviderName,
    ResultSource,
)

__all__ = [
    # Types
    "BackoffStrategy",
    "CircuitStateName",
    "ErrorKind",
    "ExecutionPath",
    "LookupStatus",
    "MatchMethod",
    "ProviderName",
    "ResultSource",
    # Identifiers
    "ISBN",
    "IdentifierRejection",
    "NormalizedIdentifier",
    "clean_isbn",
    "is_valid_checksum",
    "normalize_identifier",
    # Normalization
    "normalize_isbn_string",
    "normalize_text",
    "to_camel_case",
    # Models
    "BatchSummary",
    "BookMetadata",
    "Failed",
    "Found",
    "LookupOutcome",
    "NotFound",
    "ProgressCallback",
    "Provenance",
    # Exceptions
    "BatchLookupError",
    "CacheError",
    "CancelledLookupError",
    "CircuitOpenError",
    "InvalidInputError",
    "LibrisError",
    "NetworkError",
    "ProviderError",
    "RateLimitedError",
    "RequestTimeoutError",
    "ResolutionError",
]
