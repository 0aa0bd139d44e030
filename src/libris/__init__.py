"""Libris - ISBN metadata resolution engine."""

from libris.client import LibrisClient, resolve_isbns
from libris.core.exceptions import InvalidInputError, LibrisError
from libris.core.models import BatchSummary, BookMetadata, Failed, Found, LookupOutcome, NotFound
from libris.core.types import ErrorKind, ExecutionPath, LookupStatus, MatchMethod, ProviderName
from libris.engine import CancellationToken, EngineConfig, ISBNResolver
from libris.matching import DuplicateMatch, find_existing, find_existing_with_method

__version__ = "0.1.0"
__all__ = [
    # Client
    "LibrisClient",
    "resolve_isbns",
    # Engine
    "CancellationToken",
    "EngineConfig",
    "ISBNResolver",
    # Types
    "ErrorKind",
    "ExecutionPath",
    "LookupStatus",
    "MatchMethod",
    "ProviderName",
    # Models
    "BatchSummary",
    "BookMetadata",
    "Failed",
    "Found",
    "LookupOutcome",
    "NotFound",
    # Errors
    "InvalidInputError",
    "LibrisError",
    # Matching
    "DuplicateMatch",
    "find_existing",
    "find_existing_with_method",
    # Version
    "__version__",
]
