"""Provider clients for remote book catalogs."""

from .base import HTTPProvider, ProviderClient, ProviderConfig, parse_retry_after
from .google_books import GoogleBooksProvider, parse_volume
from .openlibrary import OpenLibraryProvider
from .proxy import ProxyProvider
from .registry import ProviderRegistry
from .schemas import BatchItemResult, BatchLookupResponse, BatchOptions

__all__ = [
    "BatchItemResult",
    "BatchLookupResponse",
    "BatchOptions",
    "GoogleBooksProvider",
    "HTTPProvider",
    "OpenLibraryProvider",
    "ProviderClient",
    "ProviderConfig",
    "ProviderRegistry",
    "ProxyProvider",
    "parse_retry_after",
    "parse_volume",
]
