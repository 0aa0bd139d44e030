"""Shared test fixtures for all tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from libris.config import LibrisSettings
from libris.core.models import BookMetadata, Provenance
from libris.engine.cache import MemoryCache
from libris.engine.circuit_breaker import CircuitBreakerRegistry
from libris.engine.config import EngineConfig
from libris.engine.resolver import ISBNResolver
from libris.providers.schemas import BatchItemResult, BatchLookupResponse, BatchOptions

# ============================================================================
# Test Data Constants
# ============================================================================


# Valid identifiers for testing
VALID_ISBN_13 = "9780134685991"  # Effective Java, 3rd edition
VALID_ISBN_13_HYPHENATED = "978-0-13-468599-1"
VALID_ISBN_10 = "0134685997"
VALID_ISBN_10_HYPHENATED = "0-13-468599-7"
VALID_ISBN_10_X = "155860832X"
UNKNOWN_ISBN_13 = "9999999999999"

# Invalid identifiers for testing
MALFORMED_ISBN = "invalid-isbn"


# ============================================================================
# Fake Provider
# ============================================================================


class FakeProvider:
    """
    In-memory provider with scripted answers per canonical ISBN.

    ``books`` holds the records the provider knows. ``errors`` queues errors
    raised (one per call, in order) before an ISBN is answered normally;
    ``always_fail`` raises on every call. Calls are recorded.
    """

    def __init__(
        self,
        name: str = "fake",
        *,
        supports_batch: bool = False,
        books: dict[str, BookMetadata] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.supports_batch = supports_batch
        self.books: dict[str, BookMetadata] = dict(books or {})
        self.errors: dict[str, list[BaseException]] = {}
        self.always_fail: dict[str, BaseException] = {}
        self.batch_error: BaseException | None = None
        self.batch_response: BatchLookupResponse | None = None
        self.delay = delay
        self.calls: list[str] = []
        self.batch_calls: list[list[str]] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    def fail(self, isbn: str, *errors: BaseException) -> None:
        self.errors.setdefault(isbn, []).extend(errors)

    async def lookup_one(self, isbn: str) -> BookMetadata | None:
        self.calls.append(isbn)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            queued = self.errors.get(isbn)
            if queued:
                raise queued.pop(0)
            if isbn in self.always_fail:
                raise self.always_fail[isbn]
            return self.books.get(isbn)
        finally:
            self.in_flight -= 1

    async def lookup_batch(
        self,
        isbns: Sequence[str],
        options: BatchOptions | None = None,
    ) -> BatchLookupResponse:
        self.batch_calls.append(list(isbns))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.batch_error is not None:
            raise self.batch_error
        if self.batch_response is not None:
            return self.batch_response
        results = [
            BatchItemResult(
                isbn=isbn,
                found=isbn in self.books,
                metadata=self.books.get(isbn),
                error=None if isbn in self.books else "Book not found",
            )
            for isbn in isbns
        ]
        found = sum(1 for r in results if r.found)
        return BatchLookupResponse(
            results=results,
            total=len(isbns),
            found=found,
            fresh=found,
            provider=self.name,
        )

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Sample Data Fixtures
# ============================================================================


def build_book(
    isbn_13: str | None = VALID_ISBN_13,
    *,
    title: str = "Effective Java",
    authors: tuple[str, ...] = ("Joshua Bloch",),
    isbn_10: str | None = None,
    provider: str = "fake",
    provider_id: str | None = None,
) -> BookMetadata:
    return BookMetadata(
        title=title,
        authors=authors,
        isbn_10=isbn_10,
        isbn_13=isbn_13,
        publisher="Addison-Wesley",
        published_date="2018-01-06",
        page_count=412,
        provider_id=provider_id,
        provenance=Provenance(
            provider=provider,
            retrieved_at=datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
        ),
    )


@pytest.fixture
def make_book():
    """Factory fixture building sample metadata records."""
    return build_book


@pytest.fixture
def sample_book() -> BookMetadata:
    """A fully populated sample record."""
    return build_book(isbn_10=VALID_ISBN_10, provider_id="google_books:ka2VUBqHiWkC")


@pytest.fixture
def make_provider():
    """Factory fixture building fake providers."""
    return FakeProvider


@pytest.fixture
def provider(sample_book: BookMetadata) -> FakeProvider:
    """Fan-out-only provider that knows one book."""
    return FakeProvider(books={VALID_ISBN_13: sample_book})


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Async sleep replacement recording requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def engine_config() -> EngineConfig:
    """Engine config with fast, deterministic retry behavior."""
    return EngineConfig(
        retry_attempts=3, retry_delay=0.01, retry_jitter=False, request_timeout=5.0
    )


@pytest.fixture
def make_resolver(no_sleep: AsyncMock, engine_config: EngineConfig):
    """Factory fixture building resolvers around a provider."""

    def _make(
        provider,
        *,
        config: EngineConfig | None = None,
        cache: MemoryCache | None = None,
        breakers: CircuitBreakerRegistry | None = None,
    ) -> ISBNResolver:
        return ISBNResolver(
            provider,
            config=config or engine_config,
            cache=cache,
            breakers=breakers,
            sleep=no_sleep,
        )

    return _make


@pytest.fixture
def resolver(make_resolver, provider: FakeProvider) -> ISBNResolver:
    """Resolver over the default fake provider."""
    return make_resolver(provider)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def mock_settings() -> LibrisSettings:
    """Create settings for testing without touching the environment."""
    return LibrisSettings(
        _env_file=None,
        default_provider="proxy",
        proxy_base_url="https://proxy.test",
        google_books_api_key="test-google-key",
        cache_backend="memory",
        retry_delay=0.0,
        debug=True,
        log_level="DEBUG",
    )
