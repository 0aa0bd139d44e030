"""Unit test fixtures with HTTP mocking."""

from __future__ import annotations

from typing import Any

import pytest
import respx
from httpx import Response

from libris.providers.base import ProviderConfig

PROXY_URL = "https://proxy.test"


# ============================================================================
# HTTP Mocking Fixtures
# ============================================================================


@pytest.fixture
def respx_mock():
    """Provide a respx mock router for HTTP mocking.

    Use this when you need fine-grained control over mocked responses.
    The mock is automatically started and stopped by respx.
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


# ============================================================================
# Provider Configuration Fixtures
# ============================================================================


@pytest.fixture
def proxy_config() -> ProviderConfig:
    """Proxy provider config pointing at a test host."""
    return ProviderConfig(base_url=PROXY_URL, timeout=10.0)


@pytest.fixture
def provider_config_with_key() -> ProviderConfig:
    """Provider config carrying an API key."""
    return ProviderConfig(api_key="test-api-key", timeout=10.0)


# ============================================================================
# Mock Response Helpers
# ============================================================================


def mock_json_response(data: Any, status_code: int = 200) -> Response:
    """Create a mock JSON response."""
    return Response(
        status_code=status_code,
        json=data,
        headers={"Content-Type": "application/json"},
    )


def mock_rate_limit_response(retry_after: str | None = "60") -> Response:
    """Create a mock 429 rate limit response."""
    headers = {"Content-Type": "application/json"}
    if retry_after is not None:
        headers["Retry-After"] = retry_after
    return Response(status_code=429, json={"error": "Rate limit exceeded"}, headers=headers)


@pytest.fixture
def mock_responses():
    """Provide helper functions for creating mock responses."""
    return {
        "json": mock_json_response,
        "rate_limit": mock_rate_limit_response,
    }


# ============================================================================
# Book API Response Fixtures
# ============================================================================


@pytest.fixture
def google_volume() -> dict[str, Any]:
    """A Google Books shaped volume, as returned by Google and by the proxy."""
    return {
        "kind": "books#volume",
        "id": "ka2VUBqHiWkC",
        "volumeInfo": {
            "title": "Effective Java",
            "authors": ["Joshua Bloch"],
            "publisher": "Addison-Wesley Professional",
            "publishedDate": "2018-01-06",
            "description": "The definitive guide to Java platform best practices.",
            "industryIdentifiers": [
                {"type": "ISBN_10", "identifier": "0134685997"},
                {"type": "ISBN_13", "identifier": "9780134685991"},
            ],
            "pageCount": 412,
            "categories": ["Computers"],
            "imageLinks": {
                "smallThumbnail": "http://books.google.com/books/content?id=ka2VUBqHiWkC&zoom=5",
                "thumbnail": "http://books.google.com/books/content?id=ka2VUBqHiWkC&zoom=1",
            },
            "language": "en",
        },
    }


@pytest.fixture
def google_books_isbn_response(google_volume: dict[str, Any]) -> dict[str, Any]:
    """Sample Google Books API response for ISBN lookup."""
    return {
        "kind": "books#volumes",
        "totalItems": 1,
        "items": [google_volume],
    }


@pytest.fixture
def openlibrary_edition_response() -> dict[str, Any]:
    """Sample OpenLibrary edition response for ``/isbn/{isbn}.json``."""
    return {
        "key": "/books/OL27258011M",
        "title": "Effective Java",
        "authors": [{"key": "/authors/OL1394865A"}],
        "publishers": ["Addison-Wesley"],
        "publish_date": "2018",
        "number_of_pages": 412,
        "isbn_13": ["9780134685991"],
        "covers": [8739161],
        "languages": [{"key": "/languages/eng"}],
        "works": [{"key": "/works/OL17801230W"}],
    }


@pytest.fixture
def openlibrary_work_response() -> dict[str, Any]:
    """Sample OpenLibrary work response."""
    return {
        "key": "/works/OL17801230W",
        "title": "Effective Java",
        "description": {"type": "/type/text", "value": "Best practices for the Java platform."},
        "subjects": ["Java (Computer program language)", "Computer programming"],
    }


@pytest.fixture
def openlibrary_author_response() -> dict[str, Any]:
    """Sample OpenLibrary author response for ``/authors/{key}.json``."""
    return {
        "key": "/authors/OL1394865A",
        "name": "Joshua Bloch",
        "personal_name": "Joshua Bloch",
    }
