"""Tests for the OpenLibrary provider."""

from __future__ import annotations

from typing import Any

import pytest
import respx
from httpx import Response

from libris.core.exceptions import ProviderError
from libris.core.types import ProviderName
from libris.providers.openlibrary import OpenLibraryProvider

EDITION_URL = "https://openlibrary.org/isbn/9780134685991.json"
WORK_URL = "https://openlibrary.org/works/OL17801230W.json"
AUTHOR_URL = "https://openlibrary.org/authors/OL1394865A.json"


@pytest.fixture
def provider() -> OpenLibraryProvider:
    """Create an OpenLibrary provider."""
    return OpenLibraryProvider()


class TestOpenLibraryConfig:
    """Tests for OpenLibrary provider configuration."""

    def test_name(self, provider: OpenLibraryProvider):
        assert provider.name == ProviderName.OPEN_LIBRARY.value

    def test_base_url(self, provider: OpenLibraryProvider):
        assert provider.BASE_URL == "https://openlibrary.org"

    def test_rate_profile(self, provider: OpenLibraryProvider):
        assert provider.rate_profile is not None
        assert provider.rate_profile.rate_per_second == 10.0
        assert provider.rate_profile.burst == 20


# ============================================================================
# ISBN Lookup Tests
# ============================================================================


class TestOpenLibraryLookup:
    """Tests for edition lookups."""

    @respx.mock
    async def test_edition_with_work(
        self,
        provider: OpenLibraryProvider,
        openlibrary_edition_response: dict[str, Any],
        openlibrary_work_response: dict[str, Any],
        openlibrary_author_response: dict[str, Any],
    ):
        """Work description and subjects fill in what the edition lacks."""
        respx.get(EDITION_URL).mock(
            return_value=Response(200, json=openlibrary_edition_response)
        )
        respx.get(WORK_URL).mock(return_value=Response(200, json=openlibrary_work_response))
        respx.get(AUTHOR_URL).mock(return_value=Response(200, json=openlibrary_author_response))

        metadata = await provider.lookup_one("9780134685991")

        assert metadata is not None
        assert metadata.title == "Effective Java"
        assert metadata.authors == ("Joshua Bloch",)
        assert metadata.publisher == "Addison-Wesley"
        assert metadata.published_date == "2018"
        assert metadata.page_count == 412
        assert metadata.isbn_13 == "9780134685991"
        assert metadata.isbn_10 == "0134685997"
        assert metadata.description == "Best practices for the Java platform."
        assert metadata.categories == (
            "Java (Computer program language)",
            "Computer programming",
        )
        assert metadata.cover_image_url == "https://covers.openlibrary.org/b/id/8739161-L.jpg"
        assert metadata.language == "eng"
        assert metadata.provider_id == "open_library:OL27258011M"

    @respx.mock
    async def test_work_failure_keeps_edition(
        self,
        provider: OpenLibraryProvider,
        openlibrary_edition_response: dict[str, Any],
        openlibrary_author_response: dict[str, Any],
    ):
        respx.get(EDITION_URL).mock(
            return_value=Response(200, json=openlibrary_edition_response)
        )
        respx.get(WORK_URL).mock(return_value=Response(500))
        respx.get(AUTHOR_URL).mock(return_value=Response(200, json=openlibrary_author_response))

        metadata = await provider.lookup_one("9780134685991")

        assert metadata is not None
        assert metadata.description is None
        assert metadata.categories == ()
        assert metadata.authors == ("Joshua Bloch",)

    @respx.mock
    async def test_edition_description_wins(
        self,
        provider: OpenLibraryProvider,
        openlibrary_edition_response: dict[str, Any],
        openlibrary_work_response: dict[str, Any],
        openlibrary_author_response: dict[str, Any],
    ):
        openlibrary_edition_response["description"] = "Edition blurb"
        respx.get(EDITION_URL).mock(
            return_value=Response(200, json=openlibrary_edition_response)
        )
        respx.get(WORK_URL).mock(return_value=Response(200, json=openlibrary_work_response))
        respx.get(AUTHOR_URL).mock(return_value=Response(200, json=openlibrary_author_response))

        metadata = await provider.lookup_one("9780134685991")

        assert metadata is not None
        assert metadata.description == "Edition blurb"

    @respx.mock
    async def test_named_authors(self, provider: OpenLibraryProvider):
        respx.get(EDITION_URL).mock(
            return_value=Response(
                200,
                json={
                    "key": "/books/OL1M",
                    "title": "Effective Java",
                    "authors": [{"name": "Joshua Bloch"}],
                },
            )
        )

        metadata = await provider.lookup_one("9780134685991")

        assert metadata is not None
        assert metadata.authors == ("Joshua Bloch",)

    @respx.mock
    async def test_not_found(self, provider: OpenLibraryProvider):
        """404 should mean the book is unknown."""
        respx.get("https://openlibrary.org/isbn/9999999999999.json").mock(
            return_value=Response(404)
        )

        assert await provider.lookup_one("9999999999999") is None

    @respx.mock
    async def test_server_error(self, provider: OpenLibraryProvider):
        respx.get(EDITION_URL).mock(return_value=Response(500))

        with pytest.raises(ProviderError) as exc_info:
            await provider.lookup_one("9780134685991")

        assert exc_info.value.retryable is True


# ============================================================================
# Author Resolution Tests
# ============================================================================


class TestOpenLibraryAuthors:
    """Tests for resolving author references to names."""

    @respx.mock
    async def test_author_keys_resolved_in_credit_order(self, provider: OpenLibraryProvider):
        respx.get(EDITION_URL).mock(
            return_value=Response(
                200,
                json={
                    "key": "/books/OL1M",
                    "title": "Design Patterns",
                    "authors": [
                        {"key": "/authors/OL1A"},
                        {"author": {"key": "/authors/OL2A"}},
                    ],
                },
            )
        )
        respx.get("https://openlibrary.org/authors/OL1A.json").mock(
            return_value=Response(200, json={"name": "Erich Gamma"})
        )
        respx.get("https://openlibrary.org/authors/OL2A.json").mock(
            return_value=Response(200, json={"personal_name": "Richard Helm"})
        )

        metadata = await provider.lookup_one("9780134685991")

        assert metadata is not None
        assert metadata.authors == ("Erich Gamma", "Richard Helm")

    @respx.mock
    async def test_unresolved_author_dropped(
        self,
        provider: OpenLibraryProvider,
        openlibrary_edition_response: dict[str, Any],
        openlibrary_work_response: dict[str, Any],
    ):
        """A catalog key is never reported as an author name."""
        respx.get(EDITION_URL).mock(
            return_value=Response(200, json=openlibrary_edition_response)
        )
        respx.get(WORK_URL).mock(return_value=Response(200, json=openlibrary_work_response))
        respx.get(AUTHOR_URL).mock(return_value=Response(503))

        metadata = await provider.lookup_one("9780134685991")

        assert metadata is not None
        assert metadata.authors == ()
        assert metadata.title == "Effective Java"
