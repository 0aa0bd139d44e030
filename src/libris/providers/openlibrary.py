"""OpenLibrary provider implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar

from libris.core.exceptions import ResolutionError
from libris.core.identifiers import ISBN
from libris.core.models import BookMetadata, Provenance
from libris.core.types import ProviderName
from libris.providers.base import HTTPProvider, RateProfile

logger = logging.getLogger(__name__)


class OpenLibraryProvider(HTTPProvider):
    """
    OpenLibrary API provider (free, no API key required).

    Editions reference their authors and work by key, so a lookup also
    fetches ``/authors/<key>.json`` for every credited author and the work
    record for description and subjects.

    API Documentation: https://openlibrary.org/dev/docs/api/books
    """

    NAME: ClassVar[str] = ProviderName.OPEN_LIBRARY.value
    BASE_URL: ClassVar[str] = "https://openlibrary.org"
    COVERS_URL: ClassVar[str] = "https://covers.openlibrary.org/b/id"
    RATE_PROFILE: ClassVar[RateProfile | None] = RateProfile(rate_per_second=10.0, burst=20)

    async def lookup_one(self, isbn: str) -> BookMetadata | None:
        """Fetch an OpenLibrary edition by ISBN."""
        response = await self._make_request("GET", f"/isbn/{isbn}.json")
        if response.status_code == 404:
            return None

        data = self._decode_json(response)
        if not data:
            return None

        work_key = None
        if works := data.get("works"):
            work_key = works[0].get("key")

        authors, work_data = await asyncio.gather(
            self._resolve_authors(data.get("authors") or []),
            self._fetch_linked(work_key) if work_key else _none(),
        )
        if work_data:
            data = self._merge_work_data(data, work_data)

        return self._parse_edition(data, isbn, authors)

    async def _resolve_authors(self, refs: list[Any]) -> list[str]:
        """Author names in credit order; references that do not resolve are dropped."""

        async def resolve(ref: Any) -> str | None:
            if not isinstance(ref, dict):
                return None
            if name := ref.get("name"):
                return name
            # Some editions nest the reference as {"author": {"key": ...}}
            nested = ref.get("author")
            key = ref.get("key") or (nested.get("key") if isinstance(nested, dict) else None)
            if not key:
                return None
            author = await self._fetch_linked(key)
            if author is None:
                return None
            return author.get("name") or author.get("personal_name")

        names = await asyncio.gather(*(resolve(ref) for ref in refs))
        return [name for name in names if name]

    async def _fetch_linked(self, key: str) -> dict[str, Any] | None:
        """Fetch a linked author or work record; the edition is usable without it."""
        try:
            response = await self._make_request("GET", f"{key}.json")
        except ResolutionError as e:
            logger.debug(f"OpenLibrary record {key} unavailable: {e}")
            return None
        if not response.is_success:
            return None
        data = self._decode_json(response)
        return data if isinstance(data, dict) else None

    def _merge_work_data(
        self,
        edition_data: dict[str, Any],
        work_data: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge work data into edition data for completeness."""
        merged = dict(edition_data)
        # Use work description if edition doesn't have one
        if not merged.get("description") and work_data.get("description"):
            merged["description"] = work_data["description"]

        # Use work subjects if edition doesn't have any
        if not merged.get("subjects") and work_data.get("subjects"):
            merged["subjects"] = work_data["subjects"]

        return merged

    def _parse_edition(self, data: dict[str, Any], isbn: str, authors: list[str]) -> BookMetadata:
        """Parse OpenLibrary edition response into BookMetadata."""
        isbn10 = _first(data.get("isbn_10"))
        isbn13 = _first(data.get("isbn_13"))

        # Fill the missing form from the looked-up ISBN where it converts cleanly
        if isbn10 is None or isbn13 is None:
            try:
                parsed = ISBN.parse(isbn)
            except ValueError:
                parsed = None
            if parsed is not None:
                if isbn13 is None:
                    isbn13 = parsed.to_isbn13().value
                if isbn10 is None and (converted := parsed.to_isbn10()) is not None:
                    isbn10 = converted.value

        cover_id = _first(data.get("covers"))
        cover_url = f"{self.COVERS_URL}/{cover_id}-L.jpg" if cover_id else None

        description = data.get("description")
        if isinstance(description, dict):
            description = description.get("value")

        language = None
        if languages := data.get("languages"):
            language = (languages[0].get("key") or "").replace("/languages/", "") or None

        edition_key = (data.get("key") or "").replace("/books/", "")
        subjects = data.get("subjects") or []

        return BookMetadata(
            title=data.get("title") or "Unknown",
            authors=tuple(authors),
            isbn_10=isbn10,
            isbn_13=isbn13,
            publisher=_first(data.get("publishers")),
            published_date=data.get("publish_date"),
            page_count=data.get("number_of_pages"),
            description=description,
            cover_image_url=cover_url,
            categories=tuple(s for s in subjects[:10] if isinstance(s, str)),
            language=language,
            provider_id=f"{self.name}:{edition_key}" if edition_key else None,
            provenance=Provenance(provider=self.name),
        )


def _first(values: list[Any] | None) -> Any:
    return values[0] if values else None


async def _none() -> None:
    return None
