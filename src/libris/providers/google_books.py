"""Google Books provider and volume parsing."""

from __future__ import annotations

from typing import Any, ClassVar

from libris.core.models import BookMetadata, Provenance
from libris.core.types import ProviderName
from libris.providers.base import HTTPProvider, ProviderConfig, RateProfile


def parse_volume(data: dict[str, Any] | None, provider: str) -> BookMetadata | None:
    """
    Parse a Google Books volume into ``BookMetadata``.

    The books proxy returns the same volume shape for every upstream, so this
    is shared with ``ProxyProvider``. Returns ``None`` when the volume carries
    no ``volumeInfo``.
    """
    if not data:
        return None

    volume_info = data.get("volumeInfo") or {}
    if not volume_info:
        return None

    # Parse identifiers from industryIdentifiers
    isbn10 = None
    isbn13 = None
    for ident in volume_info.get("industryIdentifiers") or []:
        ident_type = ident.get("type", "")
        ident_value = ident.get("identifier")
        if ident_type == "ISBN_10":
            isbn10 = ident_value
        elif ident_type == "ISBN_13":
            isbn13 = ident_value

    # Get cover image (prefer larger sizes)
    image_links = volume_info.get("imageLinks") or {}
    cover_url = (
        image_links.get("large") or image_links.get("medium") or image_links.get("thumbnail")
    )
    if cover_url and cover_url.startswith("http://"):
        cover_url = "https://" + cover_url[len("http://"):]

    volume_id = data.get("id")
    return BookMetadata(
        title=volume_info.get("title") or "Unknown",
        authors=tuple(name for name in volume_info.get("authors") or [] if name),
        isbn_10=isbn10,
        isbn_13=isbn13,
        publisher=volume_info.get("publisher"),
        published_date=volume_info.get("publishedDate"),
        page_count=volume_info.get("pageCount"),
        description=volume_info.get("description"),
        cover_image_url=cover_url,
        categories=tuple(volume_info.get("categories") or []),
        language=volume_info.get("language"),
        provider_id=f"{provider}:{volume_id}" if volume_id else None,
        provenance=Provenance(provider=provider),
    )


class GoogleBooksProvider(HTTPProvider):
    """
    Google Books API provider.

    API Documentation: https://developers.google.com/books/docs/v1/using

    Works without API key but rate limits apply.
    With API key, higher quotas are available.
    """

    NAME: ClassVar[str] = ProviderName.GOOGLE_BOOKS.value
    BASE_URL: ClassVar[str] = "https://www.googleapis.com/books/v1"
    RATE_PROFILE: ClassVar[RateProfile | None] = RateProfile(rate_per_second=0.5, burst=5)

    def __init__(self, config: ProviderConfig | None = None) -> None:
        super().__init__(config)
        self._api_key = self.config.api_key

    async def lookup_one(self, isbn: str) -> BookMetadata | None:
        """Search Google Books by ISBN."""
        params: dict[str, Any] = {
            "q": f"isbn:{isbn}",
            "maxResults": 1,
        }
        if self._api_key:
            params["key"] = self._api_key

        response = await self._make_request("GET", "/volumes", params=params)
        if response.status_code == 404:
            return None

        data = self._decode_json(response)
        items = data.get("items") or []
        if not items:
            return None

        return parse_volume(items[0], self.name)
