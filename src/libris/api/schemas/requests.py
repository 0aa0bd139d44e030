"""Request schemas for API endpoints."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from libris.api.schemas.base import APIBaseSchema
from libris.core.models import BookMetadata


class ResolveISBNRequest(APIBaseSchema):
    """Request to resolve a single ISBN."""

    identifier: Annotated[
        str,
        Field(
            min_length=1,
            max_length=64,
            description="ISBN-10 or ISBN-13, hyphens and spaces allowed",
        ),
    ]

    provider: Annotated[
        str | None,
        Field(
            default=None,
            description="Provider to use (proxy, google_books, open_library). Defaults to the configured one.",
        ),
    ]


class ResolveBatchRequest(APIBaseSchema):
    """Request to resolve many ISBNs in one call."""

    identifiers: Annotated[
        list[str],
        Field(description="Raw identifiers; results come back in the same order"),
    ]

    provider: Annotated[
        str | None,
        Field(
            default=None,
            description="Provider to use. Defaults to the configured one.",
        ),
    ]


class BookMetadataInput(APIBaseSchema):
    """Book metadata as supplied by a client for duplicate checks."""

    title: str
    authors: list[str] = Field(default_factory=list)
    isbn_10: str | None = Field(default=None, alias="isbn10")
    isbn_13: str | None = Field(default=None, alias="isbn13")
    publisher: str | None = None
    published_date: str | None = None
    provider_id: str | None = None

    def to_metadata(self) -> BookMetadata:
        return BookMetadata(
            title=self.title,
            authors=tuple(self.authors),
            isbn_10=self.isbn_10,
            isbn_13=self.isbn_13,
            publisher=self.publisher,
            published_date=self.published_date,
            provider_id=self.provider_id,
        )


class FindDuplicateRequest(APIBaseSchema):
    """Request to find an existing record a candidate duplicates."""

    candidate: BookMetadataInput
    existing: list[BookMetadataInput] = Field(default_factory=list)
