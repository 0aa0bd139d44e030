"""Wire and result models for native batch lookups."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from libris.core.identifiers import clean_isbn
from libris.core.models import BookMetadata
from libris.core.normalization import to_camel_case


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel_case, populate_by_name=True)


class BatchOptions(_CamelModel):
    """Options sent with a native batch request."""

    include_metadata: bool = True
    include_prices: bool = False
    timeout: int = Field(default=45, description="Server-side timeout in seconds")


class BatchLookupRequest(_CamelModel):
    """Body of ``POST /batch``."""

    isbns: list[str]
    provider: str | None = None
    options: BatchOptions = Field(default_factory=BatchOptions)


class BatchResultPayload(_CamelModel):
    """One per-identifier entry of a batch response, as sent on the wire."""

    isbn: str
    found: bool = False
    data: dict[str, Any] | None = None
    error: str | None = None
    source: str | None = None


class BatchResponsePayload(_CamelModel):
    """A batch response, as sent on the wire."""

    results: list[BatchResultPayload] | None = None
    total: int | None = None
    found: int | None = None
    cached: int | None = None
    fresh: int | None = None
    provider: str | None = None
    request_id: str | None = None
    error: str | None = None
    partial: bool | None = None


class BatchItemResult(BaseModel):
    """A decoded per-identifier batch result."""

    isbn: str
    found: bool
    metadata: BookMetadata | None = None
    error: str | None = None
    source: str | None = None


class BatchLookupResponse(BaseModel):
    """A decoded batch response handed to the engine."""

    results: list[BatchItemResult] = Field(default_factory=list)
    total: int = 0
    found: int = 0
    cached: int = 0
    fresh: int = 0
    provider: str | None = None
    request_id: str | None = None
    error: str | None = None
    partial: bool = False

    def by_isbn(self) -> dict[str, BatchItemResult]:
        """Results keyed by canonical ISBN (hyphens and spaces stripped)."""
        return {clean_isbn(item.isbn): item for item in self.results}
