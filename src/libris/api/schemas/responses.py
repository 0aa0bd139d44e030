"""Response schemas for API endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from libris.api.schemas.base import APIBaseSchema
from libris.core.models import BatchSummary, BookMetadata, Failed, Found, NotFound
from libris.core.types import (
    CircuitStateName,
    ErrorKind,
    ExecutionPath,
    LookupStatus,
    MatchMethod,
    ResultSource,
)


class ProvenanceResponse(APIBaseSchema):
    """Where a record came from."""

    provider: str
    source: ResultSource
    retrieved_at: datetime


class BookResponse(APIBaseSchema):
    """Resolved book metadata."""

    title: str
    authors: list[str] = Field(default_factory=list)
    isbn_10: str | None = Field(default=None, alias="isbn10")
    isbn_13: str | None = Field(default=None, alias="isbn13")
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    description: str | None = None
    cover_image_url: str | None = None
    categories: list[str] = Field(default_factory=list)
    language: str | None = None
    provider_id: str | None = None
    provenance: ProvenanceResponse | None = None

    @classmethod
    def from_metadata(cls, metadata: BookMetadata) -> BookResponse:
        provenance = None
        if metadata.provenance is not None:
            provenance = ProvenanceResponse(
                provider=metadata.provenance.provider,
                source=metadata.provenance.source,
                retrieved_at=metadata.provenance.retrieved_at,
            )
        return cls(
            title=metadata.title,
            authors=list(metadata.authors),
            isbn_10=metadata.isbn_10,
            isbn_13=metadata.isbn_13,
            publisher=metadata.publisher,
            published_date=metadata.published_date,
            page_count=metadata.page_count,
            description=metadata.description,
            cover_image_url=metadata.cover_image_url,
            categories=list(metadata.categories),
            language=metadata.language,
            provider_id=metadata.provider_id,
            provenance=provenance,
        )


class OutcomeResponse(APIBaseSchema):
    """Outcome for one input identifier."""

    identifier: str
    canonical: str | None = None
    status: LookupStatus
    metadata: BookResponse | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None
    retry_after: float | None = None

    @classmethod
    def from_outcome(cls, outcome: Found | NotFound | Failed) -> OutcomeResponse:
        if isinstance(outcome, Found):
            return cls(
                identifier=outcome.identifier,
                canonical=outcome.canonical,
                status=outcome.status,
                metadata=BookResponse.from_metadata(outcome.metadata),
            )
        if isinstance(outcome, Failed):
            return cls(
                identifier=outcome.identifier,
                canonical=outcome.canonical,
                status=outcome.status,
                error_kind=outcome.error_kind,
                message=outcome.message,
                retry_after=outcome.retry_after,
            )
        return cls(identifier=outcome.identifier, canonical=outcome.canonical, status=outcome.status)


class SummaryResponse(APIBaseSchema):
    """Aggregate counts for a batch."""

    total: int
    found: int
    not_found: int
    failed: int
    invalid: int
    cancelled: int
    cached: int
    fresh: int
    success_rate: float
    provider: str | None = None
    path: ExecutionPath | None = None
    request_id: str | None = None
    duration_ms: float

    @classmethod
    def from_summary(cls, summary: BatchSummary) -> SummaryResponse:
        return cls(**summary.model_dump(), success_rate=summary.success_rate)


class ResolveBatchResponse(APIBaseSchema):
    """Ordered outcomes plus summary for a batch."""

    results: list[OutcomeResponse]
    summary: SummaryResponse


class DuplicateMatchResponse(APIBaseSchema):
    """An existing record the candidate duplicates."""

    index: int = Field(description="Position of the match in the submitted collection")
    method: MatchMethod


class FindDuplicateResponse(APIBaseSchema):
    """Result of a duplicate check."""

    match: DuplicateMatchResponse | None = None


class CircuitResponse(APIBaseSchema):
    """Circuit breaker state for one provider."""

    state: CircuitStateName
    failure_count: int
    retry_after: float | None = None


class HealthResponse(APIBaseSchema):
    """Health check response."""

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    default_provider: str | None = None
    providers: dict[str, CircuitResponse] = Field(default_factory=dict)
    cache_size: int | None = None
