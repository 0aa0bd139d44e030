"""Domain models for book metadata and lookup outcomes."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .types import ErrorKind, ExecutionPath, LookupStatus, ResultSource

# on_progress(completed, total, found)
ProgressCallback = Callable[[int, int, int], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Provenance(BaseModel):
    """Which provider produced a record and whether it was served from cache."""

    model_config = ConfigDict(frozen=True)

    provider: str = Field(..., description="Provider that produced the record")
    source: ResultSource = Field(default=ResultSource.API, description="Fresh or cached")
    retrieved_at: datetime = Field(default_factory=_utcnow, description="When data was fetched")


class BookMetadata(BaseModel):
    """Canonical book record. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Title of the book")
    authors: tuple[str, ...] = Field(default=(), description="Author names in credit order")
    isbn_10: str | None = Field(default=None, description="10-character ISBN")
    isbn_13: str | None = Field(default=None, description="13-digit ISBN")
    publisher: str | None = Field(default=None, description="Publisher name")
    published_date: str | None = Field(default=None, description="Publication date as provided")
    page_count: int | None = Field(default=None, description="Number of pages")
    description: str | None = Field(default=None, description="Description or synopsis")
    cover_image_url: str | None = Field(default=None, description="Cover image URL")
    categories: tuple[str, ...] = Field(default=(), description="Genres / subject categories")
    language: str | None = Field(default=None, description="Language code")
    provider_id: str | None = Field(
        default=None, description="Provider-assigned catalog ID, e.g. 'google_books:abc123'"
    )
    provenance: Provenance | None = Field(default=None, description="Source information")

    @property
    def primary_isbn(self) -> str | None:
        """Return ISBN-13 if available, otherwise ISBN-10."""
        return self.isbn_13 or self.isbn_10

    @property
    def first_author(self) -> str | None:
        return self.authors[0] if self.authors else None

    @property
    def from_cache(self) -> bool:
        return self.provenance is not None and self.provenance.source == ResultSource.CACHE

    def with_provenance(
        self,
        *,
        provider: str | None = None,
        source: ResultSource = ResultSource.API,
    ) -> BookMetadata:
        """Return a copy stamped with new provenance.

        Cached copies keep the original retrieval time.
        """
        current = self.provenance
        if current is not None and source == ResultSource.CACHE:
            retrieved_at = current.retrieved_at
        else:
            retrieved_at = _utcnow()
        provenance = Provenance(
            provider=provider or (current.provider if current else "unknown"),
            source=source,
            retrieved_at=retrieved_at,
        )
        return self.model_copy(update={"provenance": provenance})


class _OutcomeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., description="Raw identifier exactly as supplied")
    canonical: str | None = Field(default=None, description="Normalized ISBN, if valid")

    def for_identifier(self, identifier: str) -> LookupOutcome:
        """Copy this outcome onto another input position."""
        return self.model_copy(update={"identifier": identifier})  # type: ignore[return-value]


class Found(_OutcomeBase):
    """The provider (or cache) returned metadata."""

    status: Literal[LookupStatus.FOUND] = LookupStatus.FOUND
    metadata: BookMetadata


class NotFound(_OutcomeBase):
    """The provider authoritatively has no match."""

    status: Literal[LookupStatus.NOT_FOUND] = LookupStatus.NOT_FOUND


class Failed(_OutcomeBase):
    """The lookup could not be completed."""

    status: Literal[LookupStatus.FAILED] = LookupStatus.FAILED
    error_kind: ErrorKind
    message: str | None = None
    retry_after: float | None = Field(default=None, description="Provider retry hint in seconds")


LookupOutcome = Annotated[Found | NotFound | Failed, Field(discriminator="status")]


class BatchSummary(BaseModel):
    """Aggregate counts for one resolve invocation."""

    total: int = 0
    found: int = 0
    not_found: int = 0
    failed: int = 0
    invalid: int = 0
    cancelled: int = 0
    cached: int = 0
    fresh: int = 0
    provider: str | None = None
    path: ExecutionPath | None = None
    request_id: str | None = None
    duration_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        """Found over all positions that were valid identifiers.

        Not-found and failed both count against the rate; malformed input does
        not, since it never reached a provider.
        """
        attempted = self.total - self.invalid
        return self.found / attempted if attempted > 0 else 0.0

    @classmethod
    def from_outcomes(
        cls,
        outcomes: Sequence[Found | NotFound | Failed],
        **extra: object,
    ) -> BatchSummary:
        summary = cls(total=len(outcomes), **extra)  # type: ignore[arg-type]
        for outcome in outcomes:
            if isinstance(outcome, Found):
                summary.found += 1
                if outcome.metadata.from_cache:
                    summary.cached += 1
                else:
                    summary.fresh += 1
            elif isinstance(outcome, NotFound):
                summary.not_found += 1
            else:
                summary.failed += 1
                if outcome.error_kind == ErrorKind.INVALID_INPUT:
                    summary.invalid += 1
                elif outcome.error_kind == ErrorKind.CANCELLED:
                    summary.cancelled += 1
        return summary
