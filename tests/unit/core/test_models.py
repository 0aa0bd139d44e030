"""Tests for domain models and the error taxonomy."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from libris.core.exceptions import (
    CircuitOpenError,
    InvalidInputError,
    NetworkError,
    ProviderError,
    RateLimitedError,
    RequestTimeoutError,
)
from libris.core.models import (
    BatchSummary,
    BookMetadata,
    Failed,
    Found,
    LookupOutcome,
    NotFound,
)
from libris.core.types import ErrorKind, LookupStatus, ResultSource

# ============================================================================
# BookMetadata Tests
# ============================================================================


class TestBookMetadata:
    """Tests for the canonical book record."""

    def test_immutable(self, sample_book: BookMetadata):
        with pytest.raises(ValidationError):
            sample_book.title = "Other"  # type: ignore[misc]

    def test_primary_isbn_prefers_13(self, sample_book: BookMetadata):
        assert sample_book.primary_isbn == "9780134685991"

    def test_primary_isbn_falls_back_to_10(self):
        book = BookMetadata(title="Old Book", isbn_10="0306406152")
        assert book.primary_isbn == "0306406152"

    def test_first_author(self, sample_book: BookMetadata):
        assert sample_book.first_author == "Joshua Bloch"
        assert BookMetadata(title="Anonymous").first_author is None

    def test_with_provenance_cache_keeps_retrieval_time(self, sample_book: BookMetadata):
        """Cached copies are tagged as cache and keep when the data was fetched."""
        cached = sample_book.with_provenance(source=ResultSource.CACHE)

        assert cached.from_cache is True
        assert cached.provenance is not None
        assert sample_book.provenance is not None
        assert cached.provenance.provider == "fake"
        assert cached.provenance.retrieved_at == sample_book.provenance.retrieved_at
        # Original untouched
        assert sample_book.from_cache is False

    def test_with_provenance_without_existing(self):
        book = BookMetadata(title="Untracked")
        stamped = book.with_provenance(provider="proxy")
        assert stamped.provenance is not None
        assert stamped.provenance.provider == "proxy"
        assert stamped.provenance.source == ResultSource.API


# ============================================================================
# LookupOutcome Tests
# ============================================================================


class TestLookupOutcome:
    """Tests for the outcome union."""

    def test_status_discriminator(self, sample_book: BookMetadata):
        adapter = TypeAdapter(LookupOutcome)
        outcome = adapter.validate_python(
            {"status": LookupStatus.FAILED, "identifier": "x", "error_kind": "timeout"}
        )
        assert isinstance(outcome, Failed)
        assert outcome.error_kind == ErrorKind.TIMEOUT

        found = adapter.validate_python(
            {"status": LookupStatus.FOUND, "identifier": "x", "metadata": sample_book.model_dump()}
        )
        assert isinstance(found, Found)

    def test_for_identifier(self):
        """An outcome copied to another position keeps everything but the raw string."""
        outcome = NotFound(identifier="9780134685991", canonical="9780134685991")
        copied = outcome.for_identifier("978-0-13-468599-1")

        assert isinstance(copied, NotFound)
        assert copied.identifier == "978-0-13-468599-1"
        assert copied.canonical == "9780134685991"
        assert copied.status == LookupStatus.NOT_FOUND


# ============================================================================
# BatchSummary Tests
# ============================================================================


class TestBatchSummary:
    """Tests for aggregate counts."""

    def test_from_outcomes(self, sample_book: BookMetadata):
        cached = sample_book.with_provenance(source=ResultSource.CACHE)
        outcomes = [
            Found(identifier="a", metadata=sample_book),
            Found(identifier="b", metadata=cached),
            NotFound(identifier="c"),
            Failed(identifier="d", error_kind=ErrorKind.INVALID_INPUT),
            Failed(identifier="e", error_kind=ErrorKind.CANCELLED),
            Failed(identifier="f", error_kind=ErrorKind.NETWORK_ERROR),
        ]

        summary = BatchSummary.from_outcomes(outcomes, provider="fake")

        assert summary.total == 6
        assert summary.found == 2
        assert summary.cached == 1
        assert summary.fresh == 1
        assert summary.not_found == 1
        assert summary.failed == 3
        assert summary.invalid == 1
        assert summary.cancelled == 1
        assert summary.provider == "fake"

    def test_success_rate_excludes_invalid(self, sample_book: BookMetadata):
        """Not-found and failed count against the rate; malformed input does not."""
        outcomes = [
            Found(identifier="a", metadata=sample_book),
            NotFound(identifier="b"),
            Failed(identifier="c", error_kind=ErrorKind.INVALID_INPUT),
        ]
        assert BatchSummary.from_outcomes(outcomes).success_rate == 0.5

    def test_success_rate_empty(self):
        assert BatchSummary().success_rate == 0.0


# ============================================================================
# Exception Tests
# ============================================================================


class TestErrorTaxonomy:
    """Tests for error kinds and retryability."""

    @pytest.mark.parametrize(
        "error,kind,retryable",
        [
            (InvalidInputError("bad"), ErrorKind.INVALID_INPUT, False),
            (NetworkError("reset"), ErrorKind.NETWORK_ERROR, True),
            (RequestTimeoutError("slow"), ErrorKind.TIMEOUT, True),
            (RateLimitedError("429", source="proxy", retry_after=5), ErrorKind.RATE_LIMITED, True),
            (CircuitOpenError("open", source="proxy"), ErrorKind.CIRCUIT_OPEN, False),
            (ProviderError("boom", source="proxy", status_code=503), ErrorKind.PROVIDER_ERROR, True),
            (ProviderError("bad", source="proxy", status_code=400), ErrorKind.PROVIDER_ERROR, False),
            (ProviderError("shape", source="proxy"), ErrorKind.PROVIDER_ERROR, False),
        ],
    )
    def test_kind_and_retryable(self, error, kind: ErrorKind, retryable: bool):
        assert error.kind == kind
        assert error.retryable is retryable

    def test_details_default(self):
        error = InvalidInputError("bad")
        assert error.details == {}
        assert error.message == "bad"
        assert str(error) == "bad"
