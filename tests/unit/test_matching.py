"""Tests for duplicate detection."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from libris.core.models import BookMetadata
from libris.core.types import MatchMethod
from libris.matching import (
    DuplicateIndex,
    DuplicateKey,
    default_metadata_of,
    find_existing,
    find_existing_with_method,
)


def book(
    title: str = "Effective Java",
    authors: tuple[str, ...] = ("Joshua Bloch",),
    *,
    isbn_10: str | None = None,
    isbn_13: str | None = None,
    provider_id: str | None = None,
) -> BookMetadata:
    return BookMetadata(
        title=title,
        authors=authors,
        isbn_10=isbn_10,
        isbn_13=isbn_13,
        provider_id=provider_id,
    )


@dataclass
class LibraryEntry:
    """A stored collection record wrapping metadata."""

    entry_id: int
    metadata: BookMetadata | None


# ============================================================================
# Key Tests
# ============================================================================


class TestDuplicateKey:
    """Tests for match signatures."""

    def test_normalizes_isbns(self):
        key = DuplicateKey.of(book(isbn_13="978-0-13-468599-1", isbn_10="0 13 468599 x"))
        assert key.isbns == frozenset({"9780134685991", "013468599X"})

    def test_normalizes_title_and_author(self):
        key = DuplicateKey.of(book("  Effective JAVA ", ("JOSHUA Bloch",)))
        assert key.title_author == ("effective java", "joshua bloch")

    def test_no_author_no_title_key(self):
        assert DuplicateKey.of(book(authors=())).title_author is None

    def test_empty_provider_id(self):
        assert DuplicateKey.of(book(provider_id="")).provider_id is None


# ============================================================================
# Matching Priority Tests
# ============================================================================


class TestFindExisting:
    """Tests for tiered duplicate matching."""

    def test_provider_id_first(self):
        by_isbn = book("Other", ("Someone",), isbn_13="9780134685991")
        by_id = book("Different", ("Nobody",), provider_id="google_books:abc")
        candidate = book(isbn_13="9780134685991", provider_id="google_books:abc")

        match = find_existing_with_method(candidate, [by_isbn, by_id])

        assert match is not None
        assert match.record is by_id
        assert match.method == MatchMethod.PROVIDER_ID

    def test_isbn_over_title_author(self):
        same_title = book()
        same_isbn = book("Java Efectivo", ("J. Bloch",), isbn_13="9780134685991")
        candidate = book(isbn_13="9780134685991")

        match = find_existing_with_method(candidate, [same_title, same_isbn])

        assert match is not None
        assert match.record is same_isbn
        assert match.method == MatchMethod.ISBN

    def test_isbn_ignores_hyphens(self):
        existing = book(isbn_13="978-0-13-468599-1")
        candidate = book("Renamed", ("Other",), isbn_13="9780134685991")

        assert find_existing(candidate, [existing]) is existing

    def test_isbn_13_checked_before_isbn_10(self):
        by_10 = book("A", ("X",), isbn_10="0134685997")
        by_13 = book("B", ("Y",), isbn_13="9780134685991")
        candidate = book(isbn_10="0134685997", isbn_13="9780134685991")

        assert find_existing(candidate, [by_10, by_13]) is by_13

    def test_no_cross_form_conversion(self):
        """An ISBN-10 never matches the equivalent ISBN-13."""
        existing = book("A", ("X",), isbn_10="0134685997")
        candidate = book("B", ("Y",), isbn_13="9780134685991")

        assert find_existing(candidate, [existing]) is None

    def test_title_author_fallback(self):
        existing = book(" effective java", ("joshua bloch ",))
        candidate = book("Effective Java", ("Joshua Bloch", "Someone Else"))

        match = find_existing_with_method(candidate, [existing])

        assert match is not None
        assert match.method == MatchMethod.TITLE_AUTHOR

    def test_title_only_is_not_a_match(self):
        existing = book(authors=("Someone Else",))
        assert find_existing(book(), [existing]) is None

    def test_similar_title_is_not_a_match(self):
        existing = book("Effective Java 3rd Edition")
        assert find_existing(book(), [existing]) is None

    def test_first_record_wins(self):
        first = book(isbn_13="9780134685991")
        second = book(isbn_13="9780134685991")

        assert find_existing(book(isbn_13="9780134685991"), [first, second]) is first

    def test_empty_collection(self):
        assert find_existing(book(), []) is None


# ============================================================================
# Record Extraction Tests
# ============================================================================


class TestRecordExtraction:
    """Tests for matching against wrapped records."""

    def test_metadata_attribute(self):
        entries = [
            LibraryEntry(1, None),
            LibraryEntry(2, book(isbn_13="9780134685991")),
        ]

        match = find_existing(book(isbn_13="9780134685991"), entries)

        assert match is entries[1]

    def test_custom_extractor(self):
        rows = [("row-1", book(provider_id="open_library:OL1M"))]

        match = find_existing(
            book(provider_id="open_library:OL1M"),
            rows,
            metadata_of=lambda row: row[1],
        )

        assert match == rows[0]

    @pytest.mark.parametrize("record", [None, "9780134685991", object()])
    def test_default_extractor_skips_unknown(self, record: object):
        assert default_metadata_of(record) is None

    def test_index_reuse(self):
        existing = [book(isbn_13=f"97800000000{i:02d}") for i in range(5)]
        index = DuplicateIndex(existing)

        assert index.find(book(isbn_13="9780000000003")) is not None
        assert index.find(book("Unknown Title", ("Nobody",), isbn_13="9781111111111")) is None
