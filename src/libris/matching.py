"""
Duplicate detection for resolved metadata against an existing collection.

Matching priority (first tier with a hit wins):
1. provider-assigned catalog ID
2. ISBN, hyphens and spaces stripped and uppercased; ISBN-10 and ISBN-13
   forms are never converted into each other
3. title and first author, case-insensitive and whitespace-trimmed

Within a tier the earliest record in the collection wins.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from libris.core.models import BookMetadata
from libris.core.normalization import normalize_isbn_string, normalize_text
from libris.core.types import MatchMethod

RecordT = TypeVar("RecordT")

MetadataOf = Callable[[RecordT], BookMetadata | None]


@dataclass(frozen=True, slots=True)
class DuplicateKey:
    """The signature a record is matched on."""

    provider_id: str | None
    isbns: frozenset[str]
    title_author: tuple[str, str] | None

    @classmethod
    def of(cls, metadata: BookMetadata) -> DuplicateKey:
        cleaned = (normalize_isbn_string(metadata.isbn_13), normalize_isbn_string(metadata.isbn_10))
        isbns = frozenset(isbn for isbn in cleaned if isbn)

        title_author = None
        title = normalize_text(metadata.title)
        author = normalize_text(metadata.first_author)
        if title and author:
            title_author = (title, author)

        return cls(
            provider_id=metadata.provider_id or None,
            isbns=isbns,
            title_author=title_author,
        )


@dataclass(frozen=True, slots=True)
class DuplicateMatch(Generic[RecordT]):
    """An existing record and the tier that matched it."""

    record: RecordT
    method: MatchMethod


def default_metadata_of(record: object) -> BookMetadata | None:
    """Use the record itself if it is metadata, else its ``metadata`` attribute."""
    if isinstance(record, BookMetadata):
        return record
    metadata = getattr(record, "metadata", None)
    return metadata if isinstance(metadata, BookMetadata) else None


class DuplicateIndex(Generic[RecordT]):
    """
    Hash index over an existing collection for repeated duplicate checks.

    Records without metadata are skipped. Build once per collection snapshot
    when checking many candidates, e.g. every row of an import.
    """

    def __init__(
        self,
        existing: Iterable[RecordT],
        metadata_of: MetadataOf | None = None,
    ) -> None:
        extract = metadata_of or default_metadata_of
        self._by_provider_id: dict[str, RecordT] = {}
        self._by_isbn: dict[str, RecordT] = {}
        self._by_title_author: dict[tuple[str, str], RecordT] = {}

        for record in existing:
            metadata = extract(record)
            if metadata is None:
                continue
            key = DuplicateKey.of(metadata)
            if key.provider_id:
                self._by_provider_id.setdefault(key.provider_id, record)
            for isbn in key.isbns:
                self._by_isbn.setdefault(isbn, record)
            if key.title_author:
                self._by_title_author.setdefault(key.title_author, record)

    def find(self, candidate: BookMetadata) -> DuplicateMatch[RecordT] | None:
        key = DuplicateKey.of(candidate)

        if key.provider_id and key.provider_id in self._by_provider_id:
            return DuplicateMatch(self._by_provider_id[key.provider_id], MatchMethod.PROVIDER_ID)

        # ISBN-13 is checked before ISBN-10 so the more specific form wins
        for isbn in sorted(key.isbns, key=len, reverse=True):
            if isbn in self._by_isbn:
                return DuplicateMatch(self._by_isbn[isbn], MatchMethod.ISBN)

        if key.title_author and key.title_author in self._by_title_author:
            return DuplicateMatch(self._by_title_author[key.title_author], MatchMethod.TITLE_AUTHOR)

        return None


def find_existing_with_method(
    candidate: BookMetadata,
    existing: Iterable[RecordT],
    *,
    metadata_of: MetadataOf | None = None,
) -> DuplicateMatch[RecordT] | None:
    """Find the record ``candidate`` duplicates, and how it matched."""
    return DuplicateIndex(existing, metadata_of).find(candidate)


def find_existing(
    candidate: BookMetadata,
    existing: Iterable[RecordT],
    *,
    metadata_of: MetadataOf | None = None,
) -> RecordT | None:
    """Find the record ``candidate`` duplicates, or ``None``."""
    match = find_existing_with_method(candidate, existing, metadata_of=metadata_of)
    return match.record if match else None
