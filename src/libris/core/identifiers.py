"""ISBN identifiers: normalization for lookup, validation and conversion."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator

# Formatting characters stripped before validation. "=" shows up when
# spreadsheets export ISBN cells as ="9780134685991".
_STRIP_PATTERN = re.compile(r"[-\s=\"']")
_CANONICAL_PATTERN = re.compile(r"^(?:\d{13}|\d{9}[\dX])$")


@dataclass(frozen=True, slots=True)
class NormalizedIdentifier:
    """A raw input string together with its canonical ISBN form."""

    raw: str
    value: str

    @property
    def format(self) -> Literal["isbn10", "isbn13"]:
        return "isbn13" if len(self.value) == 13 else "isbn10"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class IdentifierRejection:
    """Why a raw input string is not a usable ISBN."""

    raw: str
    reason: str


def clean_isbn(value: str) -> str:
    """Strip hyphens, spaces and spreadsheet quoting, uppercase a trailing x."""
    return _STRIP_PATTERN.sub("", value).upper()


def normalize_identifier(raw: str) -> NormalizedIdentifier | IdentifierRejection:
    """
    Normalize a raw identifier for lookup.

    Never raises. Returns the canonical form (digits, plus a terminal X for
    ISBN-10) or a rejection; the caller's string is kept as-is in ``raw``.
    Checksums are not enforced here: catalogs answer well-formed but
    mis-keyed ISBNs with a plain not-found.
    """
    if not isinstance(raw, str):
        return IdentifierRejection(raw=str(raw), reason="Identifier must be a string")

    cleaned = clean_isbn(raw)
    if not cleaned:
        return IdentifierRejection(raw=raw, reason="Empty identifier")
    if len(cleaned) not in (10, 13):
        return IdentifierRejection(
            raw=raw, reason=f"Invalid ISBN length: {len(cleaned)}"
        )
    if not _CANONICAL_PATTERN.match(cleaned):
        return IdentifierRejection(raw=raw, reason=f"Invalid ISBN characters: {raw!r}")
    return NormalizedIdentifier(raw=raw, value=cleaned)


class ISBN(BaseModel):
    """Checksum-validated ISBN supporting both ISBN-10 and ISBN-13."""

    value: str = Field(..., description="Normalized ISBN value (digits only, with X for ISBN-10)")
    format: Literal["isbn10", "isbn13"]

    ISBN10_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[0-9]{9}[0-9X]$")
    ISBN13_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^(978|979)[0-9]{10}$")

    @field_validator("value", mode="before")
    @classmethod
    def normalize_isbn(cls, v: str) -> str:
        """Remove hyphens and spaces, uppercase X."""
        return clean_isbn(str(v))

    @model_validator(mode="after")
    def validate_isbn_format(self) -> Self:
        """Validate ISBN checksum and format consistency."""
        if self.format == "isbn10":
            if not self.ISBN10_PATTERN.match(self.value):
                raise ValueError(f"Invalid ISBN-10 format: {self.value}")
        else:
            if not self.ISBN13_PATTERN.match(self.value):
                raise ValueError(f"Invalid ISBN-13 format: {self.value}")
        if not is_valid_checksum(self.value):
            raise ValueError(f"Invalid {self.format.upper()} checksum: {self.value}")
        return self

    def to_isbn13(self) -> ISBN:
        """Convert to ISBN-13 format."""
        if self.format == "isbn13":
            return self
        base = "978" + self.value[:-1]
        return ISBN(value=base + _isbn13_check_digit(base), format="isbn13")

    def to_isbn10(self) -> ISBN | None:
        """Convert to ISBN-10 if possible (only 978 prefix)."""
        if self.format == "isbn10":
            return self
        if not self.value.startswith("978"):
            return None
        base = self.value[3:-1]
        return ISBN(value=base + _isbn10_check_digit(base), format="isbn10")

    @classmethod
    def parse(cls, value: str) -> ISBN:
        """Parse an ISBN string, auto-detecting format."""
        normalized = clean_isbn(value)
        if len(normalized) == 10:
            return cls(value=normalized, format="isbn10")
        elif len(normalized) == 13:
            return cls(value=normalized, format="isbn13")
        raise ValueError(f"Invalid ISBN length: {len(normalized)}")

    def __str__(self) -> str:
        return self.value

    def __hash__(self) -> int:
        return hash(self.to_isbn13().value)


def is_valid_checksum(value: str) -> bool:
    """Check the ISBN-10 (mod 11) or ISBN-13 (mod 10) check digit of a canonical value."""
    if len(value) == 10:
        if not ISBN.ISBN10_PATTERN.match(value):
            return False
        total = sum((10 if c == "X" else int(c)) * (10 - i) for i, c in enumerate(value))
        return total % 11 == 0
    if len(value) == 13 and value.isdigit():
        total = sum(int(c) * (1 if i % 2 == 0 else 3) for i, c in enumerate(value))
        return total % 10 == 0
    return False


def _isbn13_check_digit(base: str) -> str:
    total = sum(int(c) * (1 if i % 2 == 0 else 3) for i, c in enumerate(base))
    return str((10 - (total % 10)) % 10)


def _isbn10_check_digit(base: str) -> str:
    total = sum(int(c) * (10 - i) for i, c in enumerate(base))
    checksum = (11 - (total % 11)) % 11
    return "X" if checksum == 10 else str(checksum)
