"""Text normalization utilities for matching and serialization."""

import re

_ISBN_SEPARATORS = re.compile(r"[-\s]")


def normalize_text(
    text: str | None,
    *,
    lowercase: bool = True,
    collapse_whitespace: bool = False,
) -> str:
    """
    Normalize text for matching purposes.

    Args:
        text: Input text to normalize
        lowercase: Case-fold the text
        collapse_whitespace: Replace runs of whitespace with a single space

    Returns:
        Trimmed string suitable for comparison
    """
    if not text:
        return ""

    result = text.casefold() if lowercase else text

    if collapse_whitespace:
        result = re.sub(r"\s+", " ", result)

    return result.strip()


def normalize_isbn_string(value: str | None) -> str:
    """Strip hyphens and spaces and uppercase, without validating."""
    if not value:
        return ""
    return _ISBN_SEPARATORS.sub("", value).upper()


def to_camel_case(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(word.capitalize() for word in components[1:])
