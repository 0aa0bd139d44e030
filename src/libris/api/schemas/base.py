"""Base schema configuration for API models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from libris.core.normalization import to_camel_case


class APIBaseSchema(BaseModel):
    """
    Base schema for all API models.

    Configured with camelCase aliases for TypeScript-friendly JSON serialization.
    """

    model_config = ConfigDict(
        alias_generator=to_camel_case,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorDetail(APIBaseSchema):
    """Error detail for API responses."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class APIError(APIBaseSchema):
    """Standard API error response."""

    error: ErrorDetail
