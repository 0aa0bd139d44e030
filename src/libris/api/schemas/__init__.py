"""API schema definitions."""

from libris.api.schemas.base import APIBaseSchema, APIError, ErrorDetail
from libris.api.schemas.requests import (
    BookMetadataInput,
    FindDuplicateRequest,
    ResolveBatchRequest,
    ResolveISBNRequest,
)
from libris.api.schemas.responses import (
    BookResponse,
    CircuitResponse,
    DuplicateMatchResponse,
    FindDuplicateResponse,
    HealthResponse,
    OutcomeResponse,
    ProvenanceResponse,
    ResolveBatchResponse,
    SummaryResponse,
)

__all__ = [
    # Base
    "APIBaseSchema",
    "APIError",
    "ErrorDetail",
    # Requests
    "BookMetadataInput",
    "FindDuplicateRequest",
    "ResolveBatchRequest",
    "ResolveISBNRequest",
    # Responses
    "BookResponse",
    "CircuitResponse",
    "DuplicateMatchResponse",
    "FindDuplicateResponse",
    "HealthResponse",
    "OutcomeResponse",
    "ProvenanceResponse",
    "ResolveBatchResponse",
    "SummaryResponse",
]
