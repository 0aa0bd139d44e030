"""Resolution endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from libris.api.dependencies import Client, resolver_for
from libris.api.schemas import (
    OutcomeResponse,
    ResolveBatchRequest,
    ResolveBatchResponse,
    ResolveISBNRequest,
    SummaryResponse,
)

router = APIRouter(prefix="/resolve", tags=["resolve"])


@router.post(
    "/isbn",
    response_model=OutcomeResponse,
    response_model_by_alias=True,
    operation_id="resolveIsbn",
    summary="Resolve one ISBN",
    description="Resolve book metadata for a single ISBN-10 or ISBN-13.",
)
async def resolve_isbn(request: ResolveISBNRequest, client: Client) -> OutcomeResponse:
    """Resolve a single identifier."""
    resolver = resolver_for(client, request.provider)
    outcome = await resolver.resolve_one(request.identifier)
    return OutcomeResponse.from_outcome(outcome)


@router.post(
    "/batch",
    response_model=ResolveBatchResponse,
    response_model_by_alias=True,
    operation_id="resolveBatch",
    summary="Resolve many ISBNs",
    description=(
        "Resolve a list of identifiers. Results are returned in input order, one per "
        "identifier, duplicates included."
    ),
)
async def resolve_batch(request: ResolveBatchRequest, client: Client) -> ResolveBatchResponse:
    """Resolve a batch of identifiers."""
    resolver = resolver_for(client, request.provider)
    outcomes, summary = await resolver.resolve_with_summary(request.identifiers)
    return ResolveBatchResponse(
        results=[OutcomeResponse.from_outcome(o) for o in outcomes],
        summary=SummaryResponse.from_summary(summary),
    )
