"""Duplicate detection endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from libris.api.schemas import DuplicateMatchResponse, FindDuplicateRequest, FindDuplicateResponse
from libris.matching import find_existing_with_method

router = APIRouter(prefix="/duplicates", tags=["duplicates"])


@router.post(
    "/find",
    response_model=FindDuplicateResponse,
    response_model_by_alias=True,
    operation_id="findDuplicate",
    summary="Find an existing duplicate",
    description=(
        "Check a candidate record against a collection by provider ID, then ISBN, "
        "then title and first author."
    ),
)
async def find_duplicate(request: FindDuplicateRequest) -> FindDuplicateResponse:
    """Find the first existing record the candidate duplicates."""
    indexed = list(enumerate(item.to_metadata() for item in request.existing))
    match = find_existing_with_method(
        request.candidate.to_metadata(),
        indexed,
        metadata_of=lambda pair: pair[1],
    )
    if match is None:
        return FindDuplicateResponse(match=None)
    return FindDuplicateResponse(
        match=DuplicateMatchResponse(index=match.record[0], method=match.method)
    )
