"""Health check endpoints."""

from __future__ import annotations

import time
from typing import Literal

from fastapi import APIRouter

from libris import __version__
from libris.api.dependencies import Client
from libris.api.schemas import CircuitResponse, HealthResponse
from libris.core.exceptions import CacheError
from libris.core.types import CircuitStateName

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_by_alias=True,
    operation_id="getHealth",
    summary="Health check",
    description="Report provider circuit states and cache size.",
)
async def health_check(client: Client) -> HealthResponse:
    """Check API health status."""
    overall_status: Literal["healthy", "degraded", "unhealthy"] = "healthy"

    providers: dict[str, CircuitResponse] = {}
    now = time.monotonic()
    for name in client.registry.names:
        state = client.breakers.get(name).state
        retry_after = None
        if state.name == CircuitStateName.OPEN and state.open_until is not None:
            retry_after = max(0.0, state.open_until - now)
            overall_status = "degraded"
        providers[name] = CircuitResponse(
            state=state.name,
            failure_count=state.failure_count,
            retry_after=retry_after,
        )

    cache_size = None
    if client.cache is not None:
        try:
            cache_size = await client.cache.size()
        except CacheError:
            overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version=__version__,
        default_provider=client.registry.default_name,
        providers=providers,
        cache_size=cache_size,
    )
