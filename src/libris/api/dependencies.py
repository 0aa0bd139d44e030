"""FastAPI dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from libris.client import LibrisClient
from libris.engine.resolver import ISBNResolver


async def get_client(request: Request) -> LibrisClient:
    """Get the libris client from app state."""
    return request.app.state.libris_client


def resolver_for(client: LibrisClient, provider: str | None) -> ISBNResolver:
    """Look up the resolver for a provider, mapping unknown names to HTTP 400."""
    try:
        return client.resolver(provider)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Unknown provider: {provider}") from e


# Type aliases for cleaner dependency injection
Client = Annotated[LibrisClient, Depends(get_client)]
