"""Integration test fixtures for the HTTP API."""

from __future__ import annotations

from typing import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from libris.api.app import create_app
from libris.client import LibrisClient
from libris.config import LibrisSettings
from libris.core.models import BookMetadata
from libris.engine.cache import MemoryCache
from libris.providers.registry import ProviderRegistry

KNOWN_ISBN_13 = "9780134685991"


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def fake_registry(make_provider, sample_book: BookMetadata) -> ProviderRegistry:
    """Registry of in-memory providers standing in for the remote catalogs."""
    registry = ProviderRegistry()
    registry.register(make_provider("proxy", supports_batch=True, books={KNOWN_ISBN_13: sample_book}))
    registry.register(make_provider("open_library"))
    return registry


@pytest.fixture
async def libris_client(
    mock_settings: LibrisSettings,
    fake_registry: ProviderRegistry,
) -> AsyncIterator[LibrisClient]:
    """Library client wired to fake providers and an in-memory cache."""
    async with LibrisClient(mock_settings, registry=fake_registry, cache=MemoryCache()) as client:
        yield client


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================


@pytest.fixture
def test_app(libris_client: LibrisClient) -> FastAPI:
    """Create the application with its client preinstalled in app state.

    ASGITransport does not run the lifespan, so state is set directly.
    """
    app = create_app()
    app.state.libris_client = libris_client
    return app


@pytest.fixture
async def test_client(test_app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Create async HTTP test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
