"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from libris import __version__
from libris.api.routes import duplicates_router, health_router, resolve_router
from libris.api.schemas import APIError, ErrorDetail
from libris.client import LibrisClient
from libris.config import get_settings
from libris.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Opens the provider clients and cache on startup, closes them on shutdown.
    """
    settings = get_settings()
    logging.getLogger("libris").setLevel(settings.log_level.upper())

    logger.info("Initializing libris client...")
    async with LibrisClient(settings) as client:
        app.state.libris_client = client
        logger.info(f"Application startup complete (default provider: {settings.default_provider})")

        yield

        logger.info("Shutting down application...")

    logger.info("Application shutdown complete")


async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    """Render rejected input as a 422 error body."""
    body = APIError(
        error=ErrorDetail(code=exc.kind.value, message=exc.message, details=exc.details or None)
    )
    return JSONResponse(status_code=422, content=body.model_dump(by_alias=True))


def create_app(
    *,
    title: str = "Libris API",
    description: str = "Concurrent ISBN metadata resolution API",
    version: str = __version__,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        title: API title for OpenAPI docs
        description: API description for OpenAPI docs
        version: API version
        cors_origins: List of allowed CORS origins

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        description=description,
        version=version,
        lifespan=lifespan,
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    if cors_origins is None:
        cors_origins = ["http://localhost:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidInputError, invalid_input_handler)

    # Register routes
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(resolve_router, prefix="/api/v1")
    app.include_router(duplicates_router, prefix="/api/v1")

    return app


# For uvicorn direct execution
app = create_app()
