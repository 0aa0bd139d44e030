"""API route modules."""

from libris.api.routes.duplicates import router as duplicates_router
from libris.api.routes.health import router as health_router
from libris.api.routes.resolve import router as resolve_router

__all__ = [
    "duplicates_router",
    "health_router",
    "resolve_router",
]
