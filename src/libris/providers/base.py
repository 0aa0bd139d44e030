"""Provider client capability and shared HTTP plumbing."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, ClassVar, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

from libris.core.exceptions import (
    NetworkError,
    ProviderError,
    RateLimitedError,
    RequestTimeoutError,
)

if TYPE_CHECKING:
    from libris.core.models import BookMetadata
    from libris.providers.schemas import BatchLookupResponse, BatchOptions

logger = logging.getLogger(__name__)

# Used when a 429 carries no usable Retry-After header
DEFAULT_RETRY_AFTER = 60.0


@runtime_checkable
class ProviderClient(Protocol):
    """
    Capability the engine consumes to talk to a remote catalog.

    ``lookup_one`` returns ``None`` when the provider authoritatively has no
    match and raises a ``ResolutionError`` subclass on transport or provider
    faults. Providers with ``supports_batch`` set also implement
    ``lookup_batch``.
    """

    name: str
    supports_batch: bool

    async def lookup_one(self, isbn: str) -> BookMetadata | None: ...

    async def lookup_batch(
        self,
        isbns: Sequence[str],
        options: BatchOptions | None = None,
    ) -> BatchLookupResponse: ...

    async def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class RateProfile:
    """Request rate a provider tolerates: sustained calls per second and burst size."""

    rate_per_second: float
    burst: int


class ProviderConfig(BaseModel):
    """Connection configuration for an HTTP provider."""

    api_key: str | None = None
    base_url: str | None = None
    timeout: float = 30.0


def parse_retry_after(value: str | None) -> float:
    """Parse a Retry-After header given in seconds or as an HTTP date."""
    if not value:
        return DEFAULT_RETRY_AFTER
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class HTTPProvider:
    """
    Base class for HTTP-backed providers.

    Provides:
    - HTTP client management with connection pooling
    - Mapping of transport failures and status codes onto the error taxonomy
    - JSON decoding that reports malformed payloads as provider errors
    """

    NAME: ClassVar[str]
    BASE_URL: ClassVar[str]
    SUPPORTS_BATCH: ClassVar[bool] = False
    RATE_PROFILE: ClassVar[RateProfile | None] = None

    def __init__(self, config: ProviderConfig | None = None) -> None:
        self.config = config or ProviderConfig()
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def supports_batch(self) -> bool:
        return self.SUPPORTS_BATCH

    @property
    def rate_profile(self) -> RateProfile | None:
        """Published rate limits of the remote catalog, if known."""
        return self.RATE_PROFILE

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Get or create HTTP client with proper lifecycle."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url or self.BASE_URL,
                timeout=httpx.Timeout(self.config.timeout),
                headers=self._get_default_headers(),
                follow_redirects=True,
            )

        try:
            yield self._client
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Request to {self.name} timed out: {e}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"HTTP error talking to {self.name}: {e}") from e

    def _get_default_headers(self) -> dict[str, str]:
        """Get default headers for requests. Override to add auth."""
        return {
            "User-Agent": "libris/0.1",
            "Accept": "application/json",
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an HTTP request, raising on 429 and server/client errors other than 404."""
        async with self._get_client() as client:
            response = await client.request(method, url, **kwargs)

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            logger.info(f"{self.name} rate limited, retry after {retry_after:.1f}s")
            raise RateLimitedError(
                message=f"{self.name} rate limit exceeded",
                source=self.name,
                retry_after=retry_after,
            )

        if response.status_code != 404 and response.is_error:
            raise ProviderError(
                message=f"{self.name} returned HTTP {response.status_code}",
                source=self.name,
                status_code=response.status_code,
            )

        return response

    def _decode_json(self, response: httpx.Response) -> Any:
        """Decode a JSON body, reporting malformed payloads as provider errors."""
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                message=f"Malformed response from {self.name}: {e}",
                source=self.name,
                status_code=response.status_code,
            ) from e

    async def lookup_batch(
        self,
        isbns: Sequence[str],
        options: BatchOptions | None = None,
    ) -> BatchLookupResponse:
        raise ProviderError(
            message=f"{self.name} does not support batch lookups",
            source=self.name,
        )

    async def __aenter__(self) -> HTTPProvider:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
