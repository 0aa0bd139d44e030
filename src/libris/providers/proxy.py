"""Books API proxy provider with native batch support."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from pydantic import ValidationError

from libris.core.exceptions import BatchLookupError, ProviderError
from libris.core.models import BookMetadata
from libris.core.types import ProviderName, ResultSource
from libris.providers.base import HTTPProvider, ProviderConfig
from libris.providers.google_books import parse_volume
from libris.providers.schemas import (
    BatchItemResult,
    BatchLookupRequest,
    BatchLookupResponse,
    BatchOptions,
    BatchResponsePayload,
)

logger = logging.getLogger(__name__)

# Query values the proxy understands for each upstream catalog
_UPSTREAM_PARAMS: dict[ProviderName, str | None] = {
    ProviderName.AUTO: None,
    ProviderName.ISBNDB: "isbndb",
    ProviderName.GOOGLE_BOOKS: "google",
    ProviderName.OPEN_LIBRARY: "openlibrary",
}

# Storage tiers the proxy names when it answers from its own cache
_CACHE_SOURCES = frozenset({"cache", "kv-hot", "r2-cold"})

# Upstreams with a native multi-ISBN endpoint behind the proxy
_BATCH_UPSTREAMS = frozenset({ProviderName.AUTO, ProviderName.ISBNDB})

# The proxy answers batches within 45s; allow for transfer on top
BATCH_REQUEST_TIMEOUT = 60.0


class ProxyProvider(HTTPProvider):
    """
    Provider backed by the books API proxy worker.

    The proxy fronts several upstream catalogs and answers every one of them
    with Google Books shaped volumes. ``upstream`` picks the catalog;
    ``AUTO`` lets the proxy choose.
    """

    NAME: ClassVar[str] = ProviderName.PROXY.value
    BASE_URL: ClassVar[str] = "https://books-api-proxy.jukasdrj.workers.dev"

    def __init__(
        self,
        config: ProviderConfig | None = None,
        upstream: ProviderName = ProviderName.ISBNDB,
    ) -> None:
        if upstream not in _UPSTREAM_PARAMS:
            raise ValueError(f"Unsupported proxy upstream: {upstream}")
        super().__init__(config)
        self.upstream = upstream

    @property
    def supports_batch(self) -> bool:
        return self.upstream in _BATCH_UPSTREAMS

    @property
    def _upstream_param(self) -> str | None:
        return _UPSTREAM_PARAMS[self.upstream]

    async def lookup_one(self, isbn: str) -> BookMetadata | None:
        """Look up a single ISBN through ``GET /isbn``."""
        params: dict[str, Any] = {"isbn": isbn}
        if self._upstream_param:
            params["provider"] = self._upstream_param

        response = await self._make_request("GET", "/isbn", params=params)
        if response.status_code == 404:
            return None

        data = self._decode_json(response)
        if not isinstance(data, dict):
            raise ProviderError(
                message=f"Unexpected response shape from {self.name}",
                source=self.name,
                status_code=response.status_code,
            )

        if error := data.get("error"):
            if "not found" in str(error).lower():
                return None
            raise ProviderError(
                message=f"{self.name} error: {error}",
                source=self.name,
                status_code=response.status_code,
            )

        metadata = parse_volume(data, data.get("provider") or self._provenance_name)
        return _mark_source(metadata, response.headers.get("X-Cache"))

    async def lookup_batch(
        self,
        isbns: Sequence[str],
        options: BatchOptions | None = None,
    ) -> BatchLookupResponse:
        """
        Look up many ISBNs in one ``POST /batch`` call.

        Raises ``BatchLookupError`` when the proxy reports an error, marks the
        response partial, or omits per-item results.
        """
        if not self.supports_batch:
            return await super().lookup_batch(isbns, options)

        request = BatchLookupRequest(
            isbns=list(isbns),
            provider=self._upstream_param,
            options=options or BatchOptions(),
        )
        response = await self._make_request(
            "POST",
            "/batch",
            json=request.model_dump(by_alias=True),
            timeout=BATCH_REQUEST_TIMEOUT,
        )
        if response.status_code == 404:
            raise ProviderError(
                message=f"{self.name} batch endpoint not available",
                source=self.name,
                status_code=404,
            )

        try:
            payload = BatchResponsePayload.model_validate(self._decode_json(response))
        except ValidationError as e:
            raise ProviderError(
                message=f"Malformed batch response from {self.name}: {e.error_count()} errors",
                source=self.name,
                status_code=response.status_code,
            ) from e

        if payload.error:
            raise BatchLookupError(
                message=f"Batch lookup failed: {payload.error}",
                source=self.name,
                details={"request_id": payload.request_id},
            )
        if payload.results is None:
            raise BatchLookupError(
                message="Batch response carried no results",
                source=self.name,
                details={"request_id": payload.request_id},
            )
        if payload.partial:
            raise BatchLookupError(
                message="Batch response was partial",
                source=self.name,
                partial=True,
                details={"request_id": payload.request_id},
            )

        provider = payload.provider or self._provenance_name
        results = []
        for item in payload.results:
            metadata = parse_volume(item.data, provider) if item.found else None
            if metadata is not None:
                metadata = _mark_source(metadata, item.source)
            results.append(
                BatchItemResult(
                    isbn=item.isbn,
                    found=metadata is not None,
                    metadata=metadata,
                    error=item.error,
                    source=item.source,
                )
            )

        found = sum(1 for r in results if r.found)
        logger.debug(
            f"Batch {payload.request_id or '-'} via {provider}: "
            f"{found}/{len(results)} found"
        )
        return BatchLookupResponse(
            results=results,
            total=payload.total if payload.total is not None else len(isbns),
            found=payload.found if payload.found is not None else found,
            cached=payload.cached or 0,
            fresh=payload.fresh if payload.fresh is not None else found,
            provider=provider,
            request_id=payload.request_id,
            partial=False,
        )

    @property
    def _provenance_name(self) -> str:
        return self._upstream_param or self.name


def served_from_cache(marker: str | None) -> bool:
    """Whether a proxy cache marker (``X-Cache`` header or item ``source``) is a hit."""
    if not marker:
        return False
    value = marker.strip().lower()
    if value == "hit":
        return True
    return value.removeprefix("hit-") in _CACHE_SOURCES


def _mark_source(metadata: BookMetadata, marker: str | None) -> BookMetadata:
    if served_from_cache(marker):
        return metadata.with_provenance(source=ResultSource.CACHE)
    return metadata
