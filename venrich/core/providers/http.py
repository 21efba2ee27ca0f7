"""
HTTP analytics provider.

Posts the batch's identifiers to an upstream analytics endpoint and maps the
wire field names onto canonical payload keys.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger

from venrich.core.exceptions import UpstreamError
from venrich.core.models import Batch, InstrumentIdentifier, RawResponse
from venrich.core.providers.base import AnalyticsProvider

RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})


def _utc_now() -> datetime:
    return datetime.now(UTC)


class HttpAnalyticsProvider(AnalyticsProvider):
    """Provider reaching an upstream analytics API over HTTP.

    Request body::

        {"category": "...", "identifiers": [{"isin": "...", "figi": "..."}]}

    Expected response body::

        {"instruments": [{"isin": "...", "figi": "...", "analytics": {...}}]}

    ``figi`` is optional; an entry without it applies to every requested
    listing of its ISIN.
    """

    def __init__(
        self,
        source_id: str,
        base_url: str,
        *,
        path: str = "/analytics",
        api_key: str | None = None,
        timeout: float = 30.0,
        field_map: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if not base_url:
            raise ValueError("base_url cannot be empty")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.source_id = source_id
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.api_key = api_key
        self.timeout = timeout
        self.field_map = dict(field_map or {})
        self._client = client
        self._owns_client = client is None
        self._clock = clock

    @property
    def name(self) -> str:
        return "http"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.path}"

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"User-Agent": "venrich/0.1.0", "Accept": "application/json"}
            if self.api_key:
                headers["X-API-Key"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, batch: Batch) -> RawResponse:
        body = {
            "category": batch.product_category.value,
            "identifiers": [{"isin": item.isin, "figi": item.figi} for item in batch.identifiers],
        }
        client = self._ensure_client()
        try:
            response = await client.post(self.path, json=body)
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Upstream timeout: {exc}", self.source_id, retryable=True) from exc
        except httpx.TransportError as exc:
            raise UpstreamError(f"Upstream transport error: {exc}", self.source_id, retryable=True) from exc

        if response.status_code >= 400:
            raise UpstreamError(
                f"Upstream returned HTTP {response.status_code}",
                self.source_id,
                retryable=response.status_code in RETRYABLE_STATUS,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("Upstream returned a non-JSON body", self.source_id) from exc

        instruments = data.get("instruments") if isinstance(data, Mapping) else None
        if not isinstance(instruments, list):
            raise UpstreamError("Upstream body is missing the instruments list", self.source_id)

        listings: dict[str, list[InstrumentIdentifier]] = {}
        for identifier in batch.identifiers:
            listings.setdefault(identifier.isin, []).append(identifier)

        payloads: dict[InstrumentIdentifier, dict[str, Any]] = {}
        by_isin: dict[str, dict[str, Any]] = {}
        for item in instruments:
            if not isinstance(item, Mapping) or not isinstance(item.get("analytics"), Mapping):
                logger.warning("Skipping malformed instrument entry", source=self.source_id)
                continue
            isin = item.get("isin")
            if isin not in listings:
                continue
            figi = item.get("figi")
            if figi is None:
                by_isin[isin] = self._translate(item["analytics"])
                continue
            if not isinstance(figi, str):
                logger.warning("Skipping instrument entry with a non-string figi", source=self.source_id, isin=isin)
                continue
            identifier = InstrumentIdentifier(isin=isin, figi=figi)
            if identifier in listings[isin]:
                payloads[identifier] = self._translate(item["analytics"])

        # an entry without a figi covers the remaining listings of its ISIN
        for isin, payload in by_isin.items():
            for identifier in listings[isin]:
                payloads.setdefault(identifier, payload)

        return RawResponse(
            source_id=self.source_id,
            batch_fingerprint=batch.fingerprint,
            fetched_at=self._clock(),
            payloads=payloads,
        )

    def _translate(self, analytics: Mapping[str, Any]) -> dict[str, Any]:
        """Rename wire fields to canonical keys; unmapped keys pass through."""
        return {self.field_map.get(key, key): value for key, value in analytics.items()}


__all__ = ["HttpAnalyticsProvider", "RETRYABLE_STATUS"]
