"""
Downstream dispatch of validated records.

Sends must be idempotent: every request carries the record's idempotency key
(``Idempotency-Key`` header) and the downstream is expected to deduplicate on
it. Retries after a timeout may therefore deliver the same record twice.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger

from venrich.core.config import DownstreamConfig
from venrich.core.exceptions import CircuitOpenError, DispatchError
from venrich.core.models import Ack, UnifiedRecord
from venrich.core.patterns import CircuitBreakerConfig, CircuitBreakerRegistry, ResilientExecutor, RetryConfig

RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DownstreamDispatcher(ABC):
    """Delivers one validated record to the downstream system."""

    @property
    @abstractmethod
    def endpoint(self) -> str:
        pass

    @abstractmethod
    async def send(self, record: UnifiedRecord) -> Ack:
        """Deliver ``record`` or raise :class:`DispatchError`."""
        pass

    async def close(self) -> None:
        return None


class HttpDownstreamDispatcher(DownstreamDispatcher):
    """POSTs the record payload as JSON to the downstream endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if not url:
            raise ValueError("url cannot be empty")
        self.url = url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._client = client
        self._owns_client = client is None
        self._clock = clock

    @property
    def endpoint(self) -> str:
        return self.url

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": "venrich/0.1.0", **self.headers},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, record: UnifiedRecord) -> Ack:
        client = self._ensure_client()
        try:
            response = await client.post(
                self.url,
                json=record.to_payload(),
                headers={"Idempotency-Key": record.idempotency_key},
            )
        except httpx.TimeoutException as exc:
            raise DispatchError(f"Downstream timeout: {exc}", self.url, retryable=True) from exc
        except httpx.TransportError as exc:
            raise DispatchError(f"Downstream transport error: {exc}", self.url, retryable=True) from exc

        if response.status_code >= 400:
            raise DispatchError(
                f"Downstream returned HTTP {response.status_code}",
                self.url,
                retryable=response.status_code in RETRYABLE_STATUS,
                status_code=response.status_code,
            )

        reference = record.idempotency_key
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, Mapping) and body.get("reference"):
            reference = str(body["reference"])
        return Ack(endpoint=self.url, reference=reference, acknowledged_at=self._clock())


class DryRunDispatcher(DownstreamDispatcher):
    """Acknowledges records locally without contacting any downstream."""

    def __init__(self, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock

    @property
    def endpoint(self) -> str:
        return "dry-run"

    async def send(self, record: UnifiedRecord) -> Ack:
        logger.debug("Dry-run delivery", isin=record.identifier.isin, figi=record.identifier.figi)
        return Ack(endpoint=self.endpoint, reference=record.idempotency_key, acknowledged_at=self._clock())


class ResilientDispatcher(DownstreamDispatcher):
    """Applies retry and circuit breaking, scoped to the downstream endpoint."""

    def __init__(
        self,
        dispatcher: DownstreamDispatcher,
        config: DownstreamConfig,
        breakers: CircuitBreakerRegistry,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.dispatcher = dispatcher
        self.config = config
        self.breakers = breakers
        self._sleep = sleep
        self._retry_config = RetryConfig.from_retry_max(config.retry_max, config.backoff_base, config.backoff_max)

    @property
    def endpoint(self) -> str:
        return self.dispatcher.endpoint

    @property
    def breaker_name(self) -> str:
        return f"dispatch:{self.dispatcher.endpoint}"

    async def send(self, record: UnifiedRecord) -> Ack:
        breaker = await self.breakers.get_or_create(
            self.breaker_name,
            CircuitBreakerConfig(
                name=self.breaker_name,
                failure_threshold=self.config.circuit_failure_threshold,
                recovery_timeout=self.config.circuit_cooldown,
            ),
        )
        executor = ResilientExecutor(breaker, self._retry_config, sleep=self._sleep)
        try:
            return await executor.execute(self.dispatcher.send, record)
        except CircuitOpenError as exc:
            raise DispatchError(
                f"Downstream circuit is open ({exc.remaining_time:.1f}s remaining)",
                self.endpoint,
                retryable=False,
            ) from exc

    async def close(self) -> None:
        await self.dispatcher.close()


def build_dispatcher(
    config: DownstreamConfig,
    breakers: CircuitBreakerRegistry,
    *,
    client: httpx.AsyncClient | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> DownstreamDispatcher:
    """Build the configured dispatcher; ``endpoint = "dry-run"`` sends nowhere."""
    if config.endpoint == "dry-run":
        return DryRunDispatcher()
    inner = HttpDownstreamDispatcher(config.endpoint, timeout=config.timeout, client=client)
    return ResilientDispatcher(inner, config, breakers, sleep=sleep)


__all__ = [
    "DownstreamDispatcher",
    "HttpDownstreamDispatcher",
    "DryRunDispatcher",
    "ResilientDispatcher",
    "build_dispatcher",
    "RETRYABLE_STATUS",
]
