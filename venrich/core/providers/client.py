"""Resilient fetch client: response cache, retries and circuit breaking around a provider."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from time import perf_counter
from typing import Any

from loguru import logger

from venrich.core.cache import BatchCacheKey, CacheStrategy
from venrich.core.config import SourceConfig
from venrich.core.models import Batch, RawResponse
from venrich.core.monitoring import MetricsCollector
from venrich.core.patterns import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    ResilientExecutor,
    RetryConfig,
)
from venrich.core.providers.base import AnalyticsProvider


class ResilientFetchClient:
    """Wraps ``AnalyticsProvider.fetch`` with caching, retry and a circuit breaker.

    The breaker is scoped to the (source, provider endpoint) pair and lives in
    the shared registry, so its state survives across bulk requests.
    """

    def __init__(
        self,
        source_id: str,
        provider: AnalyticsProvider,
        config: SourceConfig,
        breakers: CircuitBreakerRegistry,
        cache: CacheStrategy | None = None,
        *,
        metrics: MetricsCollector | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.source_id = source_id
        self.provider = provider
        self.config = config
        self.breakers = breakers
        self.cache = cache
        self.metrics = metrics
        self._sleep = sleep
        self._retry_config = RetryConfig.from_retry_max(config.retry_max, config.backoff_base, config.backoff_max)

    @property
    def breaker_name(self) -> str:
        return f"fetch:{self.source_id}@{self.provider.endpoint}"

    async def fetch(self, batch: Batch) -> RawResponse:
        """Return the batch's raw response, from cache when still fresh.

        Raises:
            UpstreamError: retries exhausted or the error is not retryable
            CircuitOpenError: the breaker short-circuited the call
        """
        cache_key = BatchCacheKey(self.source_id, batch)
        use_cache = self.cache is not None and self.config.cache_ttl > 0
        if use_cache:
            cached = await self.cache.get(cache_key.key)
            if cached is not None:
                logger.debug("Serving batch from cache", source=self.source_id, batch=batch.index)
                return cached

        breaker = await self.breakers.get_or_create(
            self.breaker_name,
            CircuitBreakerConfig(
                name=self.breaker_name,
                failure_threshold=self.config.circuit_failure_threshold,
                recovery_timeout=self.config.circuit_cooldown,
            ),
        )
        executor = ResilientExecutor(breaker, self._retry_config, sleep=self._sleep)

        start = perf_counter()
        try:
            response = await executor.execute(self.provider.fetch, batch)
        except Exception:
            if self.metrics is not None:
                self.metrics.observe_fetch(self.source_id, perf_counter() - start, success=False)
            raise
        if self.metrics is not None:
            self.metrics.observe_fetch(self.source_id, perf_counter() - start)

        if use_cache:
            await self.cache.set(cache_key.key, response, self.config.cache_ttl)
        return response


__all__ = ["ResilientFetchClient"]
