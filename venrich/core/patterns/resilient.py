"""弹性执行器，结合熔断器和重试机制."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from venrich.core.patterns.circuitbreaker import CircuitBreaker
from venrich.core.patterns.retry import ExponentialBackoffRetry, RetryConfig

T = TypeVar("T")


class ResilientExecutor:
    """弹性执行器, 每次尝试都经过熔断器.

    Retries wrap the breaker: every attempt is counted by the breaker, and
    once it opens the resulting ``CircuitOpenError`` stops further retries.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        retry_config: RetryConfig,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.breaker = breaker
        self.retry_config = retry_config
        self._sleep = sleep

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """执行函数，应用熔断器和重试机制."""
        retry_instance = ExponentialBackoffRetry(self.retry_config, sleep=self._sleep)
        return await retry_instance.execute(self.breaker.call, func, *args, **kwargs)


__all__ = ["ResilientExecutor"]
