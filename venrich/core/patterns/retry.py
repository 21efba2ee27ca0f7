"""重试机制实现，包括指数退避重试."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from loguru import logger

from venrich.core.exceptions import CircuitOpenError, DispatchError, UpstreamError

T = TypeVar("T")


@dataclass
class RetryConfig:
    """重试配置."""

    max_attempts: int = 3  # 最大尝试次数(含首次调用)
    base_delay: float = 1.0  # 基础延迟时间(秒)
    max_delay: float = 60.0  # 最大延迟时间(秒)
    exponential_base: float = 2.0  # 指数基数
    jitter: bool = True  # 是否添加随机抖动
    retry_on_exceptions: list[type] = field(default_factory=lambda: [UpstreamError, DispatchError])
    skip_on_exceptions: list[type] = field(default_factory=lambda: [CircuitOpenError])

    @classmethod
    def from_retry_max(cls, retry_max: int, backoff_base: float, backoff_max: float, **kwargs: Any) -> RetryConfig:
        """Build a config from the "retries after the first call" form used in settings."""
        return cls(max_attempts=retry_max + 1, base_delay=backoff_base, max_delay=backoff_max, **kwargs)


class ExponentialBackoffRetry:
    """指数退避重试实现. 每次执行创建一个实例, 不在并发调用之间共享."""

    def __init__(
        self,
        config: RetryConfig,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self.attempt_count = 0
        self._sleep = sleep

    def should_retry(self, exc: Exception) -> bool:
        """Skip-listed types never retry; errors flagged ``retryable=False`` never retry."""
        if any(isinstance(exc, exc_type) for exc_type in self.config.skip_on_exceptions):
            return False
        if not any(isinstance(exc, exc_type) for exc_type in self.config.retry_on_exceptions):
            return False
        return bool(getattr(exc, "retryable", True))

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """执行函数，应用重试逻辑.

        Raises:
            Exception: 当所有重试都失败或错误不可重试时抛出最后的异常
        """
        self.attempt_count = 0

        while True:
            self.attempt_count += 1
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                if not self.should_retry(e) or self.attempt_count >= self.config.max_attempts:
                    raise

                delay = self._calculate_delay(self.attempt_count - 1)
                logger.warning(
                    "retrying after failure",
                    attempt=self.attempt_count,
                    max_attempts=self.config.max_attempts,
                    delay=round(delay, 3),
                    error=str(e),
                )
                await self._sleep(delay)
                continue

            return result

    def _calculate_delay(self, attempt_number: int) -> float:
        """计算延迟时间.

        Args:
            attempt_number: 重试次数(从0开始)
        """
        if attempt_number < 0:
            return 0.0

        delay = self.config.base_delay * (self.config.exponential_base**attempt_number)

        if self.config.jitter and delay > 0:
            jitter_range = min(delay * 0.1, 1.0)  # 最多10%的抖动
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, min(delay, self.config.max_delay))


__all__ = ["RetryConfig", "ExponentialBackoffRetry"]
