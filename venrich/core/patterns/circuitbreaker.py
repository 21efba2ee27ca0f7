"""熔断器实现，用于隔离故障的上游或下游端点."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from loguru import logger

from venrich.core.exceptions import CircuitOpenError, DispatchError, UpstreamError

T = TypeVar("T")


class CircuitState(Enum):
    """熔断器状态."""

    CLOSED = "closed"  # 正常状态
    OPEN = "open"  # 熔断状态
    HALF_OPEN = "half_open"  # 半开状态, 仅允许一次试探调用


@dataclass
class CircuitBreakerConfig:
    """熔断器配置."""

    failure_threshold: int = 5  # 连续失败阈值
    recovery_timeout: float = 60.0  # 冷却时间(秒)
    expected_exception: tuple[type[BaseException], ...] = field(
        default_factory=lambda: (UpstreamError, DispatchError)
    )
    name: str = "default"


class CircuitBreaker:
    """熔断器实现.

    State is only mutated inside ``_lock``; the wrapped call itself runs
    outside the lock so concurrent callers are not serialised.
    """

    def __init__(
        self,
        config: CircuitBreakerConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[str, CircuitState], None] | None = None,
    ):
        self.config = config
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at: float | None = None
        self._trial_in_flight = False
        self._clock = clock
        self._on_state_change = on_state_change
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self.config.name

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """调用函数，应用熔断器逻辑.

        Raises:
            CircuitOpenError: 熔断器处于OPEN状态, 或半开状态下试探调用正在进行
        """
        is_trial = await self._before_call()
        succeeded = False
        counted = False
        try:
            result = await func(*args, **kwargs)
            succeeded = True
            return result
        except self.config.expected_exception:
            counted = True
            raise
        finally:
            await self._after_call(is_trial=is_trial, succeeded=succeeded, counted=counted)

    async def _before_call(self) -> bool:
        async with self._lock:
            if self.state == CircuitState.OPEN:
                remaining = self._get_remaining_time()
                if remaining > 0:
                    raise CircuitOpenError(self.name, remaining)
                self._transition(CircuitState.HALF_OPEN)

            if self.state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpenError(self.name, 0.0)
                self._trial_in_flight = True
                return True
            return False

    async def _after_call(self, *, is_trial: bool, succeeded: bool, counted: bool) -> None:
        async with self._lock:
            if is_trial:
                self._trial_in_flight = False

            if succeeded:
                if is_trial and self.state == CircuitState.HALF_OPEN:
                    self._transition(CircuitState.CLOSED)
                if self.state == CircuitState.CLOSED:
                    self.failure_count = 0
                return

            if not counted:
                return

            self.failure_count += 1
            if is_trial and self.state == CircuitState.HALF_OPEN:
                self._open()
            elif self.state == CircuitState.CLOSED and self.failure_count >= self.config.failure_threshold:
                self._open()

    def _open(self) -> None:
        self.opened_at = self._clock()
        self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state == self.state:
            return
        previous = self.state
        self.state = new_state
        if new_state == CircuitState.CLOSED:
            self.failure_count = 0
            self.opened_at = None
        logger.info(
            "circuit breaker transition",
            breaker=self.name,
            previous=previous.value,
            state=new_state.value,
        )
        if self._on_state_change is not None:
            self._on_state_change(self.name, new_state)

    def _get_remaining_time(self) -> float:
        """获取剩余冷却时间."""
        if self.opened_at is None:
            return 0.0
        remaining = self.config.recovery_timeout - (self._clock() - self.opened_at)
        return max(0.0, remaining)


class CircuitBreakerRegistry:
    """熔断器注册表, 每个 (数据源, 端点) 组合一个熔断器."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[str, CircuitState], None] | None = None,
    ):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._on_state_change = on_state_change

    async def get_or_create(self, name: str, config: CircuitBreakerConfig | None = None) -> CircuitBreaker:
        """获取或创建熔断器.

        Args:
            name: 熔断器名称
            config: 熔断器配置, 仅在首次创建时生效

        Returns:
            CircuitBreaker实例
        """
        async with self._lock:
            if name not in self._breakers:
                if config is None:
                    config = CircuitBreakerConfig(name=name)
                self._breakers[name] = CircuitBreaker(
                    config, clock=self._clock, on_state_change=self._on_state_change
                )
            return self._breakers[name]

    def get_breaker(self, name: str) -> CircuitBreaker | None:
        return self._breakers.get(name)


__all__ = [
    "CircuitState",
    "CircuitBreakerConfig",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
]
