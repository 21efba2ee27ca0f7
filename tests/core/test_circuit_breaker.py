"""测试熔断器实现."""

from __future__ import annotations

import asyncio

import pytest

from venrich.core.exceptions import CircuitOpenError, DispatchError, UpstreamError
from venrich.core.patterns import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerRegistry, CircuitState


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingCall:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.fail:
            raise UpstreamError("boom", "src", retryable=True)
        return "ok"


class TestCircuitBreakerConfig:
    """测试熔断器配置."""

    def test_default_config(self):
        config = CircuitBreakerConfig()
        assert config.failure_threshold == 5
        assert config.recovery_timeout == 60.0
        assert config.expected_exception == (UpstreamError, DispatchError)
        assert config.name == "default"


class TestCircuitBreaker:
    """测试熔断器状态机."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def breaker(self, clock):
        config = CircuitBreakerConfig(failure_threshold=3, recovery_timeout=30.0, name="fetch:src@test")
        return CircuitBreaker(config, clock=clock)

    async def _trip(self, breaker: CircuitBreaker, failures: int) -> None:
        failing = CountingCall(fail=True)
        for _ in range(failures):
            with pytest.raises(UpstreamError):
                await breaker.call(failing)

    @pytest.mark.asyncio
    async def test_successful_call(self, breaker):
        assert await breaker.call(CountingCall()) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_threshold_and_short_circuits(self, breaker):
        await self._trip(breaker, 3)
        assert breaker.state == CircuitState.OPEN

        short_circuited = CountingCall()
        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(short_circuited)
        assert short_circuited.calls == 0
        assert exc_info.value.remaining_time == pytest.approx(30.0)
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_success_resets_failure_counter(self, breaker):
        await self._trip(breaker, 2)
        await breaker.call(CountingCall())
        assert breaker.failure_count == 0
        await self._trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_unexpected_exceptions_are_not_counted(self, breaker):
        async def bad():
            raise ValueError("bug")

        for _ in range(5):
            with pytest.raises(ValueError):
                await breaker.call(bad)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_half_open_admits_exactly_one_trial(self, breaker, clock):
        await self._trip(breaker, 3)
        clock.advance(30.0)

        release = asyncio.Event()
        trial_calls = 0

        async def slow_trial():
            nonlocal trial_calls
            trial_calls += 1
            await release.wait()
            return "recovered"

        trial = asyncio.create_task(breaker.call(slow_trial))
        await asyncio.sleep(0)
        assert breaker.state == CircuitState.HALF_OPEN

        concurrent = CountingCall()
        with pytest.raises(CircuitOpenError):
            await breaker.call(concurrent)
        assert concurrent.calls == 0

        release.set()
        assert await trial == "recovered"
        assert trial_calls == 1
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_failed_trial_reopens_and_restarts_cooldown(self, breaker, clock):
        await self._trip(breaker, 3)
        clock.advance(31.0)

        await self._trip(breaker, 1)
        assert breaker.state == CircuitState.OPEN

        clock.advance(10.0)
        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(CountingCall())
        assert exc_info.value.remaining_time == pytest.approx(20.0)


class TestCircuitBreakerRegistry:
    """测试熔断器注册表."""

    @pytest.mark.asyncio
    async def test_get_or_create_returns_same_breaker(self):
        registry = CircuitBreakerRegistry()
        first = await registry.get_or_create("fetch:a", CircuitBreakerConfig(name="fetch:a", failure_threshold=1))
        second = await registry.get_or_create("fetch:a")
        assert first is second
        assert registry.get_breaker("fetch:a") is first
        assert registry.get_breaker("missing") is None

    @pytest.mark.asyncio
    async def test_state_changes_are_reported(self):
        transitions: list[tuple[str, CircuitState]] = []
        registry = CircuitBreakerRegistry(on_state_change=lambda name, state: transitions.append((name, state)))
        breaker = await registry.get_or_create("fetch:a", CircuitBreakerConfig(name="fetch:a", failure_threshold=1))

        with pytest.raises(UpstreamError):
            await breaker.call(CountingCall(fail=True))

        assert transitions == [("fetch:a", CircuitState.OPEN)]
        assert breaker.state == CircuitState.OPEN
