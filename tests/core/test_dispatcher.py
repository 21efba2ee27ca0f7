"""测试下游投递."""

from __future__ import annotations

import gc
import json
import weakref

import httpx
import pytest
from conftest import FETCHED_AT, fixed_clock, no_sleep

from venrich.core.config import DownstreamConfig
from venrich.core.exceptions import DispatchError
from venrich.core.models import (
    Ack,
    AttributeValue,
    InstrumentIdentifier,
    ProductCategory,
    UnifiedRecord,
    UnifiedRecordBuilder,
)
from venrich.core.patterns import CircuitBreakerRegistry, CircuitState
from venrich.core.services import (
    DownstreamDispatcher,
    DryRunDispatcher,
    HttpDownstreamDispatcher,
    ResilientDispatcher,
    build_dispatcher,
)

DOWNSTREAM_URL = "https://downstream.example/records"


def _record(isin: str = "XS0000000001") -> UnifiedRecord:
    builder = UnifiedRecordBuilder(
        InstrumentIdentifier(isin=isin, figi="BBG000000001"), ProductCategory.EQUITY, "src", FETCHED_AT
    )
    builder.add(AttributeValue.success("pe_ratio", 25.0, "ScalarExtractor:pe_ratio"))
    return builder.freeze()


def _http_dispatcher(handler) -> HttpDownstreamDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpDownstreamDispatcher(DOWNSTREAM_URL, client=client, clock=fixed_clock)


class FlakyDispatcher(DownstreamDispatcher):
    """Fails the first ``failures`` sends with the given error."""

    def __init__(self, failures: int, *, retryable: bool = True) -> None:
        self.failures = failures
        self.retryable = retryable
        self.calls = 0

    @property
    def endpoint(self) -> str:
        return "memory://flaky"

    async def send(self, record: UnifiedRecord) -> Ack:
        self.calls += 1
        if self.calls <= self.failures:
            raise DispatchError("downstream busy", self.endpoint, retryable=self.retryable, status_code=503)
        return Ack(self.endpoint, f"ref-{self.calls}", FETCHED_AT)


class TestHttpDownstreamDispatcher:
    @pytest.mark.asyncio
    async def test_posts_payload_with_idempotency_key(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"reference": "DS-1"})

        record = _record()
        ack = await _http_dispatcher(handler).send(record)

        assert ack == Ack(DOWNSTREAM_URL, "DS-1", FETCHED_AT)
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["Idempotency-Key"] == record.idempotency_key
        body = json.loads(request.content)
        assert body["isin"] == "XS0000000001"
        assert body["attributes"]["pe_ratio"]["value"] == 25.0

    @pytest.mark.asyncio
    async def test_reference_falls_back_to_idempotency_key(self):
        record = _record()
        ack = await _http_dispatcher(lambda request: httpx.Response(204)).send(record)
        assert ack.reference == record.idempotency_key

    @pytest.mark.asyncio
    async def test_same_record_sends_same_key(self):
        keys: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            keys.append(request.headers["Idempotency-Key"])
            return httpx.Response(200, json={})

        dispatcher = _http_dispatcher(handler)
        await dispatcher.send(_record())
        await dispatcher.send(_record())

        assert keys[0] == keys[1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("status", "retryable"), [(503, True), (429, True), (400, False), (422, False)])
    async def test_status_errors(self, status, retryable):
        dispatcher = _http_dispatcher(lambda request: httpx.Response(status))

        with pytest.raises(DispatchError) as exc_info:
            await dispatcher.send(_record())

        assert exc_info.value.retryable is retryable
        assert exc_info.value.status_code == status
        assert exc_info.value.endpoint == DOWNSTREAM_URL

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(DispatchError) as exc_info:
            await _http_dispatcher(handler).send(_record())
        assert exc_info.value.retryable is True

    def test_rejects_empty_url(self):
        with pytest.raises(ValueError):
            HttpDownstreamDispatcher("")


@pytest.mark.asyncio
async def test_dry_run_dispatcher_acknowledges_locally() -> None:
    dispatcher = DryRunDispatcher(clock=fixed_clock)
    record = _record()

    ack = await dispatcher.send(record)

    assert ack.endpoint == "dry-run"
    assert ack.reference == record.idempotency_key
    assert ack.acknowledged_at == fixed_clock()


@pytest.mark.asyncio
async def test_dry_run_dispatcher_retains_no_records() -> None:
    dispatcher = DryRunDispatcher(clock=fixed_clock)
    refs = []
    for index in range(50):
        record = _record(f"XS{index:010d}")
        refs.append(weakref.ref(record))
        await dispatcher.send(record)
    del record
    gc.collect()

    assert all(ref() is None for ref in refs)


class TestResilientDispatcher:
    def _dispatcher(self, inner, breakers=None, **config) -> ResilientDispatcher:
        return ResilientDispatcher(
            inner,
            DownstreamConfig(endpoint="memory://flaky", **config),
            breakers or CircuitBreakerRegistry(),
            sleep=no_sleep,
        )

    @pytest.mark.asyncio
    async def test_retries_retryable_failures(self):
        inner = FlakyDispatcher(failures=2)
        ack = await self._dispatcher(inner, retry_max=2).send(_record())

        assert ack.reference == "ref-3"
        assert inner.calls == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_permanent_failures(self):
        inner = FlakyDispatcher(failures=5, retryable=False)
        with pytest.raises(DispatchError):
            await self._dispatcher(inner, retry_max=3).send(_record())
        assert inner.calls == 1

    @pytest.mark.asyncio
    async def test_open_circuit_becomes_dispatch_error(self):
        inner = FlakyDispatcher(failures=100)
        breakers = CircuitBreakerRegistry()
        dispatcher = self._dispatcher(inner, breakers, retry_max=0, circuit_failure_threshold=2, circuit_cooldown=60)

        for _ in range(2):
            with pytest.raises(DispatchError):
                await dispatcher.send(_record())
        assert breakers.get_breaker(dispatcher.breaker_name).state == CircuitState.OPEN

        with pytest.raises(DispatchError, match="circuit is open") as exc_info:
            await dispatcher.send(_record())

        assert exc_info.value.retryable is False
        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_retries_stop_once_circuit_opens(self):
        inner = FlakyDispatcher(failures=100)
        dispatcher = self._dispatcher(inner, retry_max=10, circuit_failure_threshold=3, circuit_cooldown=60)

        with pytest.raises(DispatchError, match="circuit is open"):
            await dispatcher.send(_record())

        assert inner.calls == 3

    def test_breaker_is_scoped_to_endpoint(self):
        assert self._dispatcher(FlakyDispatcher(0)).breaker_name == "dispatch:memory://flaky"


class TestBuildDispatcher:
    def test_dry_run_endpoint(self):
        dispatcher = build_dispatcher(DownstreamConfig(endpoint="dry-run"), CircuitBreakerRegistry())
        assert isinstance(dispatcher, DryRunDispatcher)

    @pytest.mark.asyncio
    async def test_http_endpoint_is_resilient(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
        dispatcher = build_dispatcher(DownstreamConfig(endpoint=DOWNSTREAM_URL), CircuitBreakerRegistry(), client=client)

        assert isinstance(dispatcher, ResilientDispatcher)
        assert isinstance(dispatcher.dispatcher, HttpDownstreamDispatcher)
        ack = await dispatcher.send(_record())
        assert ack.endpoint == DOWNSTREAM_URL
        await client.aclose()
