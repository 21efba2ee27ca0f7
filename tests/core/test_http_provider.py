"""测试HTTP分析数据提供商."""

from __future__ import annotations

import json

import httpx
import pytest
from conftest import FETCHED_AT, fixed_clock, make_identifiers

from venrich.core.exceptions import UpstreamError
from venrich.core.models import Batch, InstrumentIdentifier, ProductCategory
from venrich.core.providers import HttpAnalyticsProvider

BASE_URL = "https://vendor.example"


def _provider(handler, **kwargs) -> HttpAnalyticsProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return HttpAnalyticsProvider("vendor", BASE_URL, client=client, clock=fixed_clock, **kwargs)


def _batch() -> Batch:
    return Batch(0, "vendor", ProductCategory.FIXED_INCOME, tuple(make_identifiers(2)))


@pytest.mark.asyncio
async def test_fetch_posts_identifiers_and_translates_fields() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "instruments": [
                    {"isin": "US0000000001", "analytics": {"ytm": 4.1, "credit_rating": "AA"}},
                    {"isin": "US0000000002", "analytics": {"ytm": 5.0}},
                    {"isin": "NOT-REQUESTED", "analytics": {"ytm": 1.0}},
                    {"isin": "US0000000003"},
                ]
            },
        )

    provider = _provider(handler, field_map={"ytm": "yield_to_maturity"})
    raw = await provider.fetch(_batch())

    assert seen[0]["category"] == "fixed_income"
    assert [item["isin"] for item in seen[0]["identifiers"]] == ["US0000000001", "US0000000002"]
    first, second = _batch().identifiers
    assert set(raw.payloads) == {first, second}
    assert raw.payload_for(first)["yield_to_maturity"] == 4.1
    assert raw.payload_for(first)["credit_rating"] == "AA"
    assert raw.payload_for(second)["yield_to_maturity"] == 5.0
    assert raw.fetched_at == FETCHED_AT
    assert provider.endpoint == f"{BASE_URL}/analytics"


@pytest.mark.asyncio
async def test_listings_of_one_isin_keep_separate_payloads() -> None:
    listings = (
        InstrumentIdentifier(isin="US0378331005", figi="BBG000B9XRY4"),
        InstrumentIdentifier(isin="US0378331005", figi="BBG000B9Y5X2"),
        InstrumentIdentifier(isin="US0378331005", figi="BBG000B9Z0J8"),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "instruments": [
                    {"isin": "US0378331005", "figi": "BBG000B9XRY4", "analytics": {"ytm": 4.1}},
                    {"isin": "US0378331005", "figi": "BBG000B9Y5X2", "analytics": {"ytm": 4.4}},
                    {"isin": "US0378331005", "figi": "BBG999999999", "analytics": {"ytm": 9.9}},
                    {"isin": "US0378331005", "analytics": {"ytm": 4.0}},
                ]
            },
        )

    provider = _provider(handler, field_map={"ytm": "yield_to_maturity"})
    raw = await provider.fetch(Batch(0, "vendor", ProductCategory.FIXED_INCOME, listings))

    assert [raw.payload_for(item)["yield_to_maturity"] for item in listings] == [4.1, 4.4, 4.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(("status", "retryable"), [(429, True), (503, True), (500, True), (400, False), (404, False)])
async def test_http_errors_map_to_upstream_errors(status: int, retryable: bool) -> None:
    provider = _provider(lambda request: httpx.Response(status, json={"error": "nope"}))

    with pytest.raises(UpstreamError) as exc_info:
        await provider.fetch(_batch())

    assert exc_info.value.retryable is retryable
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_timeouts_are_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        await _provider(handler).fetch(_batch())
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_connect_errors_are_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        await _provider(handler).fetch(_batch())
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"not json", b'{"data": []}', b"[1, 2]"])
async def test_malformed_bodies_are_not_retryable(body: bytes) -> None:
    provider = _provider(lambda request: httpx.Response(200, content=body))

    with pytest.raises(UpstreamError) as exc_info:
        await provider.fetch(_batch())
    assert exc_info.value.retryable is False


def test_rejects_invalid_settings() -> None:
    with pytest.raises(ValueError):
        HttpAnalyticsProvider("vendor", "")
    with pytest.raises(ValueError):
        HttpAnalyticsProvider("vendor", BASE_URL, timeout=0)
