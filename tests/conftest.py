"""Pytest configuration and shared fixtures for the venrich test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import pytest

from venrich.core.config import PipelineConfig, SourceConfig
from venrich.core.exceptions import AuditError, DispatchError, UpstreamError
from venrich.core.extraction import build_default_registry
from venrich.core.models import Ack, Batch, InstrumentIdentifier, RawResponse, UnifiedRecord
from venrich.core.monitoring import MetricsCollector
from venrich.core.providers import AnalyticsProvider, ProviderRegistry, StaticAnalyticsProvider
from venrich.core.services import AuditSink, DownstreamDispatcher, DryRunDispatcher, EnrichmentOrchestrator

FETCHED_AT = datetime(2024, 1, 2, 12, 0, tzinfo=UTC)

FIXED_INCOME_PAYLOAD: dict[str, Any] = {
    "yield_to_maturity": 4.25,
    "credit_rating": "BBB+",
    "modified_duration": 6.1,
    "coupon_rate": 3.5,
    "maturity_profile": {"0-5y": 40, "5-10y": 60},
    "benchmark_yield": 3.9,
}

EQUITY_PAYLOAD: dict[str, Any] = {
    "market_cap": 2.8e12,
    "pe_ratio": 25.0,
    "dividend_yield": 0.5,
    "beta": 1.2,
    "sector": "Information Technology",
    "revenue_by_region": {"Americas": 0.43, "Europe": 0.25, "Asia": 0.32},
}

HEDGE_FUND_PAYLOAD: dict[str, Any] = {
    "strategy": "Global Macro",
    "aum": 1.5e9,
    "asset_allocation": {"equity": 0.5, "bonds": 0.3, "cash": 0.2},
    "geographic_exposure": {"US": 60, "EU": 40},
    "risk_metrics": {
        "volatility": 0.12,
        "sharpe_ratio": 1.4,
        "sortino_ratio": 1.9,
        "max_drawdown": -0.18,
        "var_95": 0.03,
    },
    "management_fee": 2.0,
    "performance_fee": 20.0,
}


def make_identifier(n: int) -> InstrumentIdentifier:
    return InstrumentIdentifier(isin=f"US{n:010d}", figi=f"BBG{n:09d}")


def make_identifiers(count: int) -> list[InstrumentIdentifier]:
    return [make_identifier(n) for n in range(1, count + 1)]


def fixed_clock() -> datetime:
    return FETCHED_AT


async def no_sleep(delay: float) -> None:
    return None


class ScriptedProvider(AnalyticsProvider):
    """Serves the same payload for every ISIN; batches containing a failing ISIN raise."""

    def __init__(
        self,
        payload: Mapping[str, Any],
        *,
        failing_isins: Iterable[str] = (),
        retryable: bool = False,
        name: str = "scripted",
    ) -> None:
        self.payload = dict(payload)
        self.failing_isins = set(failing_isins)
        self.retryable = retryable
        self._name = name
        self.calls: list[Batch] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def endpoint(self) -> str:
        return f"scripted://{self._name}"

    async def fetch(self, batch: Batch) -> RawResponse:
        self.calls.append(batch)
        if any(identifier.isin in self.failing_isins for identifier in batch.identifiers):
            raise UpstreamError("upstream unavailable", batch.source_id, retryable=self.retryable, status_code=503)
        return RawResponse(
            source_id=batch.source_id,
            batch_fingerprint=batch.fingerprint,
            fetched_at=FETCHED_AT,
            payloads={identifier: self.payload for identifier in batch.identifiers},
        )


class RecordingDispatcher(DownstreamDispatcher):
    def __init__(self, *, failing_isins: Iterable[str] = ()) -> None:
        self.failing_isins = set(failing_isins)
        self.sent: list[UnifiedRecord] = []

    @property
    def endpoint(self) -> str:
        return "memory://downstream"

    async def send(self, record: UnifiedRecord) -> Ack:
        if record.identifier.isin in self.failing_isins:
            raise DispatchError("downstream rejected", self.endpoint, status_code=400)
        self.sent.append(record)
        return Ack(endpoint=self.endpoint, reference=f"ref-{record.identifier.isin}", acknowledged_at=FETCHED_AT)


class MemoryAuditSink(AuditSink):
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.entries: list[tuple[UnifiedRecord, Ack]] = []

    async def record(self, record: UnifiedRecord, ack: Ack) -> None:
        if self.fail:
            raise AuditError("audit store offline")
        self.entries.append((record, ack))


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        max_in_flight_batches=2,
        per_batch_concurrency=4,
        sources={"src": SourceConfig(batch_size=2, retry_max=0, cache_ttl=0, circuit_failure_threshold=5)},
    )


@pytest.fixture
def orchestrator_factory(
    pipeline_config: PipelineConfig, metrics: MetricsCollector
) -> Callable[..., EnrichmentOrchestrator]:
    """Build an orchestrator around the given provider with in-memory collaborators."""

    def _factory(
        provider: AnalyticsProvider | None = None,
        *,
        config: PipelineConfig | None = None,
        dispatcher: DownstreamDispatcher | None = None,
        audit: AuditSink | None = None,
    ) -> EnrichmentOrchestrator:
        providers = ProviderRegistry()
        providers.register("src", provider or StaticAnalyticsProvider({}, clock=fixed_clock))
        providers.freeze()
        return EnrichmentOrchestrator(
            config or pipeline_config,
            providers,
            build_default_registry(),
            dispatcher or DryRunDispatcher(clock=fixed_clock),
            audit or MemoryAuditSink(),
            metrics=metrics,
            sleep=no_sleep,
        )

    return _factory
