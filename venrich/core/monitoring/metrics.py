"""Prometheus metrics helpers for the enrichment pipeline."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

_CIRCUIT_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}


class MetricsCollector:
    """Collects and exposes core Prometheus metrics for pipeline operations."""

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.fetch_latency_seconds = Histogram(
            "venrich_fetch_latency_seconds",
            "Latency distribution for upstream analytics fetches.",
            ("source",),
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
            registry=self.registry,
        )
        self.fetch_requests_total = Counter(
            "venrich_fetch_requests_total",
            "Total count of batch fetches issued against upstream providers.",
            ("source",),
            registry=self.registry,
        )
        self.fetch_failures_total = Counter(
            "venrich_fetch_failures_total",
            "Total count of batch fetches that ended without a response.",
            ("source",),
            registry=self.registry,
        )
        self.outcomes_total = Counter(
            "venrich_outcomes_total",
            "Per-instrument pipeline outcomes.",
            ("source", "category", "status"),
            registry=self.registry,
        )
        self.extractor_failures_total = Counter(
            "venrich_extractor_failures_total",
            "Attribute extractions that produced a failed value.",
            ("category", "extractor"),
            registry=self.registry,
        )
        self.audit_degraded_total = Counter(
            "venrich_audit_degraded_total",
            "Delivered records whose audit entry could not be written.",
            registry=self.registry,
        )
        self.circuit_state = Gauge(
            "venrich_circuit_state",
            "Circuit breaker state (0=closed, 1=half_open, 2=open).",
            ("breaker",),
            registry=self.registry,
        )

    def observe_fetch(self, source: str, latency_seconds: float, *, success: bool = True) -> None:
        """Record a provider fetch execution."""

        self.fetch_requests_total.labels(source=source).inc()
        self.fetch_latency_seconds.labels(source=source).observe(latency_seconds)
        if not success:
            self.fetch_failures_total.labels(source=source).inc()

    def record_outcome(self, source: str, category: str, status: str) -> None:
        self.outcomes_total.labels(source=source, category=category, status=status).inc()

    def record_extractor_failure(self, category: str, extractor: str) -> None:
        self.extractor_failures_total.labels(category=category, extractor=extractor).inc()

    def record_audit_degraded(self) -> None:
        self.audit_degraded_total.inc()

    def set_circuit_state(self, breaker: str, state: object) -> None:
        """Track a breaker transition; accepts a CircuitState or its value."""

        value = getattr(state, "value", state)
        self.circuit_state.labels(breaker=breaker).set(_CIRCUIT_STATE_VALUES.get(str(value), -1))

    def render(self) -> bytes:
        """Render metrics in Prometheus exposition format."""

        return generate_latest(self.registry)


_DEFAULT_COLLECTOR: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Return the global metrics collector instance."""

    global _DEFAULT_COLLECTOR
    if _DEFAULT_COLLECTOR is None:
        _DEFAULT_COLLECTOR = MetricsCollector()
    return _DEFAULT_COLLECTOR


def configure_metrics_collector(collector: MetricsCollector | None) -> None:
    """Override the global metrics collector for application wiring or tests."""

    global _DEFAULT_COLLECTOR
    _DEFAULT_COLLECTOR = collector
