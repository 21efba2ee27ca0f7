"""Startup wiring: builds registries and collaborators from one config snapshot."""

from __future__ import annotations

from venrich.core.cache import CacheStrategy, ThreadSafeInMemoryCache
from venrich.core.config import PipelineConfig
from venrich.core.extraction import ExtractorRegistry, build_default_registry
from venrich.core.monitoring import MetricsCollector, get_metrics_collector
from venrich.core.patterns import CircuitBreakerRegistry
from venrich.core.providers import ProviderFactory, ProviderRegistry
from venrich.core.services.audit import AuditSink, DuckDBAuditSink
from venrich.core.services.dispatcher import DownstreamDispatcher, build_dispatcher
from venrich.core.services.orchestrator import EnrichmentOrchestrator
from venrich.core.services.validation import ValidationGate


def build_orchestrator(
    config: PipelineConfig,
    *,
    providers: ProviderRegistry | None = None,
    extractors: ExtractorRegistry | None = None,
    dispatcher: DownstreamDispatcher | None = None,
    audit: AuditSink | None = None,
    cache: CacheStrategy | None = None,
    metrics: MetricsCollector | None = None,
) -> EnrichmentOrchestrator:
    """Assemble an orchestrator; any collaborator not given is built from ``config``.

    Raises:
        ConfigurationError: invalid provider or extractor configuration
        AuditError: the audit database cannot be opened
    """
    metrics = metrics or get_metrics_collector()
    breakers = CircuitBreakerRegistry(on_state_change=metrics.set_circuit_state)
    if providers is None:
        providers = ProviderFactory().build_registry(config)
    if extractors is None:
        extractors = build_default_registry(config.extractor_order)
    if dispatcher is None:
        dispatcher = build_dispatcher(config.downstream, breakers)
    if audit is None:
        audit = DuckDBAuditSink(config.audit.database)
    return EnrichmentOrchestrator(
        config,
        providers,
        extractors,
        dispatcher,
        audit,
        validation=ValidationGate(extractors.categories()),
        breakers=breakers,
        cache=cache or ThreadSafeInMemoryCache(),
        metrics=metrics,
    )


__all__ = ["build_orchestrator"]
