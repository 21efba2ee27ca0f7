"""
Provider factory for creating provider instances from configuration.

Each configured source names a provider *kind*; the factory maps kinds to
builders and assembles a frozen :class:`ProviderRegistry` at startup.
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from venrich.core.config import PipelineConfig, SourceConfig
from venrich.core.exceptions import ConfigurationError
from venrich.core.providers.base import AnalyticsProvider
from venrich.core.providers.http import HttpAnalyticsProvider
from venrich.core.providers.registry import ProviderRegistry
from venrich.core.providers.static import StaticAnalyticsProvider

ProviderBuilder = Callable[[str, SourceConfig], AnalyticsProvider]


def _build_http(source_id: str, config: SourceConfig) -> AnalyticsProvider:
    options = config.options
    if "base_url" not in options:
        raise ConfigurationError(
            f"Source {source_id} uses the http provider but has no base_url",
            config_key=f"sources.{source_id}.options.base_url",
        )
    return HttpAnalyticsProvider(
        source_id,
        options["base_url"],
        path=options.get("path", "/analytics"),
        api_key=options.get("api_key"),
        timeout=float(options.get("timeout", 30.0)),
        field_map=options.get("field_map"),
    )


def _build_static(source_id: str, config: SourceConfig) -> AnalyticsProvider:
    options = config.options
    if "fixtures" in options:
        return StaticAnalyticsProvider.from_json_file(options["fixtures"], name=source_id)
    return StaticAnalyticsProvider(options.get("payloads", {}), name=source_id)


class ProviderFactory:
    """Factory for creating analytics provider instances."""

    def __init__(self) -> None:
        self._builders: dict[str, ProviderBuilder] = {
            "http": _build_http,
            "static": _build_static,
        }

    def register_kind(self, kind: str, builder: ProviderBuilder) -> None:
        """Register a builder for a custom provider kind."""
        self._builders[kind] = builder
        logger.info("Registered provider kind", kind=kind)

    def create(self, source_id: str, config: SourceConfig) -> AnalyticsProvider:
        builder = self._builders.get(config.provider)
        if builder is None:
            raise ConfigurationError(
                f"Unknown provider kind {config.provider} for source {source_id}",
                config_key=f"sources.{source_id}.provider",
                details={"available": sorted(self._builders)},
            )
        return builder(source_id, config)

    def build_registry(self, config: PipelineConfig) -> ProviderRegistry:
        """Create one provider per configured source and freeze the registry."""
        registry = ProviderRegistry()
        for source_id, source_config in config.sources.items():
            registry.register(source_id, self.create(source_id, source_config))
        registry.freeze()
        return registry


__all__ = ["ProviderFactory", "ProviderBuilder"]
