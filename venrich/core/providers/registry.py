"""
Provider registry mapping source identifiers to analytics providers.

Providers are registered once at process startup from configuration; the
registry is then frozen and only resolved at request time.
"""

from __future__ import annotations

from loguru import logger

from venrich.core.exceptions import ConfigurationError, UnknownSourceError
from venrich.core.providers.base import AnalyticsProvider


class ProviderRegistry:
    """
    Registry for managing analytics providers by source id.
    """

    def __init__(self) -> None:
        """Initialize the provider registry."""
        self._providers: dict[str, AnalyticsProvider] = {}
        self._frozen = False

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def register(self, source_id: str, provider: AnalyticsProvider) -> None:
        """
        Register a provider under ``source_id``.

        Raises:
            ConfigurationError: When the registry is frozen or the provider is invalid
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register source {source_id}: provider registry is frozen",
                config_key="sources",
            )
        if not isinstance(provider, AnalyticsProvider):
            raise ConfigurationError(
                "Provider must implement AnalyticsProvider interface",
                config_key="provider_type",
                details={"provider_class": type(provider).__name__},
            )
        if not source_id:
            raise ConfigurationError("Source id cannot be empty", config_key="source_id")

        if source_id in self._providers:
            logger.warning("Overriding existing provider", source=source_id)

        self._providers[source_id] = provider
        logger.info("Registered provider", source=source_id, provider=provider.name)

    def resolve(self, source_id: str) -> AnalyticsProvider:
        """
        Return the provider registered for ``source_id``.

        Raises:
            UnknownSourceError: When nothing is registered under the id
        """
        try:
            return self._providers[source_id]
        except KeyError:
            raise UnknownSourceError(source_id, details={"registered": sorted(self._providers)}) from None

    def freeze(self) -> None:
        """Seal the registry; later registration attempts fail."""
        self._frozen = True

    def sources(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._providers

    async def close_all(self) -> None:
        for provider in self._providers.values():
            await provider.close()


__all__ = ["ProviderRegistry"]
