"""Analytics providers and the resilient fetch client."""

from venrich.core.providers.base import AnalyticsProvider
from venrich.core.providers.client import ResilientFetchClient
from venrich.core.providers.factory import ProviderFactory
from venrich.core.providers.http import HttpAnalyticsProvider
from venrich.core.providers.registry import ProviderRegistry
from venrich.core.providers.static import StaticAnalyticsProvider

__all__ = [
    "AnalyticsProvider",
    "ProviderRegistry",
    "ProviderFactory",
    "ResilientFetchClient",
    "HttpAnalyticsProvider",
    "StaticAnalyticsProvider",
]
