"""
Analytics provider contract.

Every upstream analytics API is reached through an :class:`AnalyticsProvider`.
Providers translate their wire format into canonical per-instrument payload
mappings, so extraction never depends on which upstream answered.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from venrich.core.models import Batch, RawResponse


class AnalyticsProvider(ABC):
    """
    Abstract base class for upstream analytics providers.

    Implementations raise :class:`~venrich.core.exceptions.UpstreamError`
    with ``retryable`` set according to whether repeating the call can help.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider kind identifier (e.g. ``"http"``)."""
        pass

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Upstream endpoint; together with the source id it scopes the circuit breaker."""
        pass

    @abstractmethod
    async def fetch(self, batch: Batch) -> RawResponse:
        """
        Fetch raw analytics for every identifier in ``batch``.

        Args:
            batch: The batch of instruments to fetch

        Returns:
            RawResponse with one payload per instrument the upstream knows

        Raises:
            UpstreamError: When the upstream call fails
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the provider."""
        return None
