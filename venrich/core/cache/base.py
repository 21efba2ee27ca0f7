"""批次响应缓存接口."""

from abc import ABC, abstractmethod
from typing import Any


class CacheStrategy(ABC):
    """Store for raw batch responses, addressed by :class:`BatchCacheKey` strings."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the live entry for ``key`` or ``None`` once it has expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None:
        """Keep ``value`` for ``ttl`` seconds; a non-positive ttl stores nothing."""
