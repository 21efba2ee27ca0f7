"""Response cache module."""

from venrich.core.cache.base import CacheStrategy
from venrich.core.cache.key import BatchCacheKey
from venrich.core.cache.memory import ThreadSafeInMemoryCache

__all__ = ["CacheStrategy", "BatchCacheKey", "ThreadSafeInMemoryCache"]
