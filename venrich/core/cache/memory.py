"""线程安全的内存缓存实现."""

import time
from collections import OrderedDict
from collections.abc import Callable
from threading import Lock
from typing import Any

from venrich.core.cache.base import CacheStrategy


class ThreadSafeInMemoryCache(CacheStrategy):
    """线程安全的LRU内存缓存, 条目按TTL过期."""

    def __init__(self, max_size: int = 1000, *, clock: Callable[[], float] = time.monotonic):
        """初始化内存缓存."""
        self.max_size = max_size
        self._cache: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = Lock()
        self._clock = clock
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Any | None:
        """从缓存获取数据."""
        with self._lock:
            if key not in self._cache:
                self.misses += 1
                return None

            value, expiry = self._cache[key]

            if self._clock() >= expiry:
                del self._cache[key]
                self.misses += 1
                return None

            # 移动到末尾（LRU）
            self._cache.move_to_end(key)
            self.hits += 1
            return value

    async def set(self, key: str, value: Any, ttl: float) -> None:
        """设置缓存数据. ttl <= 0 时不缓存."""
        if ttl <= 0:
            return
        expiry = self._clock() + ttl

        with self._lock:
            if key in self._cache:
                del self._cache[key]

            while len(self._cache) >= self.max_size and self._cache:
                self._cache.popitem(last=False)

            self._cache[key] = (value, expiry)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
