"""测试响应缓存."""

from __future__ import annotations

import pytest

from venrich.core.cache import BatchCacheKey, ThreadSafeInMemoryCache
from venrich.core.models import Batch, InstrumentIdentifier, ProductCategory


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestThreadSafeInMemoryCache:
    @pytest.mark.asyncio
    async def test_set_and_get(self):
        cache = ThreadSafeInMemoryCache()
        await cache.set("k", {"v": 1}, ttl=10)
        assert await cache.get("k") == {"v": 1}
        assert cache.hits == 1

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        clock = FakeClock()
        cache = ThreadSafeInMemoryCache(clock=clock)
        await cache.set("k", "v", ttl=5)
        clock.now += 5
        assert await cache.get("k") is None
        assert cache.misses == 1
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_caching(self):
        cache = ThreadSafeInMemoryCache()
        await cache.set("k", "v", ttl=0)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        cache = ThreadSafeInMemoryCache(max_size=2)
        await cache.set("a", 1, ttl=60)
        await cache.set("b", 2, ttl=60)
        await cache.get("a")
        await cache.set("c", 3, ttl=60)

        assert await cache.get("b") is None
        assert await cache.get("a") == 1
        assert await cache.get("c") == 3


def test_batch_cache_key_ignores_identifier_order():
    a = InstrumentIdentifier(isin="A", figi="1")
    b = InstrumentIdentifier(isin="B", figi="2")
    first = BatchCacheKey("src", Batch(0, "src", ProductCategory.EQUITY, (a, b)))
    second = BatchCacheKey("src", Batch(3, "src", ProductCategory.EQUITY, (b, a)))
    other_source = BatchCacheKey("other", Batch(0, "other", ProductCategory.EQUITY, (a, b)))
    other_category = BatchCacheKey("src", Batch(0, "src", ProductCategory.FIXED_INCOME, (a, b)))

    assert first.key == second.key
    assert first.key != other_source.key
    assert first.key != other_category.key
    assert str(first).startswith("src|")
