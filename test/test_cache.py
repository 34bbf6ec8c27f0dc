"""
Tests for the Redis cache manager.

Stateful behaviour runs against fakeredis; failure handling uses AsyncMock
clients that raise or hang.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from engagement.config import settings
from engagement.utils.cache import CacheManager, cache_manager


@pytest.fixture
def broken_cache():
    """Cache manager whose Redis raises on every call"""
    manager = CacheManager()
    mock = AsyncMock()
    mock.get.side_effect = RedisConnectionError("connection refused")
    mock.setex.side_effect = RedisConnectionError("connection refused")
    mock.exists.side_effect = RedisConnectionError("connection refused")
    mock.delete.side_effect = RedisConnectionError("connection refused")
    mock.ping.side_effect = RedisConnectionError("connection refused")
    mock.pipeline = MagicMock(side_effect=RedisConnectionError("connection refused"))
    manager._redis = mock
    return manager


class TestCacheOperations:
    """Happy path against fakeredis"""

    async def test_set_and_get_json(self):
        assert await cache_manager.set("editorial:stats:1", {"total_views": 3, "last_viewed_at": None}, ttl=60)
        assert await cache_manager.get("editorial:stats:1") == {"total_views": 3, "last_viewed_at": None}

    async def test_get_missing_key(self):
        assert await cache_manager.get("missing") is None

    async def test_set_uses_ttl(self, fake_redis):
        await cache_manager.set("k", 1, ttl=120)
        assert 0 < await fake_redis.ttl("k") <= 120

    async def test_exists(self):
        assert await cache_manager.exists("k") is False
        await cache_manager.set("k", 1, ttl=60)
        assert await cache_manager.exists("k") is True

    async def test_delete(self):
        await cache_manager.set("k", 1, ttl=60)
        assert await cache_manager.delete("k") is True
        assert await cache_manager.get("k") is None

    async def test_delete_pattern(self):
        await cache_manager.set("editorial:stats:1", 1, ttl=60)
        await cache_manager.set("editorial:stats:2", 2, ttl=60)
        await cache_manager.set("community:stats:1", 3, ttl=60)

        assert await cache_manager.delete_pattern("editorial:stats:*") == 2
        assert await cache_manager.get("community:stats:1") == 3


class TestIncrWithExpiry:
    async def test_first_increment_sets_expiry(self, fake_redis):
        assert await cache_manager.incr_with_expiry("editorial:ratelimit:1.2.3.4:1", 3600) == 1
        ttl = await fake_redis.ttl("editorial:ratelimit:1.2.3.4:1")
        assert 3500 < ttl <= 3600

    async def test_later_increments_keep_original_expiry(self, fake_redis):
        await cache_manager.incr_with_expiry("counter", 3600)
        await fake_redis.expire("counter", 100)

        assert await cache_manager.incr_with_expiry("counter", 3600) == 2
        assert await fake_redis.ttl("counter") <= 100

    async def test_concurrent_increments_are_not_lost(self):
        results = await asyncio.gather(*(cache_manager.incr_with_expiry("counter", 60) for _ in range(20)))
        assert sorted(results) == list(range(1, 21))


class TestCacheFailures:
    """Redis errors degrade to misses, never exceptions"""

    async def test_get_returns_none(self, broken_cache):
        assert await broken_cache.get("k") is None

    async def test_set_returns_false(self, broken_cache):
        assert await broken_cache.set("k", 1) is False

    async def test_exists_returns_none_when_unreachable(self, broken_cache):
        assert await broken_cache.exists("k") is None

    async def test_incr_returns_none(self, broken_cache):
        assert await broken_cache.incr_with_expiry("k", 60) is None

    async def test_ping_reports_unhealthy(self, broken_cache):
        assert await broken_cache.ping() is False

    async def test_slow_redis_times_out(self, monkeypatch):
        monkeypatch.setattr(settings, "cache_timeout_seconds", 0.05)

        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        manager = CacheManager()
        manager._redis = AsyncMock()
        manager._redis.get.side_effect = hang

        assert await manager.get("k") is None

    async def test_disabled_cache_is_a_miss(self):
        manager = CacheManager()
        manager._enabled = False
        manager._last_connect_attempt = float("inf")  # no reconnect during the test

        assert await manager.get("k") is None
        assert await manager.exists("k") is None
        assert manager.available is False
