"""
Tests for view admission (session dedup + per-IP rate limiting)
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from engagement.services.post_resolver import PostRef, PostType
from engagement.services.view_admission import Admission, admit_view
from engagement.utils.cache import CacheManager, cache_manager

POST = PostRef(PostType.EDITORIAL, 1)
COMMUNITY_POST = PostRef(PostType.COMMUNITY, 1)


class TestDeduplication:
    async def test_second_view_in_cooldown_is_duplicate(self):
        assert await admit_view(cache_manager, POST, "s1", "1.2.3.4") is Admission.ADMITTED
        assert await admit_view(cache_manager, POST, "s1", "1.2.3.4") is Admission.REJECTED_DUPLICATE

    async def test_dedup_marker_uses_cooldown_ttl(self, fake_redis):
        await admit_view(cache_manager, POST, "s1", "1.2.3.4")

        ttl = await fake_redis.ttl("editorial:view:s1:1")
        assert 1700 < ttl <= 1800

    async def test_view_counts_again_after_cooldown(self, fake_redis):
        await admit_view(cache_manager, POST, "s1", "1.2.3.4")
        await fake_redis.delete("editorial:view:s1:1")  # cooldown elapsed

        assert await admit_view(cache_manager, POST, "s1", "1.2.3.4") is Admission.ADMITTED

    async def test_post_types_do_not_share_markers(self):
        await admit_view(cache_manager, POST, "s1", "1.2.3.4")
        assert await admit_view(cache_manager, COMMUNITY_POST, "s1", "1.2.3.4") is Admission.ADMITTED

    async def test_duplicate_does_not_consume_rate_limit_budget(self, fake_redis):
        await admit_view(cache_manager, POST, "s1", "1.2.3.4")
        for _ in range(5):
            await admit_view(cache_manager, POST, "s1", "1.2.3.4")

        assert await fake_redis.get("editorial:ratelimit:1.2.3.4:1") == "1"


class TestRateLimiting:
    async def test_eleventh_view_from_one_ip_is_rate_limited(self):
        outcomes = [await admit_view(cache_manager, POST, f"session-{i}", "1.2.3.4") for i in range(11)]

        assert outcomes[:10] == [Admission.ADMITTED] * 10
        assert outcomes[10] is Admission.REJECTED_RATE_LIMITED

    async def test_other_ips_are_unaffected(self):
        for i in range(11):
            await admit_view(cache_manager, POST, f"session-{i}", "1.2.3.4")

        assert await admit_view(cache_manager, POST, "fresh", "5.6.7.8") is Admission.ADMITTED

    async def test_counter_expires_after_an_hour(self, fake_redis):
        await admit_view(cache_manager, POST, "s1", "1.2.3.4")

        ttl = await fake_redis.ttl("editorial:ratelimit:1.2.3.4:1")
        assert 3500 < ttl <= 3600

    async def test_rate_limited_attempt_writes_no_dedup_marker(self, fake_redis):
        for i in range(11):
            await admit_view(cache_manager, POST, f"session-{i}", "1.2.3.4")

        assert await fake_redis.exists("editorial:view:session-10:1") == 0


class TestFailOpen:
    """Redis outages admit views instead of blocking tracking"""

    @pytest.fixture
    def unreachable_cache(self):
        manager = CacheManager()
        manager._redis = AsyncMock()
        manager._redis.exists.side_effect = RedisConnectionError("connection refused")
        manager._redis.setex.side_effect = RedisConnectionError("connection refused")
        return manager

    async def test_unreachable_cache_admits(self, unreachable_cache):
        assert await admit_view(unreachable_cache, POST, "s1", "1.2.3.4") is Admission.ADMITTED
        assert await admit_view(unreachable_cache, POST, "s1", "1.2.3.4") is Admission.ADMITTED

    async def test_failed_counter_admits(self, monkeypatch):
        monkeypatch.setattr(cache_manager, "incr_with_expiry", AsyncMock(return_value=None))
        assert await admit_view(cache_manager, POST, "s1", "1.2.3.4") is Admission.ADMITTED
