"""
Tests for the trending ranker
"""

from datetime import timedelta

import pytest

from engagement.models import BlogPost, BlogPostStats, CommunityPost
from engagement.services.trending_service import TrendingScope, clamp_limit, get_trending
from engagement.utils.cache import cache_manager
from engagement.utils.clock import utcnow


async def add_editorial(db, slug: str, views: int, likes: int = 0, viewed_days_ago: float | None = 0.5) -> BlogPost:
    post = BlogPost(title=slug.title(), slug=slug)
    db.add(post)
    await db.flush()
    last_viewed = utcnow() - timedelta(days=viewed_days_ago) if viewed_days_ago is not None else None
    db.add(BlogPostStats(post_id=post.id, total_views=views, total_likes=likes, last_viewed_at=last_viewed))
    await db.commit()
    return post


async def add_community(db, slug: str, views: int, likes: int = 0, viewed_days_ago: float | None = 0.5, **kwargs):
    last_viewed = utcnow() - timedelta(days=viewed_days_ago) if viewed_days_ago is not None else None
    post = CommunityPost(
        title=slug.title(), slug=slug, view_count=views, like_count=likes, last_viewed_at=last_viewed, **kwargs
    )
    db.add(post)
    await db.commit()
    return post


@pytest.fixture
async def mixed_posts(test_db):
    for slug, views in (("ed-a", 50), ("ed-b", 30), ("ed-c", 5)):
        await add_editorial(test_db, slug, views)
    for slug, views in (("co-a", 45), ("co-b", 20), ("co-c", 10), ("co-d", 1)):
        await add_community(test_db, slug, views)


class TestRanking:
    async def test_both_scopes_merge_by_views(self, test_db, mixed_posts):
        posts = await get_trending(test_db, TrendingScope.BOTH, 5)

        assert len(posts) == 5
        assert [p["slug"] for p in posts] == ["ed-a", "co-a", "ed-b", "co-b", "co-c"]
        views = [p["total_views"] for p in posts]
        assert views == sorted(views, reverse=True)

    async def test_single_scope_only_returns_that_type(self, test_db, mixed_posts):
        editorial = await get_trending(test_db, TrendingScope.EDITORIAL, 10)
        community = await get_trending(test_db, TrendingScope.COMMUNITY, 10)

        assert {p["post_type"] for p in editorial} == {"editorial"}
        assert len(editorial) == 3
        assert {p["post_type"] for p in community} == {"community"}
        assert len(community) == 4

    async def test_likes_break_view_ties(self, test_db):
        await add_community(test_db, "fewer-likes", 10, likes=1)
        await add_community(test_db, "more-likes", 10, likes=8)

        posts = await get_trending(test_db, TrendingScope.COMMUNITY, 5)
        assert [p["slug"] for p in posts] == ["more-likes", "fewer-likes"]

    async def test_window_excludes_stale_and_unviewed_posts(self, test_db):
        await add_editorial(test_db, "fresh", 3)
        await add_editorial(test_db, "stale", 900, viewed_days_ago=8)
        await add_editorial(test_db, "never-viewed", 0, viewed_days_ago=None)
        await add_community(test_db, "old-community", 500, viewed_days_ago=30)

        posts = await get_trending(test_db, TrendingScope.BOTH, 10)
        assert [p["slug"] for p in posts] == ["fresh"]

    async def test_unpublished_posts_are_excluded(self, test_db):
        await add_community(test_db, "draft", 99, published=False)
        await add_community(test_db, "live", 1)

        posts = await get_trending(test_db, TrendingScope.COMMUNITY, 5)
        assert [p["slug"] for p in posts] == ["live"]

    async def test_summary_shape(self, test_db):
        await add_editorial(test_db, "shape", 4, likes=2)

        (post,) = await get_trending(test_db, TrendingScope.EDITORIAL, 1)
        assert set(post) == {
            "id",
            "post_type",
            "title",
            "slug",
            "excerpt",
            "image_url",
            "total_views",
            "total_likes",
            "last_viewed_at",
        }
        assert post["total_likes"] == 2
        assert post["last_viewed_at"] is not None


class TestTrendingCache:
    async def test_result_is_cached_per_scope_and_limit(self, test_db, mixed_posts, fake_redis):
        first = await get_trending(test_db, TrendingScope.BOTH, 5)

        assert await cache_manager.get("trending:both:5") == first
        ttl = await fake_redis.ttl("trending:both:5")
        assert 3500 < ttl <= 3600
        assert await cache_manager.get("trending:both:3") is None

    async def test_cached_ranking_is_served_until_expiry(self, test_db, mixed_posts):
        first = await get_trending(test_db, TrendingScope.BOTH, 5)
        await add_community(test_db, "viral", 10_000)

        assert await get_trending(test_db, TrendingScope.BOTH, 5) == first


class TestClampLimit:
    @pytest.mark.parametrize(("requested", "expected"), [(0, 1), (-3, 1), (5, 5), (50, 50), (500, 50)])
    def test_clamp(self, requested, expected):
        assert clamp_limit(requested) == expected
