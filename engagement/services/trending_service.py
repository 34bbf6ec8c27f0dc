"""
Trending Service

Ranks posts viewed within the trailing window by views, then likes. The
whole ranking is cached per scope and limit and simply expires.
"""

import logging
from datetime import timedelta
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement.config import settings
from engagement.models.post import BlogPost, CommunityPost
from engagement.models.post_stats import BlogPostStats
from engagement.services.post_resolver import PostType, trending_key
from engagement.utils.cache import cache_manager
from engagement.utils.clock import utcnow
from engagement.utils.metrics import record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)


class TrendingScope(str, Enum):
    EDITORIAL = "editorial"
    COMMUNITY = "community"
    BOTH = "both"


def clamp_limit(limit: int) -> int:
    return max(1, min(limit, settings.trending_max_limit))


def _summary(post_type: PostType, row) -> dict[str, Any]:
    return {
        "id": row.id,
        "post_type": post_type.value,
        "title": row.title,
        "slug": row.slug,
        "excerpt": row.excerpt,
        "image_url": row.image_url,
        "total_views": row.total_views or 0,
        "total_likes": row.total_likes or 0,
        "last_viewed_at": row.last_viewed_at.isoformat() if row.last_viewed_at else None,
    }


async def _editorial_trending(db: AsyncSession, since, limit: int) -> list[dict[str, Any]]:
    result = await db.execute(
        select(
            BlogPost.id,
            BlogPost.title,
            BlogPost.slug,
            BlogPost.excerpt,
            BlogPost.image_url,
            BlogPostStats.total_views.label("total_views"),
            BlogPostStats.total_likes.label("total_likes"),
            BlogPostStats.last_viewed_at.label("last_viewed_at"),
        )
        .join(BlogPostStats, BlogPostStats.post_id == BlogPost.id)
        .where(BlogPost.published.is_(True), BlogPostStats.last_viewed_at >= since)
        .order_by(BlogPostStats.total_views.desc(), BlogPostStats.total_likes.desc(), BlogPost.id)
        .limit(limit)
    )
    return [_summary(PostType.EDITORIAL, row) for row in result.all()]


async def _community_trending(db: AsyncSession, since, limit: int) -> list[dict[str, Any]]:
    result = await db.execute(
        select(
            CommunityPost.id,
            CommunityPost.title,
            CommunityPost.slug,
            CommunityPost.excerpt,
            CommunityPost.image_url,
            CommunityPost.view_count.label("total_views"),
            CommunityPost.like_count.label("total_likes"),
            CommunityPost.last_viewed_at.label("last_viewed_at"),
        )
        .where(CommunityPost.published.is_(True), CommunityPost.last_viewed_at >= since)
        .order_by(CommunityPost.view_count.desc(), CommunityPost.like_count.desc(), CommunityPost.id)
        .limit(limit)
    )
    return [_summary(PostType.COMMUNITY, row) for row in result.all()]


async def get_trending(db: AsyncSession, scope: TrendingScope, limit: int) -> list[dict[str, Any]]:
    """
    Get trending post summaries.

    Args:
        db: Database session
        scope: editorial, community or both
        limit: Maximum number of posts (clamped to 1..trending_max_limit)

    Returns:
        Post summaries, most viewed first
    """
    limit = clamp_limit(limit)
    key = trending_key(scope.value, limit)

    cached = await cache_manager.get(key)
    if isinstance(cached, list):
        record_cache_hit("trending")
        return cached
    record_cache_miss("trending")

    since = utcnow() - timedelta(days=settings.trending_window_days)
    posts: list[dict[str, Any]] = []
    if scope in (TrendingScope.EDITORIAL, TrendingScope.BOTH):
        posts.extend(await _editorial_trending(db, since, limit))
    if scope in (TrendingScope.COMMUNITY, TrendingScope.BOTH):
        posts.extend(await _community_trending(db, since, limit))

    # Each type is ranked on its own; merge by views, then likes
    if scope is TrendingScope.BOTH:
        posts.sort(key=lambda p: (p["total_views"], p["total_likes"]), reverse=True)
    posts = posts[:limit]

    await cache_manager.set(key, posts, ttl=settings.trending_cache_ttl_seconds)
    return posts
