"""
Stats Service

Serves per-post stats through a short-lived shared cache entry. The entry
holds only post-level numbers; whether the current viewer liked the post is
looked up on every read and never cached.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement.config import settings
from engagement.models.post import CommunityPost
from engagement.models.post_stats import BlogPostStats
from engagement.services.like_service import LikeService
from engagement.services.post_resolver import PostRef, PostType, stats_key
from engagement.services.view_service import recompute_editorial_stats
from engagement.utils.cache import cache_manager
from engagement.utils.metrics import record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)


async def get_stats(db: AsyncSession, post: PostRef, viewer_id: int | None = None) -> dict[str, Any]:
    """
    Get stats for a post, plus ``has_liked`` for the viewer.

    Args:
        db: Database session
        post: Post to read
        viewer_id: Signed-in viewer, if any

    Returns:
        Dict with the base stats and ``has_liked``
    """
    key = stats_key(post)
    base = await cache_manager.get(key)

    if isinstance(base, dict):
        record_cache_hit("stats")
    else:
        record_cache_miss("stats")
        base = await load_base_stats(db, post)
        await cache_manager.set(key, base, ttl=settings.stats_cache_ttl_seconds)

    has_liked = False
    if viewer_id is not None:
        has_liked = await LikeService(db).has_liked(post, viewer_id)

    return {**base, "has_liked": has_liked}


async def load_base_stats(db: AsyncSession, post: PostRef) -> dict[str, Any]:
    """Post-level stats from the database, in the shape stored in the cache."""
    if post.post_type is PostType.EDITORIAL:
        return await _load_editorial(db, post)
    return await _load_community(db, post)


async def _load_editorial(db: AsyncSession, post: PostRef) -> dict[str, Any]:
    result = await db.execute(select(BlogPostStats).where(BlogPostStats.post_id == post.id))
    stats = result.scalar_one_or_none()
    if stats is None:
        logger.info(f"No aggregate for blog post {post.id}, computing it now")
        stats = await recompute_editorial_stats(db, post.id)

    # Likes are counted live; the aggregate may trail a pending recompute
    total_likes = await LikeService(db).get_like_count(post)

    return {
        "total_views": stats.total_views,
        "unique_views": stats.unique_views,
        "registered_views": stats.registered_views,
        "anonymous_views": stats.anonymous_views,
        "total_likes": total_likes,
        "total_comments": None,
        "avg_view_duration": stats.avg_view_duration,
        "last_viewed_at": stats.last_viewed_at.isoformat() if stats.last_viewed_at else None,
    }


async def _load_community(db: AsyncSession, post: PostRef) -> dict[str, Any]:
    result = await db.execute(
        select(
            CommunityPost.view_count,
            CommunityPost.registered_view_count,
            CommunityPost.anonymous_view_count,
            CommunityPost.like_count,
            CommunityPost.last_viewed_at,
        ).where(CommunityPost.id == post.id)
    )
    row = result.one()

    return {
        "total_views": row.view_count,
        "unique_views": None,
        "registered_views": row.registered_view_count,
        "anonymous_views": row.anonymous_view_count,
        "total_likes": row.like_count,
        "total_comments": None,
        "avg_view_duration": None,
        "last_viewed_at": row.last_viewed_at.isoformat() if row.last_viewed_at else None,
    }
