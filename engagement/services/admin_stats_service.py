"""
Admin Stats Service

Site-wide overview and per-post analytics report for editorial posts, plus
the bulk aggregate recompute behind the admin "refresh" action and the
reconciliation job.
"""

import logging
from collections import Counter
from datetime import timedelta
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import distinct, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement.exceptions import PostNotFoundError
from engagement.models.engagement import UserEngagement
from engagement.models.post import BlogPost
from engagement.models.post_like import BlogPostLike
from engagement.models.post_stats import BlogPostStats
from engagement.models.post_view import BlogPostView
from engagement.services.view_service import recompute_editorial_stats
from engagement.utils.cache import cache_manager
from engagement.utils.clock import utcnow

logger = logging.getLogger(__name__)

RECENT_VIEWS_LIMIT = 50
HOURLY_WINDOW_DAYS = 7
TOP_POSTS_LIMIT = 5
RECENT_ACTIVITY_DAYS = 7
RECENT_ACTIVITY_LIMIT = 10


def referrer_host(referrer: str | None) -> str:
    if not referrer:
        return "Direct"
    host = urlparse(referrer).hostname
    return host or referrer


class AdminStatsService:
    """Reports and maintenance for editorial post aggregates"""

    @staticmethod
    async def get_post_report(db: AsyncSession, post_id: int) -> dict[str, Any]:
        """
        Build the analytics report of one editorial post.

        Args:
            db: Database session
            post_id: Blog post ID

        Returns:
            Dict with the aggregate, live view analytics, chart data,
            engagement averages and the most recent views
        """
        post = await db.get(BlogPost, post_id)
        if post is None:
            raise PostNotFoundError(post_id)

        stats_result = await db.execute(select(BlogPostStats).where(BlogPostStats.post_id == post_id))
        stats = stats_result.scalar_one_or_none()

        # Live analytics straight from the event table
        live_result = await db.execute(
            select(
                func.count(BlogPostView.id),
                func.count(distinct(BlogPostView.session_id)),
                func.count(BlogPostView.user_id),
                func.avg(BlogPostView.view_duration).filter(BlogPostView.view_duration > 0),
            ).where(BlogPostView.post_id == post_id)
        )
        total_views, unique_views, registered_views, avg_duration = live_result.one()
        total_views = total_views or 0
        registered_views = registered_views or 0

        like_result = await db.execute(select(func.count(BlogPostLike.id)).where(BlogPostLike.post_id == post_id))

        events_result = await db.execute(
            select(BlogPostView.created_at, BlogPostView.referrer).where(BlogPostView.post_id == post_id)
        )
        events = events_result.all()

        since = utcnow() - timedelta(days=HOURLY_WINDOW_DAYS)
        hourly_distribution = [0] * 24
        views_by_date: Counter = Counter()
        views_by_referrer: Counter = Counter()
        for created_at, referrer in events:
            views_by_date[created_at.date().isoformat()] += 1
            if referrer:
                views_by_referrer[referrer_host(referrer)] += 1
            if created_at >= since:
                hourly_distribution[created_at.hour] += 1

        engagement_result = await db.execute(
            select(
                func.count(UserEngagement.id),
                func.avg(UserEngagement.scroll_depth).filter(UserEngagement.scroll_depth > 0),
                func.avg(UserEngagement.time_on_page).filter(UserEngagement.time_on_page > 0),
                func.coalesce(func.sum(UserEngagement.clicks), 0),
                func.coalesce(func.sum(UserEngagement.shares), 0),
            ).where(UserEngagement.post_id == post_id)
        )
        sample_count, avg_scroll, avg_time, total_clicks, total_shares = engagement_result.one()

        recent_result = await db.execute(
            select(BlogPostView)
            .where(BlogPostView.post_id == post_id)
            .order_by(BlogPostView.created_at.desc(), BlogPostView.id.desc())
            .limit(RECENT_VIEWS_LIMIT)
        )
        recent_views = [
            {
                "id": view.id,
                "user_id": view.user_id,
                "session_id": view.session_id,
                "ip_address": view.ip_address,
                "user_agent": view.user_agent,
                "referrer": view.referrer,
                "view_duration": view.view_duration,
                "created_at": view.created_at.isoformat(),
            }
            for view in recent_result.scalars().all()
        ]

        return {
            "post": {
                "id": post.id,
                "title": post.title,
                "slug": post.slug,
                "published": post.published,
                "created_at": post.created_at.isoformat(),
            },
            "stats": {
                "total_views": stats.total_views if stats else 0,
                "unique_views": stats.unique_views if stats else 0,
                "registered_views": stats.registered_views if stats else 0,
                "anonymous_views": stats.anonymous_views if stats else 0,
                "total_likes": stats.total_likes if stats else 0,
                "avg_view_duration": stats.avg_view_duration if stats else 0.0,
                "last_viewed_at": stats.last_viewed_at.isoformat() if stats and stats.last_viewed_at else None,
                "updated_at": stats.updated_at.isoformat() if stats else None,
            },
            "view_analytics": {
                "total_views": total_views,
                "unique_views": unique_views or 0,
                "registered_views": registered_views,
                "anonymous_views": total_views - registered_views,
                "total_likes": like_result.scalar() or 0,
                "avg_view_duration": round(float(avg_duration or 0), 2),
            },
            "engagement_metrics": {
                "total_engagements": sample_count or 0,
                "avg_scroll_depth": round(float(avg_scroll or 0), 2),
                "avg_time_on_page": round(float(avg_time or 0), 2),
                "total_clicks": int(total_clicks),
                "total_shares": int(total_shares),
            },
            "charts": {
                "views_by_date": dict(sorted(views_by_date.items())),
                "views_by_referrer": dict(views_by_referrer.most_common()),
                "hourly_distribution": hourly_distribution,
            },
            "recent_views": recent_views,
        }

    @staticmethod
    async def get_overview(db: AsyncSession) -> dict[str, Any]:
        """
        Site-wide editorial analytics for the admin dashboard.

        Totals come from the stored aggregates, so posts whose aggregate was
        never built count as zero until the next recompute.

        Returns:
            Dict with every post and its aggregate, summed totals, the top
            posts by views and by likes, engagement aggregates and the posts
            most viewed over the last 7 days
        """
        posts_result = await db.execute(
            select(BlogPost, BlogPostStats)
            .outerjoin(BlogPostStats, BlogPostStats.post_id == BlogPost.id)
            .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
        )
        posts = [
            {
                "id": post.id,
                "title": post.title,
                "slug": post.slug,
                "published": post.published,
                "created_at": post.created_at.isoformat(),
                "total_views": stats.total_views if stats else 0,
                "unique_views": stats.unique_views if stats else 0,
                "total_likes": stats.total_likes if stats else 0,
                "last_viewed_at": stats.last_viewed_at.isoformat() if stats and stats.last_viewed_at else None,
            }
            for post, stats in posts_result.all()
        ]

        totals_result = await db.execute(
            select(
                func.coalesce(func.sum(BlogPostStats.total_views), 0),
                func.coalesce(func.sum(BlogPostStats.unique_views), 0),
                func.coalesce(func.sum(BlogPostStats.total_likes), 0),
                func.coalesce(func.sum(BlogPostStats.registered_views), 0),
                func.coalesce(func.sum(BlogPostStats.anonymous_views), 0),
                func.avg(BlogPostStats.avg_view_duration),
            )
        )
        total_views, unique_views, total_likes, registered_views, anonymous_views, avg_duration = totals_result.one()

        engagement_result = await db.execute(
            select(
                func.count(UserEngagement.id),
                func.avg(UserEngagement.scroll_depth),
                func.avg(UserEngagement.time_on_page),
                func.coalesce(func.sum(UserEngagement.clicks), 0),
                func.coalesce(func.sum(UserEngagement.shares), 0),
            )
        )
        sample_count, avg_scroll, avg_time, total_clicks, total_shares = engagement_result.one()

        view_count = func.count(BlogPostView.id).label("views")
        since = utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
        activity_result = await db.execute(
            select(BlogPost.id, BlogPost.title, BlogPost.slug, view_count)
            .join(BlogPostView, BlogPostView.post_id == BlogPost.id)
            .where(BlogPostView.created_at >= since)
            .group_by(BlogPost.id, BlogPost.title, BlogPost.slug)
            .order_by(view_count.desc(), BlogPost.id)
            .limit(RECENT_ACTIVITY_LIMIT)
        )

        return {
            "posts": posts,
            "total_stats": {
                "total_views": int(total_views),
                "unique_views": int(unique_views),
                "total_likes": int(total_likes),
                "registered_views": int(registered_views),
                "anonymous_views": int(anonymous_views),
                "avg_view_duration": round(float(avg_duration or 0), 2),
            },
            "top_by_views": await AdminStatsService._top_posts(db, BlogPostStats.total_views),
            "top_by_likes": await AdminStatsService._top_posts(db, BlogPostStats.total_likes),
            "engagement_stats": {
                "total_engagements": sample_count or 0,
                "avg_scroll_depth": round(float(avg_scroll or 0), 2),
                "avg_time_on_page": round(float(avg_time or 0), 2),
                "total_clicks": int(total_clicks),
                "total_shares": int(total_shares),
            },
            "recent_activity": [
                {"id": row.id, "title": row.title, "slug": row.slug, "views": row.views}
                for row in activity_result.all()
            ],
        }

    @staticmethod
    async def _top_posts(db: AsyncSession, column) -> list[dict[str, Any]]:
        # Published posts with a non-zero value only
        result = await db.execute(
            select(BlogPost.id, BlogPost.title, BlogPost.slug, BlogPostStats.total_views, BlogPostStats.total_likes)
            .join(BlogPostStats, BlogPostStats.post_id == BlogPost.id)
            .where(BlogPost.published.is_(True), column > 0)
            .order_by(column.desc(), BlogPost.id)
            .limit(TOP_POSTS_LIMIT)
        )
        return [
            {
                "id": row.id,
                "title": row.title,
                "slug": row.slug,
                "total_views": row.total_views,
                "total_likes": row.total_likes,
            }
            for row in result.all()
        ]

    @staticmethod
    async def recompute_all_stats(db: AsyncSession) -> dict[str, Any]:
        """Recompute every editorial aggregate and drop the cached stats."""
        result = await db.execute(select(BlogPost.id).order_by(BlogPost.id))
        post_ids = list(result.scalars().all())

        for post_id in post_ids:
            await recompute_editorial_stats(db, post_id)

        invalidated = await cache_manager.delete_pattern("editorial:stats:*")
        logger.info(f"Recomputed stats for {len(post_ids)} blog posts ({invalidated} cache entries dropped)")
        return {"recomputed": len(post_ids), "cache_entries_invalidated": invalidated}


admin_stats_service = AdminStatsService()
