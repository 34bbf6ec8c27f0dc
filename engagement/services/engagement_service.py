"""
Engagement Service

Aggregates per-session engagement samples (scroll depth, time on page, clicks,
shares) for editorial posts. Community posts do not track engagement.

Writes here are best-effort: failures are logged and reported as ``False``,
never raised to the viewer.
"""

import logging

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models.engagement import UserEngagement
from engagement.models.post_view import BlogPostView
from engagement.services.post_resolver import PostRef
from engagement.services.view_service import schedule_stats_recompute
from engagement.utils.clock import utcnow
from engagement.utils.metrics import ENGAGEMENT_SAMPLES_TOTAL

logger = logging.getLogger(__name__)


class EngagementService:
    """Upserts engagement samples keyed by (session, post)"""

    @staticmethod
    async def record_engagement(
        db: AsyncSession,
        post: PostRef,
        session_id: str,
        viewer_id: int | None,
        scroll_depth: float,
        time_on_page: int,
        clicks: int,
        shares: int = 0,
    ) -> bool:
        """
        Merge one sample into the session's engagement row.

        Scroll depth keeps the maximum seen, time on page takes the incoming
        cumulative value, clicks and shares are added as deltas. The session's
        view events get ``view_duration = time_on_page`` and the post's average
        view duration is refreshed in the background.

        Returns:
            True if the sample was stored
        """
        if not post.is_editorial:
            return False

        scroll_depth = min(max(float(scroll_depth), 0.0), 100.0)
        try:
            await EngagementService._upsert(
                db,
                post,
                session_id,
                viewer_id,
                scroll_depth=scroll_depth,
                time_on_page=time_on_page,
                clicks=clicks,
                shares=shares,
            )

            if time_on_page > 0:
                await db.execute(
                    update(BlogPostView)
                    .where(BlogPostView.post_id == post.id, BlogPostView.session_id == session_id)
                    .values(view_duration=time_on_page)
                )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to record engagement for post {post.id}, session {session_id}: {e}")
            return False

        ENGAGEMENT_SAMPLES_TOTAL.labels(kind="metrics").inc()
        if time_on_page > 0:
            schedule_stats_recompute(post.id)
        return True

    @staticmethod
    async def record_share(
        db: AsyncSession,
        post: PostRef,
        session_id: str,
        viewer_id: int | None,
        platform: str,
    ) -> bool:
        """Count one share click for the session; returns True if stored."""
        if not post.is_editorial:
            return False

        try:
            await EngagementService._upsert(db, post, session_id, viewer_id, shares=1)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to record {platform} share for post {post.id}: {e}")
            return False

        ENGAGEMENT_SAMPLES_TOTAL.labels(kind="share").inc()
        logger.debug(f"Share on {platform} for post {post.id}")
        return True

    @staticmethod
    async def _upsert(
        db: AsyncSession,
        post: PostRef,
        session_id: str,
        viewer_id: int | None,
        scroll_depth: float | None = None,
        time_on_page: int | None = None,
        clicks: int = 0,
        shares: int = 0,
    ) -> None:
        if await EngagementService._merge(db, post, session_id, viewer_id, scroll_depth, time_on_page, clicks, shares):
            return

        now = utcnow()
        db.add(
            UserEngagement(
                post_id=post.id,
                user_id=viewer_id,
                session_id=session_id,
                scroll_depth=scroll_depth or 0.0,
                time_on_page=time_on_page or 0,
                clicks=clicks,
                shares=shares,
                created_at=now,
                updated_at=now,
            )
        )
        try:
            await db.flush()
        except IntegrityError:
            # First samples of one session raced; merge into the winner's row
            await db.rollback()
            await EngagementService._merge(db, post, session_id, viewer_id, scroll_depth, time_on_page, clicks, shares)

    @staticmethod
    async def _merge(
        db: AsyncSession,
        post: PostRef,
        session_id: str,
        viewer_id: int | None,
        scroll_depth: float | None,
        time_on_page: int | None,
        clicks: int,
        shares: int,
    ) -> bool:
        values = {
            "clicks": UserEngagement.clicks + clicks,
            "shares": UserEngagement.shares + shares,
            "updated_at": utcnow(),
        }
        if scroll_depth is not None:
            values["scroll_depth"] = case(
                (UserEngagement.scroll_depth < scroll_depth, scroll_depth),
                else_=UserEngagement.scroll_depth,
            )
        if time_on_page is not None:
            values["time_on_page"] = time_on_page
        if viewer_id is not None:
            values["user_id"] = viewer_id

        result = await db.execute(
            update(UserEngagement)
            .where(UserEngagement.session_id == session_id, UserEngagement.post_id == post.id)
            .values(**values)
        )
        return result.rowcount > 0


engagement_service = EngagementService()
