"""
View Service

Records admitted views. Editorial posts get one event row plus a background
recompute of their aggregate; community posts get an atomic bump
of the counters on the post row.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import distinct, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement import database
from engagement.models.post import CommunityPost
from engagement.models.post_like import BlogPostLike
from engagement.models.post_stats import BlogPostStats
from engagement.models.post_view import BlogPostView
from engagement.services.post_resolver import PostRef, PostType, stats_key
from engagement.services.view_admission import admit_view
from engagement.utils.background import fire_and_forget
from engagement.utils.bot_detection import is_bot
from engagement.utils.cache import cache_manager
from engagement.utils.clock import utcnow
from engagement.utils.metrics import record_view_outcome
from engagement.utils.request_context import RequestContext

logger = logging.getLogger(__name__)

REASON_BOT = "bot detected"


@dataclass(frozen=True)
class ViewResult:
    recorded: bool
    reason: str | None = None


async def record_view(
    db: AsyncSession,
    post: PostRef,
    context: RequestContext,
    referrer: str | None = None,
    duration: int | None = None,
) -> ViewResult:
    """
    Record one view attempt.

    Bots are rejected before the cache is touched. Duplicate and rate-limited
    attempts are rejected by admission. The result never carries counts; a
    separate stats read returns fresh numbers.

    Args:
        db: Database session
        post: Post being viewed
        context: Resolved request context
        referrer: Referring URL, if the client sent one
        duration: Seconds already spent on the page, if known

    Returns:
        ViewResult with ``recorded`` and the rejection reason
    """
    post_type = post.post_type.value

    if is_bot(context.user_agent):
        record_view_outcome(post_type, "bot")
        return ViewResult(False, REASON_BOT)

    admission = await admit_view(cache_manager, post, context.session_id, context.ip_address)
    if not admission.admitted:
        record_view_outcome(post_type, admission.name.lower().removeprefix("rejected_"))
        return ViewResult(False, admission.value)

    if post.post_type is PostType.EDITORIAL:
        await _record_editorial_view(db, post, context, referrer, duration)
    else:
        await _record_community_view(db, post, context)

    await cache_manager.delete(stats_key(post))
    record_view_outcome(post_type, "recorded")
    return ViewResult(True)


async def _record_editorial_view(
    db: AsyncSession,
    post: PostRef,
    context: RequestContext,
    referrer: str | None,
    duration: int | None,
) -> None:
    db.add(
        BlogPostView(
            post_id=post.id,
            user_id=context.viewer_id,
            session_id=context.session_id,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            referrer=referrer,
            is_bot=False,
            view_duration=duration,
            created_at=utcnow(),
        )
    )
    await db.commit()
    schedule_stats_recompute(post.id)


async def _record_community_view(db: AsyncSession, post: PostRef, context: RequestContext) -> None:
    values = {
        "view_count": CommunityPost.view_count + 1,
        "last_viewed_at": utcnow(),
    }
    if context.is_anonymous:
        values["anonymous_view_count"] = CommunityPost.anonymous_view_count + 1
    else:
        values["registered_view_count"] = CommunityPost.registered_view_count + 1

    await db.execute(update(CommunityPost).where(CommunityPost.id == post.id).values(**values))
    await db.commit()


# =============================================================================
# Editorial aggregate
# =============================================================================


async def recompute_editorial_stats(db: AsyncSession, post_id: int) -> BlogPostStats:
    """
    Rebuild the aggregate row of an editorial post from its events and likes.

    Safe to run any number of times; a recompute repairs any update that was
    lost along the way.
    """
    view_result = await db.execute(
        select(
            func.count(BlogPostView.id),
            func.count(distinct(BlogPostView.session_id)),
            func.count(BlogPostView.user_id),
            func.avg(BlogPostView.view_duration),
            func.max(BlogPostView.created_at),
        ).where(BlogPostView.post_id == post_id, BlogPostView.is_bot.is_(False))
    )
    total_views, unique_views, registered_views, avg_duration, last_viewed_at = view_result.one()

    like_result = await db.execute(select(func.count(BlogPostLike.id)).where(BlogPostLike.post_id == post_id))
    total_likes = like_result.scalar() or 0

    values = {
        "total_views": total_views or 0,
        "unique_views": unique_views or 0,
        "registered_views": registered_views or 0,
        "anonymous_views": (total_views or 0) - (registered_views or 0),
        "total_likes": total_likes,
        "avg_view_duration": round(float(avg_duration or 0), 2),
        "last_viewed_at": last_viewed_at,
        "updated_at": utcnow(),
    }

    stats = await _upsert_stats(db, post_id, values)
    await db.commit()
    return stats


async def _find_stats(db: AsyncSession, post_id: int) -> BlogPostStats | None:
    result = await db.execute(select(BlogPostStats).where(BlogPostStats.post_id == post_id))
    return result.scalar_one_or_none()


async def _upsert_stats(db: AsyncSession, post_id: int, values: dict) -> BlogPostStats:
    stats = await _find_stats(db, post_id)
    if stats is None:
        try:
            # Savepoint: losing the race rolls back only this insert
            async with db.begin_nested():
                stats = BlogPostStats(post_id=post_id, **values)
                db.add(stats)
            return stats
        except IntegrityError:
            # Another recompute created the row first; overwrite it
            stats = await _find_stats(db, post_id)

    for field, value in values.items():
        setattr(stats, field, value)
    await db.flush()
    return stats


async def _recompute_in_background(post_id: int) -> None:
    async with database.session_factory()() as db:
        await recompute_editorial_stats(db, post_id)
    await cache_manager.delete(stats_key(PostRef(PostType.EDITORIAL, post_id)))


def schedule_stats_recompute(post_id: int) -> None:
    """Hand off an aggregate recompute; the caller does not wait for it."""
    fire_and_forget(_recompute_in_background(post_id), name=f"recompute-editorial-stats-{post_id}")
