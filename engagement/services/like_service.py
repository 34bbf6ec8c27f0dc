"""
Like Service

Toggles a viewer's like on a post. A like is the presence of a relation row;
the (post, viewer) unique constraint turns a concurrent double insert into an
IntegrityError, which is handled by toggling again.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement.config import settings
from engagement.exceptions import TransientStoreError
from engagement.models.post import CommunityPost
from engagement.services.post_resolver import LIKE_MODELS, PostRef, PostType, stats_key
from engagement.services.view_service import schedule_stats_recompute
from engagement.utils.cache import cache_manager
from engagement.utils.clock import utcnow
from engagement.utils.metrics import LIKE_CONFLICTS_TOTAL, LIKES_TOGGLED_TOTAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeResult:
    liked: bool
    like_count: int


class LikeService:
    """Service for liking and unliking posts"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle_like(self, post: PostRef, viewer_id: int) -> LikeResult:
        """
        Flip the viewer's like on a post.

        - Liked: remove the relation (community posts also decrement their counter).
        - Not liked: create the relation (community posts also increment their counter).

        Returns the new state and the post's like count right after the toggle.
        """
        max_attempts = max(1, settings.like_toggle_max_attempts)
        for attempt in range(1, max_attempts + 1):
            try:
                liked = await self._toggle_once(post, viewer_id)
                break
            except IntegrityError:
                await self.db.rollback()
                LIKE_CONFLICTS_TOTAL.labels(post_type=post.post_type.value).inc()
                logger.info(
                    f"Concurrent like on {post.post_type.value} post {post.id} by user {viewer_id}, "
                    f"toggling again (attempt {attempt}/{max_attempts})"
                )
        else:
            raise TransientStoreError("Like could not be saved, please try again", operation="toggle_like")

        LIKES_TOGGLED_TOTAL.labels(post_type=post.post_type.value, action="like" if liked else "unlike").inc()

        await cache_manager.delete(stats_key(post))
        if post.post_type is PostType.EDITORIAL:
            schedule_stats_recompute(post.id)

        return LikeResult(liked=liked, like_count=await self.get_like_count(post))

    async def set_like(self, post: PostRef, viewer_id: int, liked: bool) -> LikeResult:
        """Like or unlike explicitly; a no-op when the state already matches."""
        if await self.has_liked(post, viewer_id) == liked:
            return LikeResult(liked=liked, like_count=await self.get_like_count(post))
        return await self.toggle_like(post, viewer_id)

    async def _toggle_once(self, post: PostRef, viewer_id: int) -> bool:
        model = LIKE_MODELS[post.post_type]
        result = await self.db.execute(select(model.id).where(model.post_id == post.id, model.user_id == viewer_id))
        existing_id = result.scalar_one_or_none()

        if existing_id is not None:
            deleted = await self.db.execute(delete(model).where(model.id == existing_id))
            # A concurrent unlike may have removed the row already
            if post.post_type is PostType.COMMUNITY and deleted.rowcount == 1:
                await self.db.execute(
                    update(CommunityPost)
                    .where(CommunityPost.id == post.id, CommunityPost.like_count > 0)
                    .values(like_count=CommunityPost.like_count - 1)
                )
            await self.db.commit()
            return False

        self.db.add(model(post_id=post.id, user_id=viewer_id, created_at=utcnow()))
        await self.db.flush()
        if post.post_type is PostType.COMMUNITY:
            await self.db.execute(
                update(CommunityPost)
                .where(CommunityPost.id == post.id)
                .values(like_count=CommunityPost.like_count + 1)
            )
        await self.db.commit()
        return True

    async def has_liked(self, post: PostRef, viewer_id: int) -> bool:
        model = LIKE_MODELS[post.post_type]
        result = await self.db.execute(
            select(model.id).where(model.post_id == post.id, model.user_id == viewer_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_like_count(self, post: PostRef) -> int:
        """Editorial: live count of relations. Community: the denormalized counter."""
        if post.post_type is PostType.EDITORIAL:
            model = LIKE_MODELS[post.post_type]
            result = await self.db.execute(select(func.count(model.id)).where(model.post_id == post.id))
        else:
            result = await self.db.execute(select(CommunityPost.like_count).where(CommunityPost.id == post.id))
        return result.scalar() or 0
