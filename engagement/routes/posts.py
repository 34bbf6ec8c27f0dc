"""
Post Engagement Routes

The same set of endpoints is mounted once per post type:

- ``/api/blog/{slug}/...`` for editorial posts
- ``/api/community-blogs/{slug}/...`` for community posts

View, engagement and share tracking never fail the caller on rejected or
transiently failed writes. Stats and likes report failures so the UI can
fall back to zero counts or an inactive like button.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.auth import get_current_viewer_optional, require_viewer
from engagement.config import settings
from engagement.database import get_db
from engagement.exceptions import TransientStoreError, ValidationError
from engagement.middleware.rate_limit import limiter
from engagement.models.user import User
from engagement.schemas.engagement import (
    EngagementRequest,
    LikeResponse,
    PostStatsResponse,
    ShareRequest,
    ShareResponse,
    SuccessResponse,
    ViewRequest,
    ViewResponse,
)
from engagement.services.engagement_service import engagement_service
from engagement.services.like_service import LikeService
from engagement.services.post_resolver import PostRef, PostType, resolve_post
from engagement.services.stats_service import get_stats
from engagement.services.view_service import record_view
from engagement.utils.metrics import record_view_outcome
from engagement.utils.payload import parse_payload
from engagement.utils.request_context import resolve_request_context
from engagement.utils.timeouts import with_store_timeout

logger = logging.getLogger(__name__)

ROUTE_PREFIXES = {
    PostType.EDITORIAL: "/api/blog",
    PostType.COMMUNITY: "/api/community-blogs",
}


def _viewer_id(viewer: Optional[User]) -> Optional[int]:
    return viewer.id if viewer is not None else None


def build_engagement_router(post_type: PostType) -> APIRouter:
    """Create the engagement endpoints for one post type."""
    router = APIRouter(prefix=ROUTE_PREFIXES[post_type] + "/{slug}", tags=[f"Engagement ({post_type.value})"])

    async def _resolve(db: AsyncSession, slug: str) -> PostRef:
        return await with_store_timeout(resolve_post(db, post_type, slug), "resolve_post")

    def _like_rate_limited(func):
        # slowapi keys its limits by function name, shared by both routers otherwise
        func.__name__ = f"{func.__name__}_{post_type.value}"
        return limiter.limit(settings.like_rate_limit)(func)

    @router.post("/views", response_model=ViewResponse)
    async def track_view(
        slug: str,
        request: Request,
        viewer: Optional[User] = Depends(get_current_viewer_optional),
        db: AsyncSession = Depends(get_db),
    ) -> ViewResponse:
        """
        Record a page view.

        Always answers ``success: true``; whether the view was counted is
        never disclosed. The session id is echoed back so clients without
        one can reuse the generated id.
        """
        try:
            payload = await parse_payload(request, ViewRequest)
        except ValidationError:
            payload = ViewRequest()

        context = resolve_request_context(request, payload.session_id, _viewer_id(viewer))

        try:
            post = await _resolve(db, slug)
            await with_store_timeout(
                record_view(db, post, context, referrer=payload.referrer, duration=payload.duration),
                "record_view",
            )
        except (TransientStoreError, SQLAlchemyError) as e:
            record_view_outcome(post_type.value, "error")
            logger.warning(f"View on {post_type.value} post '{slug}' not recorded: {e}")

        return ViewResponse(session_id=context.session_id)

    @router.post("/engagement", response_model=SuccessResponse)
    async def track_engagement(
        slug: str,
        request: Request,
        viewer: Optional[User] = Depends(get_current_viewer_optional),
        db: AsyncSession = Depends(get_db),
    ) -> SuccessResponse:
        """
        Engagement sample; accepts JSON or a form-encoded beacon body.

        ``success`` tells whether the sample was stored. A sample dropped on a
        store failure still answers 200 with ``success: false``; only a
        malformed body (400) or an unknown slug (404) is an error status.
        """
        payload = await parse_payload(request, EngagementRequest)

        try:
            post = await _resolve(db, slug)
            stored = await with_store_timeout(
                engagement_service.record_engagement(
                    db,
                    post,
                    session_id=payload.session_id,
                    viewer_id=_viewer_id(viewer),
                    scroll_depth=payload.scroll_depth,
                    time_on_page=payload.time_on_page,
                    clicks=payload.clicks,
                    shares=payload.shares,
                ),
                "record_engagement",
            )
        except (TransientStoreError, SQLAlchemyError) as e:
            logger.warning(f"Engagement on {post_type.value} post '{slug}' dropped: {e}")
            return SuccessResponse(success=False)

        return SuccessResponse(success=stored or not post.is_editorial)

    @router.post("/share", response_model=ShareResponse)
    async def track_share(
        slug: str,
        request: Request,
        viewer: Optional[User] = Depends(get_current_viewer_optional),
        db: AsyncSession = Depends(get_db),
    ) -> ShareResponse:
        """Share click; store failures answer 200 with ``success: false``."""
        payload = await parse_payload(request, ShareRequest)

        try:
            post = await _resolve(db, slug)
            stored = await with_store_timeout(
                engagement_service.record_share(
                    db, post, payload.session_id, _viewer_id(viewer), payload.platform.value
                ),
                "record_share",
            )
        except (TransientStoreError, SQLAlchemyError) as e:
            logger.warning(f"Share on {post_type.value} post '{slug}' dropped: {e}")
            return ShareResponse(success=False, platform=payload.platform)

        return ShareResponse(success=stored or not post.is_editorial, platform=payload.platform)

    @router.get("/stats", response_model=PostStatsResponse)
    async def read_stats(
        slug: str,
        viewer: Optional[User] = Depends(get_current_viewer_optional),
        db: AsyncSession = Depends(get_db),
    ) -> PostStatsResponse:
        """Post stats plus ``hasLiked`` for the signed-in viewer; 503 when the store is unavailable."""
        post = await _resolve(db, slug)
        stats = await with_store_timeout(get_stats(db, post, _viewer_id(viewer)), "get_stats")
        return PostStatsResponse(**stats)

    @router.post("/likes", response_model=LikeResponse)
    @_like_rate_limited
    async def like_post(
        slug: str,
        request: Request,
        viewer: User = Depends(require_viewer),
        db: AsyncSession = Depends(get_db),
    ) -> LikeResponse:
        post = await _resolve(db, slug)
        result = await with_store_timeout(LikeService(db).set_like(post, viewer.id, True), "like")
        return LikeResponse(liked=result.liked, like_count=result.like_count)

    @router.delete("/likes", response_model=LikeResponse)
    @_like_rate_limited
    async def unlike_post(
        slug: str,
        request: Request,
        viewer: User = Depends(require_viewer),
        db: AsyncSession = Depends(get_db),
    ) -> LikeResponse:
        post = await _resolve(db, slug)
        result = await with_store_timeout(LikeService(db).set_like(post, viewer.id, False), "unlike")
        return LikeResponse(liked=result.liked, like_count=result.like_count)

    @router.post("/likes/toggle", response_model=LikeResponse)
    @_like_rate_limited
    async def toggle_post_like(
        slug: str,
        request: Request,
        viewer: User = Depends(require_viewer),
        db: AsyncSession = Depends(get_db),
    ) -> LikeResponse:
        """Flip the like state, for clients that keep no local state."""
        post = await _resolve(db, slug)
        result = await with_store_timeout(LikeService(db).toggle_like(post, viewer.id), "toggle_like")
        return LikeResponse(liked=result.liked, like_count=result.like_count)

    return router


editorial_router = build_engagement_router(PostType.EDITORIAL)
community_router = build_engagement_router(PostType.COMMUNITY)
