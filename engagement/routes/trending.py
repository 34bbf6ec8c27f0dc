"""
Trending Routes
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.database import get_db
from engagement.schemas.engagement import TrendingPostResponse, TrendingResponse
from engagement.services.trending_service import TrendingScope, clamp_limit, get_trending
from engagement.utils.timeouts import with_store_timeout

router = APIRouter(prefix="/api", tags=["Trending"])


@router.get("/trending", response_model=TrendingResponse)
async def trending_posts(
    scope: TrendingScope = Query(TrendingScope.BOTH, description="editorial, community or both"),
    limit: int = Query(5, description="Number of posts, clamped to 1..50"),
    db: AsyncSession = Depends(get_db),
) -> TrendingResponse:
    """
    Posts viewed in the last 7 days, most viewed first.

    Results are cached for an hour per scope and limit.
    """
    limit = clamp_limit(limit)
    posts = await with_store_timeout(get_trending(db, scope, limit), "get_trending")
    return TrendingResponse(
        scope=scope.value,
        limit=limit,
        posts=[TrendingPostResponse(**post) for post in posts],
    )
