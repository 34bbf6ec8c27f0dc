"""
Admin Stats Routes

Editorial post analytics for administrators.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.auth import require_admin
from engagement.database import get_db
from engagement.models.user import User
from engagement.services.admin_stats_service import admin_stats_service

router = APIRouter(prefix="/api/admin/blog", tags=["Admin Stats"])


@router.get("/stats")
async def get_blog_overview(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Site-wide blog analytics.

    **Requires**: Admin or Superadmin role

    **Returns**:
    - Every post with its aggregate
    - Summed totals across posts
    - Top 5 posts by views and by likes
    - Engagement aggregates
    - The 10 most viewed posts of the last 7 days
    """
    return await admin_stats_service.get_overview(db)


@router.get("/{post_id}/stats")
async def get_blog_post_report(
    post_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Detailed analytics for one blog post.

    **Requires**: Admin or Superadmin role

    **Returns**:
    - Stored aggregate and live view analytics
    - Views by day and by referrer host
    - Hourly distribution of the last 7 days
    - Engagement averages
    - The 50 most recent views
    """
    return await admin_stats_service.get_post_report(db, post_id)


@router.post("/stats/recompute")
async def recompute_blog_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Rebuild every blog post aggregate from the view and like tables.

    **Requires**: Admin or Superadmin role
    """
    return await admin_stats_service.recompute_all_stats(db)
