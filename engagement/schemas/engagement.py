"""
Engagement Schemas

Pydantic models for the tracking, stats, like and trending endpoints.
Field names are camelCase on the wire.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# =============================================================================
# Requests
# =============================================================================


class ViewRequest(CamelModel):
    """Body of ``POST /views``; every field is optional"""

    referrer: str | None = Field(None, max_length=2048)
    session_id: str | None = Field(None, max_length=128)
    duration: int | None = Field(None, ge=0, description="Seconds already spent on the page")


class EngagementRequest(CamelModel):
    """Engagement sample sent periodically and on page hide"""

    session_id: str = Field(..., min_length=1, max_length=128)
    scroll_depth: float = Field(..., ge=0, le=100, description="Scroll depth in percent")
    time_on_page: int = Field(..., ge=0, description="Cumulative seconds on page")
    clicks: int = Field(0, ge=0, description="Clicks since the previous sample")
    shares: int = Field(0, ge=0, description="Shares since the previous sample")


class SharePlatform(str, Enum):
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    COPY = "copy"
    OTHER = "other"


class ShareRequest(CamelModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    platform: SharePlatform


# =============================================================================
# Responses
# =============================================================================


class ViewResponse(CamelModel):
    success: bool = True
    session_id: str


class SuccessResponse(CamelModel):
    success: bool = True


class ShareResponse(CamelModel):
    success: bool = True
    platform: SharePlatform


class PostStatsResponse(CamelModel):
    """Public stats for one post; ``has_liked`` is per viewer and never cached"""

    total_views: int = 0
    total_likes: int = 0
    total_comments: int | None = None
    unique_views: int | None = None
    registered_views: int = 0
    anonymous_views: int = 0
    avg_view_duration: float | None = None
    last_viewed_at: datetime | None = None
    has_liked: bool = False


class LikeResponse(CamelModel):
    liked: bool
    like_count: int


class TrendingPostResponse(CamelModel):
    id: int
    post_type: str
    title: str
    slug: str
    excerpt: str | None = None
    image_url: str | None = None
    total_views: int = 0
    total_likes: int = 0
    last_viewed_at: datetime | None = None


class TrendingResponse(CamelModel):
    scope: str
    limit: int
    posts: list[TrendingPostResponse]
