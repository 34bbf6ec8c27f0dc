"""
Post handle and post-type dispatch.

Every tracking operation receives a ``PostRef`` (post type + id). The storage
differences between editorial and community posts stay inside the services;
this module owns the lookups and the cache key layout shared by all of them.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from engagement.exceptions import PostNotFoundError
from engagement.models.post import BlogPost, CommunityPost
from engagement.models.post_like import BlogPostLike, CommunityPostLike


class PostType(str, Enum):
    EDITORIAL = "editorial"
    COMMUNITY = "community"

    @property
    def label(self) -> str:
        return "Blog post" if self is PostType.EDITORIAL else "Community post"


@dataclass(frozen=True)
class PostRef:
    post_type: PostType
    id: int

    @property
    def is_editorial(self) -> bool:
        return self.post_type is PostType.EDITORIAL


POST_MODELS = {
    PostType.EDITORIAL: BlogPost,
    PostType.COMMUNITY: CommunityPost,
}

LIKE_MODELS = {
    PostType.EDITORIAL: BlogPostLike,
    PostType.COMMUNITY: CommunityPostLike,
}


# Cache keys
def view_dedup_key(post: PostRef, session_id: str) -> str:
    return f"{post.post_type.value}:view:{session_id}:{post.id}"


def rate_limit_key(post: PostRef, ip_address: str) -> str:
    return f"{post.post_type.value}:ratelimit:{ip_address}:{post.id}"


def stats_key(post: PostRef) -> str:
    return f"{post.post_type.value}:stats:{post.id}"


def trending_key(scope: str, limit: int) -> str:
    return f"trending:{scope}:{limit}"


async def resolve_post(db: AsyncSession, post_type: PostType, slug: str) -> PostRef:
    """
    Look up a published post by slug.

    Raises:
        PostNotFoundError: No published post of that type has the slug
    """
    model = POST_MODELS[post_type]
    result = await db.execute(select(model.id).where(model.slug == slug, model.published.is_(True)))
    post_id = result.scalar_one_or_none()
    if post_id is None:
        raise PostNotFoundError(slug, post_type.label)
    return PostRef(post_type, post_id)
