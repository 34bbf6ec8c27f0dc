"""
View admission: per-session deduplication and per-IP rate limiting.

Both checks live in Redis only. When Redis is unreachable the view is
admitted (fail-open): a missed dedup costs one extra count, an outage here
would cost every count.
"""

import logging
from enum import Enum

from engagement.config import settings
from engagement.services.post_resolver import PostRef, rate_limit_key, view_dedup_key
from engagement.utils.cache import CacheManager

logger = logging.getLogger(__name__)


class Admission(str, Enum):
    ADMITTED = "admitted"
    REJECTED_DUPLICATE = "duplicate"
    REJECTED_RATE_LIMITED = "rate limited"

    @property
    def admitted(self) -> bool:
        return self is Admission.ADMITTED


async def admit_view(cache: CacheManager, post: PostRef, session_id: str, ip_address: str) -> Admission:
    """
    Decide whether a view attempt counts.

    The dedup check runs first so that a duplicate never consumes rate-limit
    budget. The dedup marker is written before returning ADMITTED.

    Args:
        cache: Cache manager
        post: Post being viewed
        session_id: Viewer session id
        ip_address: Client IP

    Returns:
        Admission outcome
    """
    dedup_key = view_dedup_key(post, session_id)

    seen = await cache.exists(dedup_key)
    if seen is None:
        logger.warning(f"View admission cache unavailable, admitting view for {post.post_type.value} post {post.id}")
        return Admission.ADMITTED
    if seen:
        return Admission.REJECTED_DUPLICATE

    count = await cache.incr_with_expiry(rate_limit_key(post, ip_address), settings.rate_limit_window_seconds)
    if count is None:
        logger.warning(f"Rate limit counter unavailable, admitting view for {post.post_type.value} post {post.id}")
    elif count > settings.view_rate_limit_per_hour:
        logger.info(
            f"Rate limited view from {ip_address} on {post.post_type.value} post {post.id} ({count} this window)"
        )
        return Admission.REJECTED_RATE_LIMITED

    # Last writer wins; concurrent first views of one session may both count
    await cache.set(dedup_key, 1, ttl=settings.view_cooldown_minutes * 60)
    return Admission.ADMITTED
