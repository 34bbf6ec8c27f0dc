"""
Prometheus Metrics Module

Provides engagement metrics using the prometheus_client library.
Metrics are exposed at /metrics endpoint for Prometheus scraping.
"""

from prometheus_client import Counter, Gauge, Info

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info("engagement_app", "Engagement service information")


def set_app_info(version: str, environment: str) -> None:
    """Set application info labels."""
    APP_INFO.info({"version": version, "environment": environment})


# =============================================================================
# Tracking Metrics
# =============================================================================

VIEWS_TRACKED_TOTAL = Counter(
    "engagement_views_total",
    "View attempts by outcome",
    ["post_type", "outcome"],  # recorded, bot, duplicate, rate_limited, error
)

LIKES_TOGGLED_TOTAL = Counter(
    "engagement_likes_toggled_total",
    "Like toggles",
    ["post_type", "action"],  # like, unlike
)

LIKE_CONFLICTS_TOTAL = Counter(
    "engagement_like_conflicts_total",
    "Concurrent like inserts resolved by toggling again",
    ["post_type"],
)

ENGAGEMENT_SAMPLES_TOTAL = Counter(
    "engagement_samples_total",
    "Engagement samples upserted",
    ["kind"],  # metrics, share
)

BACKGROUND_TASK_FAILURES_TOTAL = Counter(
    "engagement_background_task_failures_total",
    "Fire-and-forget tasks that raised",
    ["task"],
)

# =============================================================================
# Cache Metrics
# =============================================================================

REDIS_CONNECTED = Gauge(
    "engagement_redis_connected",
    "1 if Redis is reachable, 0 otherwise",
)

CACHE_HITS_TOTAL = Counter(
    "engagement_cache_hits_total",
    "Total cache hits",
    ["cache"],
)

CACHE_MISSES_TOTAL = Counter(
    "engagement_cache_misses_total",
    "Total cache misses",
    ["cache"],
)

CACHE_ERRORS_TOTAL = Counter(
    "engagement_cache_errors_total",
    "Cache operations that failed or timed out",
    ["operation"],
)


def record_cache_hit(cache: str = "default") -> None:
    CACHE_HITS_TOTAL.labels(cache=cache).inc()


def record_cache_miss(cache: str = "default") -> None:
    CACHE_MISSES_TOTAL.labels(cache=cache).inc()


def record_view_outcome(post_type: str, outcome: str) -> None:
    VIEWS_TRACKED_TOTAL.labels(post_type=post_type, outcome=outcome).inc()
