"""
Cache Utility Module

Provides Redis-based caching for dedup markers, rate-limit counters and stats
snapshots. The cache is never the source of truth: every operation degrades to
"miss" / "not written" when Redis is unreachable or slow, and callers must be
able to rebuild everything from the database.
"""

import asyncio
import json
import logging
import time
from typing import Any

import redis.asyncio as redis

from engagement.config import settings
from engagement.utils.metrics import CACHE_ERRORS_TOTAL, REDIS_CONNECTED

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Redis access for the engagement service.

    Every public method swallows Redis errors. Reads report a miss and writes
    report False, so a dead Redis only costs dedup accuracy and cache hits.
    """

    DEFAULT_TTL = 300

    def __init__(self):
        """Initialize Redis connection pool"""
        self._redis: redis.Redis | None = None
        self._pool: redis.ConnectionPool | None = None
        self._enabled = True
        self._last_connect_attempt: float = 0  # timestamp of last failed connect; enables 30s retry

    async def connect(self) -> None:
        """Establish connection to Redis from redis_url or individual params."""
        if self._redis is not None:
            return

        self._last_connect_attempt = time.time()

        try:
            if settings.redis_url:
                self._pool = redis.ConnectionPool.from_url(
                    settings.redis_url,
                    decode_responses=True,
                    socket_timeout=settings.cache_timeout_seconds,
                    socket_connect_timeout=settings.cache_timeout_seconds,
                )
            else:
                self._pool = redis.ConnectionPool(
                    host=settings.redis_host,
                    port=settings.redis_port,
                    db=settings.redis_db,
                    password=settings.redis_password,
                    decode_responses=True,
                    socket_timeout=settings.cache_timeout_seconds,
                    socket_connect_timeout=settings.cache_timeout_seconds,
                )

            self._redis = redis.Redis(connection_pool=self._pool)
            await asyncio.wait_for(self._redis.ping(), timeout=settings.cache_timeout_seconds)
            REDIS_CONNECTED.set(1)
            logger.info("Cache: Successfully connected to Redis")
        except Exception as e:
            REDIS_CONNECTED.set(0)
            logger.warning(f"Cache: Failed to connect to Redis: {e}. Caching disabled.")
            self._redis = None
            self._enabled = False

    async def disconnect(self) -> None:
        """Close Redis connection"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None
        logger.info("Cache: Disconnected from Redis")

    async def _maybe_retry_connect(self) -> None:
        """Re-attempt connection after a 30-second cooldown to allow self-healing."""
        if not self._enabled and time.time() - self._last_connect_attempt >= 30:
            logger.info("Cache: retrying Redis connection after cooldown...")
            self._redis = None
            self._pool = None
            self._enabled = True  # reset so connect() proceeds
            await self.connect()

    async def _client(self) -> redis.Redis | None:
        await self._maybe_retry_connect()
        if not self._enabled:
            return None
        if not self._redis:
            await self.connect()
        return self._redis

    async def _call(self, operation: str, key: str, func) -> Any:
        """Run one Redis round-trip under the cache timeout.

        Returns None when Redis is disabled, unreachable, slow or erroring.
        """
        client = await self._client()
        if client is None:
            return None

        try:
            return await asyncio.wait_for(func(client), timeout=settings.cache_timeout_seconds)
        except Exception as e:
            CACHE_ERRORS_TOTAL.labels(operation=operation).inc()
            logger.warning(f"Cache {operation} error for {key}: {e!r}")
            return None

    @property
    def available(self) -> bool:
        return self._enabled and self._redis is not None

    async def get(self, key: str) -> Any | None:
        """
        Get a cached value by key.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        data = await self._call("get", key, lambda r: r.get(key))
        if data is None:
            logger.debug(f"Cache MISS: {key}")
            return None

        logger.debug(f"Cache HIT: {key}")
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return data

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Set a cached value with optional TTL.

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default: DEFAULT_TTL)

        Returns:
            True if successful, False otherwise
        """
        ttl = ttl or self.DEFAULT_TTL
        serialized = json.dumps(value, default=str)
        result = await self._call("set", key, lambda r: r.setex(key, ttl, serialized))
        if result is None:
            return False
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True

    async def exists(self, key: str) -> bool | None:
        """True/False for key presence, None when the cache could not be asked."""
        result = await self._call("exists", key, lambda r: r.exists(key))
        if result is None:
            return None
        return bool(result)

    async def delete(self, key: str) -> bool:
        """
        Delete a cached value.

        Args:
            key: Cache key

        Returns:
            True if the delete reached Redis, False otherwise
        """
        result = await self._call("delete", key, lambda r: r.delete(key))
        if result is None:
            return False
        logger.debug(f"Cache DELETE: {key}")
        return True

    async def incr_with_expiry(self, key: str, ttl: int) -> int | None:
        """
        Atomically increment a counter, setting its expiry on first write.

        ``SET key 0 EX ttl NX`` and ``INCR key`` run in one MULTI/EXEC block,
        so a counter can never be left without a TTL and concurrent callers
        never lose an increment.

        Returns:
            The counter value after the increment, or None if Redis failed
        """

        async def _incr(r: redis.Redis) -> int:
            async with r.pipeline(transaction=True) as pipe:
                results = await pipe.set(key, 0, ex=ttl, nx=True).incr(key).execute()
            return int(results[1])

        return await self._call("incr", key, _incr)

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Key pattern (e.g., "trending:*")

        Returns:
            Number of keys deleted
        """

        async def _delete(r: redis.Redis) -> int:
            keys = [key async for key in r.scan_iter(match=pattern)]
            if not keys:
                return 0
            return await r.delete(*keys)

        deleted = await self._call("delete_pattern", pattern, _delete)
        if deleted:
            logger.info(f"Cache DELETE PATTERN: {pattern} ({deleted} keys)")
        return deleted or 0

    async def ping(self) -> bool:
        result = await self._call("ping", "-", lambda r: r.ping())
        healthy = bool(result)
        REDIS_CONNECTED.set(1 if healthy else 0)
        return healthy


# Global cache manager instance
cache_manager = CacheManager()

