"""Fixed-window rate limiter - Redis or in-memory fallback."""
import logging
import time
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Counts hits per key inside fixed windows.

    Uses Redis when a URL is configured so limits hold across workers; falls
    back to a per-process dictionary otherwise, or when Redis errors.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.backend = "memory"
        self.redis = None
        self._memory_windows: dict[str, tuple[int, float]] = {}

        if redis_url:
            self.redis = aioredis.from_url(redis_url, decode_responses=True)
            self.backend = "redis"
            logger.info("Using Redis for rate limiting")
        else:
            logger.info("Using in-memory rate limiting (Redis URL not provided)")

    async def check(self, key: str, limit: int, window_seconds: int) -> tuple[bool, Optional[int]]:
        """Register one hit for ``key``.

        Returns:
            ``(allowed, retry_after_seconds)``; ``retry_after`` is None when allowed.
        """
        if self.backend == "redis":
            try:
                return await self._check_redis(key, limit, window_seconds)
            except RedisError as e:
                logger.warning(f"Redis rate limit check failed, using in-memory window: {e}")
        return await self._check_memory(key, limit, window_seconds)

    async def _check_redis(self, key: str, limit: int, window_seconds: int) -> tuple[bool, Optional[int]]:
        redis_key = f"ratelimit:{key}"
        count = await self.redis.incr(redis_key)
        if count == 1:
            await self.redis.expire(redis_key, window_seconds)
        if count <= limit:
            return True, None
        ttl = await self.redis.ttl(redis_key)
        return False, max(int(ttl), 1) if ttl and ttl > 0 else window_seconds

    async def _check_memory(self, key: str, limit: int, window_seconds: int) -> tuple[bool, Optional[int]]:
        now = time.monotonic()
        count, window_start = self._memory_windows.get(key, (0, now))
        if now - window_start >= window_seconds:
            count, window_start = 0, now
        count += 1
        self._memory_windows[key] = (count, window_start)

        if count <= limit:
            return True, None
        return False, max(int(window_start + window_seconds - now), 1)

    async def reset(self, key: str) -> None:
        """Forget all hits recorded for ``key``."""
        if self.backend == "redis":
            try:
                await self.redis.delete(f"ratelimit:{key}")
            except RedisError as e:
                logger.warning(f"Redis rate limit reset failed: {e}")
        self._memory_windows.pop(key, None)
