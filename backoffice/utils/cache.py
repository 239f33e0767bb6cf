"""Simple in-memory cache for dashboard aggregates."""
import time
from typing import Any, Dict, Optional
import logging

from backoffice.config import get_settings

logger = logging.getLogger(__name__)

DASHBOARD_PREFIX = "dashboard:"


class SimpleCache:
    """
    A simple in-memory cache with TTL (time-to-live) support.

    Writers invalidate the keys they affect explicitly; the TTL only bounds
    how long an entry can outlive a write made by another process.
    """

    def __init__(self, default_ttl: float = 30.0):
        self.default_ttl = default_ttl
        self._cache: Dict[str, tuple[Any, float]] = {}
        self._last_cleanup = time.time()
        self._cleanup_interval = 60.0

    def _cleanup_expired(self):
        """Remove expired entries from cache."""
        current_time = time.time()
        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        expired_keys = [key for key, (_, expires_at) in self._cache.items() if current_time > expires_at]
        for key in expired_keys:
            self._cache.pop(key, None)

        self._last_cleanup = current_time

        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        self._cleanup_expired()

        if key not in self._cache:
            return None

        value, expires_at = self._cache[key]
        if time.time() > expires_at:
            self._cache.pop(key, None)
            return None

        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Set value in cache with TTL."""
        if ttl is None:
            ttl = self.default_ttl
        self._cache[key] = (value, time.time() + ttl)

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``."""
        keys_to_delete = [key for key in self._cache if key.startswith(prefix)]
        for key in keys_to_delete:
            self._cache.pop(key, None)
        if keys_to_delete:
            logger.debug(f"Invalidated {len(keys_to_delete)} cache entries with {prefix=}")
        return len(keys_to_delete)


def invalidate_dashboard() -> None:
    """Drop every cached dashboard aggregate after a write."""
    dashboard_cache.invalidate_prefix(DASHBOARD_PREFIX)


# Global cache instance
dashboard_cache = SimpleCache(default_ttl=get_settings().dashboard_cache_ttl_seconds)
