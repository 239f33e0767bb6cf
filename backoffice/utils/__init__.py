"""Utilities module - rate limiter and shared helpers."""
from backoffice.config import get_settings
from backoffice.utils.rate_limiter import RateLimiter
from backoffice.utils.datetime_helpers import ensure_utc

settings = get_settings()

# Create singleton instances
rate_limiter = RateLimiter(settings.redis_url if settings.redis_url else None)

__all__ = ["rate_limiter", "ensure_utc"]
