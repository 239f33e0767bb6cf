"""Tests for the in-memory dashboard cache."""
import time

from backoffice.utils.cache import DASHBOARD_PREFIX, SimpleCache, dashboard_cache, invalidate_dashboard


def test_get_set_and_expiry():
    cache = SimpleCache(default_ttl=60)
    cache.set("dashboard:all", {"total_players": 3})
    cache.set("short", 1, ttl=0.01)

    assert cache.get("dashboard:all") == {"total_players": 3}
    time.sleep(0.02)
    assert cache.get("short") is None
    assert cache.get("missing") is None


def test_invalidate_prefix():
    cache = SimpleCache()
    cache.set("dashboard:all", 1)
    cache.set("dashboard:today", 2)
    cache.set("other", 3)

    assert cache.invalidate_prefix("dashboard:") == 2
    assert cache.get("dashboard:today") is None
    assert cache.get("other") == 3


def test_invalidate_dashboard_drops_every_range():
    dashboard_cache.clear()
    dashboard_cache.set(f"{DASHBOARD_PREFIX}all", {"total_players": 3})
    dashboard_cache.set(f"{DASHBOARD_PREFIX}7d", {"total_players": 1})

    invalidate_dashboard()

    assert dashboard_cache.get(f"{DASHBOARD_PREFIX}all") is None
    assert dashboard_cache.get(f"{DASHBOARD_PREFIX}7d") is None
