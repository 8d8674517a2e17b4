"""In-process TTL cache and its invalidation helpers."""

from __future__ import annotations

from insurance_crm.core.cache import (
    CacheKeys,
    TTLCache,
    cache,
    invalidate_dashboard_cache,
    invalidate_policy_caches,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_entries_expire(self):
        clock = FakeClock()
        store = TTLCache(default_ttl=10, clock=clock)
        store.set("a", 1)
        store.set("b", 2, ttl=60)

        clock.now += 10
        assert store.get("a") is None
        assert store.get("b") == 2
        assert store.stats()["hits"] == 1
        assert store.stats()["misses"] == 1

    def test_purge_expired(self):
        clock = FakeClock()
        store = TTLCache(clock=clock)
        store.set("short", 1, ttl=1)
        store.set("long", 1, ttl=100)
        clock.now += 5
        assert store.purge_expired() == 1
        assert len(store) == 1

    def test_delete_pattern(self):
        store = TTLCache()
        store.set("policy_templates:list:1", 1)
        store.set("policy_templates:search:x", 1)
        store.set("dashboard:stats", 1)
        assert store.delete_pattern("policy_templates:*") == 2
        assert store.get("dashboard:stats") == 1


class TestKeys:
    def test_list_key_is_stable_across_param_order(self):
        assert CacheKeys.template_list({"a": 1, "b": 2}) == CacheKeys.template_list({"b": 2, "a": 1})

    def test_search_key_is_case_insensitive(self):
        assert CacheKeys.template_search("LIC", None, 20) == CacheKeys.template_search("lic", None, 20)


class TestInvalidation:
    def test_policy_invalidation_spares_unrelated_keys(self):
        cache.set(CacheKeys.template_filters(), {})
        cache.set(CacheKeys.expiry("summary"), {})
        cache.set(CacheKeys.dashboard("stats"), {})
        cache.set("unrelated:key", 1)

        assert invalidate_policy_caches() == 3
        assert cache.get("unrelated:key") == 1

    def test_dashboard_invalidation(self):
        cache.set(CacheKeys.dashboard("stats"), {})
        cache.set(CacheKeys.template_filters(), {})
        assert invalidate_dashboard_cache() == 1
        assert cache.get(CacheKeys.template_filters()) == {}
