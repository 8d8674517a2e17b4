"""
Process-local TTL cache for expensive read endpoints.

Entries are stored as ``key -> (value, expires_at)`` using a monotonic
clock.  Keys are namespaced strings (``policy_templates:list:...``) so a
whole family can be dropped with a glob pattern after a mutation.

Usage::

    cached = cache.get(key)
    if cached is None:
        cached = await compute()
        cache.set(key, cached, ttl=CacheTTL.TEMPLATE_STATS)
"""

from __future__ import annotations

import fnmatch
import hashlib
import json
import time
from typing import Any, Callable

from insurance_crm.core.logging import get_logger

logger = get_logger(__name__)


class CacheTTL:
    """Time-to-live per cached area, in seconds."""

    TEMPLATE_LIST = 300
    TEMPLATE_FILTERS = 600
    TEMPLATE_SEARCH = 180
    TEMPLATE_STATS = 300
    TEMPLATE_DETAIL = 180
    EXPIRY = 120
    DASHBOARD = 300


class TTLCache:
    """Minimal in-memory cache with per-entry expiry."""

    def __init__(self, default_ttl: int = 300, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[Any, float]] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            self.misses += 1
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._store[key]
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        seconds = self._default_ttl if ttl is None else ttl
        self._store[key] = (value, self._clock() + seconds)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def delete_pattern(self, pattern: str) -> int:
        """Drop every key matching a glob pattern. Returns number removed."""
        doomed = [key for key in self._store if fnmatch.fnmatchcase(key, pattern)]
        for key in doomed:
            del self._store[key]
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        doomed = [key for key, (_, expires_at) in self._store.items() if expires_at <= now]
        for key in doomed:
            del self._store[key]
        return len(doomed)

    def clear(self) -> None:
        self._store.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "keys": len(self._store),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 2) if total else 0.0,
        }

    def __len__(self) -> int:
        return len(self._store)


cache = TTLCache()


# ─── Key builders ─────────────────────────────
def _digest(params: dict[str, Any]) -> str:
    raw = json.dumps(params, sort_keys=True, default=str)
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


class CacheKeys:
    """Namespaced key builders.  Patterns below must stay in sync."""

    @staticmethod
    def template_list(params: dict[str, Any]) -> str:
        return f"policy_templates:list:{_digest(params)}"

    @staticmethod
    def template_search(query: str, exclude_client_id: str | None, limit: int) -> str:
        return f"policy_templates:search:{query.lower()}:{exclude_client_id or '-'}:{limit}"

    @staticmethod
    def template_filters() -> str:
        return "policy_templates:filters"

    @staticmethod
    def template_stats(name: str, params: dict[str, Any] | None = None) -> str:
        suffix = _digest(params) if params else "all"
        return f"policy_templates:stats:{name}:{suffix}"

    @staticmethod
    def template_detail(template_id: str, part: str) -> str:
        return f"policy_templates:detail:{template_id}:{part}"

    @staticmethod
    def expiry(name: str, scope: str = "all") -> str:
        return f"expiry:{name}:{scope}"

    @staticmethod
    def dashboard(name: str) -> str:
        return f"dashboard:{name}"


POLICY_CACHE_PATTERNS = ("policy_templates:*", "policy_instances:*", "expiry:*", "dashboard:*")


def invalidate_policy_caches() -> int:
    """Drop every cached value derived from templates or instances."""
    removed = sum(cache.delete_pattern(pattern) for pattern in POLICY_CACHE_PATTERNS)
    if removed:
        logger.debug("Policy caches invalidated", removed=removed)
    return removed


def invalidate_dashboard_cache() -> int:
    return cache.delete_pattern("dashboard:*")
