"""
In-memory response cache for the API proxy.

Caches parsed JSON bodies of read-only backend calls with a per-entry TTL,
evicting least recently used entries once full.
"""

import json
import logging
import time
from collections import OrderedDict
from typing import Any

from ..core.constants import (
    CACHEABLE_PATH_MARKERS,
    DASHBOARD_CACHE_TTL,
    DEFAULT_CACHE_TTL,
    REFERENCE_CACHE_TTL,
)

logger = logging.getLogger(__name__)


def get_cache_key(path: str, query: str = "", method: str = "GET") -> str:
    """Cache key for a proxied request, e.g. 'api:GET:/dashboard/stats?year=2025'."""
    suffix = f"?{query}" if query else ""
    return f"api:{method}:/{path.strip('/')}{suffix}"


def should_cache(path: str) -> bool:
    """Whether a GET response for this backend path may be cached."""
    if "real-time/" in path:
        return False
    return any(marker in path for marker in CACHEABLE_PATH_MARKERS)


def get_cache_ttl(path: str) -> int:
    """TTL in seconds: reference data for an hour, dashboard aggregates for three minutes."""
    if "dashboard/" in path:
        return DASHBOARD_CACHE_TTL
    if "regions" in path or "locations/search" in path:
        return REFERENCE_CACHE_TTL
    return DEFAULT_CACHE_TTL


class ResponseCache:
    """
    LRU cache of proxied JSON responses with expiry.

    Features:
    - Per-entry TTL, expired entries are dropped on read
    - LRU eviction once max_entries is reached
    - Prefix invalidation after writes to the same resource
    """

    def __init__(self, max_entries: int = 256):
        self.cache: OrderedDict[str, tuple[Any, float, float]] = OrderedDict()
        self.max_entries = max_entries

        # Statistics
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def get(self, key: str) -> Any | None:
        """
        Get a cached body.

        Args:
            key: Key from get_cache_key()

        Returns:
            The cached body, or None when missing or expired
        """
        entry = self.cache.get(key)
        if entry is None:
            self.misses += 1
            logger.debug(f"[Cache] Miss for {key}")
            return None

        data, stored_at, expires_at = entry
        if time.time() >= expires_at:
            del self.cache[key]
            self.expirations += 1
            self.misses += 1
            logger.debug(f"[Cache] Expired {key} after {time.time() - stored_at:.0f}s")
            return None

        self.cache.move_to_end(key)
        self.hits += 1
        logger.debug(f"[Cache] Hit for {key}")
        return data

    def put(self, key: str, data: Any, ttl: int) -> bool:
        """
        Store a body.

        Args:
            key: Key from get_cache_key()
            data: JSON-serializable body
            ttl: Lifetime in seconds

        Returns:
            True if stored
        """
        if ttl <= 0 or self.max_entries <= 0:
            return False

        if key in self.cache:
            self.cache.pop(key)
        elif len(self.cache) >= self.max_entries:
            evicted_key, _ = self.cache.popitem(last=False)
            self.evictions += 1
            logger.debug(f"[Cache] Evicted {evicted_key} (LRU)")

        now = time.time()
        self.cache[key] = (data, now, now + ttl)
        logger.debug(f"[Cache] Stored {key} with TTL {ttl}s")
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        """
        Drop every GET entry whose path starts with the given backend path.

        Args:
            prefix: Backend path, e.g. 'paket/123'

        Returns:
            Number of entries removed
        """
        key_prefix = get_cache_key(prefix)
        stale = [key for key in self.cache if key.startswith(key_prefix)]
        for key in stale:
            del self.cache[key]
        if stale:
            logger.info(f"[Cache] Invalidated {len(stale)} entries matching {key_prefix}*")
        return len(stale)

    def clear(self):
        """Clear all cached data."""
        count = len(self.cache)
        self.cache.clear()
        logger.debug(f"[Cache] Cleared {count} entries")

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache metrics
        """
        hit_rate = 0.0
        if self.hits + self.misses > 0:
            hit_rate = (self.hits / (self.hits + self.misses)) * 100

        return {
            "entries": len(self.cache),
            "max_entries": self.max_entries,
            "approx_size_kb": self._estimate_size() / 1024,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "cache_keys": list(self.cache.keys()),
        }

    def _estimate_size(self) -> int:
        """Rough size of cached bodies, measured as serialized JSON."""
        total = 0
        for data, _, _ in self.cache.values():
            try:
                total += len(json.dumps(data).encode("utf-8"))
            except (TypeError, ValueError) as e:
                logger.debug(f"Error estimating size: {e}")
        return total
