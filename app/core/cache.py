"""
In-memory read-through cache for poll tallies and quiz leaderboards.

Entries expire after a short TTL and the cache is bounded with LRU eviction.
Writes (votes, new winners, claims) invalidate the affected keys, so readers
see fresh data immediately after their own write.

The cache only serves GET responses. Vote deduplication, winner slot
capacity and claim transitions always go to the database.
"""

import time
import threading
from typing import Any, Callable, Dict, Optional, Tuple
from collections import OrderedDict


class TTLCache:
    """
    Time-To-Live cache with LRU eviction and hit/miss counters.

    Storage format: OrderedDict[cache_key: (data, stored_at)]

    Uses threading.RLock so ``get_or_fetch`` can hold the lock while calling
    the lower-level accessors.
    """

    def __init__(self, max_size: int = 256):
        self._cache: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.RLock()
        self._max_size = max_size
        self._hits = 0
        self._misses = 0
        # Bumped by every invalidation; a fetch that straddles one is not stored
        self._generation = 0

    def get(self, key: str) -> Optional[Any]:
        """Get cached value regardless of age, or None."""
        with self._lock:
            if key not in self._cache:
                return None
            data, _ = self._cache[key]
            self._cache.move_to_end(key)
            return data

    def set(self, key: str, value: Any) -> None:
        """Store value stamped with the current time, evicting the LRU entry if full."""
        with self._lock:
            self._cache.pop(key, None)
            self._cache[key] = (value, time.monotonic())
            while len(self._cache) > self._max_size:
                self._cache.popitem(last=False)

    def is_expired(self, key: str, ttl_seconds: float) -> bool:
        with self._lock:
            if key not in self._cache:
                return True
            _, stored_at = self._cache[key]
            return time.monotonic() - stored_at > ttl_seconds

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._generation += 1
            self._cache.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix. Returns number of keys removed."""
        with self._lock:
            self._generation += 1
            doomed = [key for key in self._cache if key.startswith(prefix)]
            for key in doomed:
                del self._cache[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        """Cache metrics for the health endpoint."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0
            return {
                "size": len(self._cache),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(hit_rate, 2),
            }

    def get_or_fetch(
        self,
        cache_key: str,
        fetch_func: Callable[[], Any],
        ttl_seconds: float = 3.0
    ) -> Any:
        """
        Return the cached value for cache_key, or call fetch_func and cache it.

        fetch_func runs without the lock held: it performs database I/O and
        no in-process lock may be held across a blocking call. Two readers
        missing at once may both fetch; the later result wins. A result
        fetched while an invalidation happened is returned but not cached.
        """
        with self._lock:
            if not self.is_expired(cache_key, ttl_seconds):
                cached = self.get(cache_key)
                if cached is not None:
                    self._hits += 1
                    return cached
            self._misses += 1
            generation = self._generation

        fresh = fetch_func()
        with self._lock:
            if generation == self._generation:
                self.set(cache_key, fresh)
        return fresh


def tally_key(poll_id: int) -> str:
    return f"poll:{poll_id}:tally"


def leaderboard_key(quiz_id: int) -> str:
    return f"quiz:{quiz_id}:leaderboard"


# Global cache instance shared by all request handlers
global_cache = TTLCache()
