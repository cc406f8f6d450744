"""Unit tests for the read cache."""
import pytest
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from app.core.cache import TTLCache, leaderboard_key, tally_key


@pytest.mark.unit
class TestTTLCache:
    """Tests for TTLCache class."""

    def test_basic_get_set(self):
        cache = TTLCache()
        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"

    def test_get_nonexistent_key(self):
        assert TTLCache().get("nonexistent") is None

    def test_ttl_expiration(self):
        """Cached values expire after their TTL."""
        cache = TTLCache()
        cache.set("key1", "value1")
        assert not cache.is_expired("key1", ttl_seconds=0.2)

        time.sleep(0.3)

        assert cache.is_expired("key1", ttl_seconds=0.2)

    def test_nonexistent_key_is_expired(self):
        assert TTLCache().is_expired("nonexistent", ttl_seconds=1.0)

    def test_lru_eviction(self):
        """The least recently used entry is evicted once the cache is full."""
        cache = TTLCache(max_size=3)
        cache.set("key1", "value1")
        cache.set("key2", "value2")
        cache.set("key3", "value3")

        # Touch key1 so key2 becomes the oldest
        cache.get("key1")
        cache.set("key4", "value4")

        assert cache.get("key2") is None
        assert cache.get("key1") == "value1"
        assert cache.get("key4") == "value4"

    def test_invalidate(self):
        cache = TTLCache()
        cache.set("key1", "value1")
        cache.invalidate("key1")
        assert cache.get("key1") is None

    def test_invalidate_nonexistent_key(self):
        """Invalidating a missing key is a no-op."""
        TTLCache().invalidate("nonexistent")

    def test_invalidate_prefix(self):
        cache = TTLCache()
        cache.set(leaderboard_key(1), "a")
        cache.set(leaderboard_key(2), "b")
        cache.set(tally_key(1), "c")

        removed = cache.invalidate_prefix("quiz:")

        assert removed == 2
        assert cache.get(leaderboard_key(1)) is None
        assert cache.get(tally_key(1)) == "c"

    def test_clear_resets_stats(self):
        cache = TTLCache()
        cache.get_or_fetch("key1", lambda: "value1")
        cache.clear()

        stats = cache.get_stats()
        assert stats["size"] == 0
        assert stats["hits"] == 0
        assert stats["misses"] == 0

    def test_key_helpers(self):
        assert tally_key(7) == "poll:7:tally"
        assert leaderboard_key(7) == "quiz:7:leaderboard"


@pytest.mark.unit
class TestGetOrFetch:
    """Tests for TTLCache.get_or_fetch."""

    def test_cache_miss_calls_fetch(self):
        cache = TTLCache()
        calls = []

        def fetch():
            calls.append(1)
            return {"votes": 3}

        assert cache.get_or_fetch("key1", fetch, ttl_seconds=1.0) == {"votes": 3}
        assert len(calls) == 1

    def test_cache_hit_skips_fetch(self):
        cache = TTLCache()
        cache.get_or_fetch("key1", lambda: "first", ttl_seconds=1.0)

        result = cache.get_or_fetch("key1", lambda: "second", ttl_seconds=1.0)

        assert result == "first"

    def test_expired_cache_refetches(self):
        cache = TTLCache()
        cache.get_or_fetch("key1", lambda: "old", ttl_seconds=0.1)
        time.sleep(0.2)

        assert cache.get_or_fetch("key1", lambda: "new", ttl_seconds=0.1) == "new"

    def test_hit_miss_tracking(self):
        cache = TTLCache()
        cache.get_or_fetch("key1", lambda: "v", ttl_seconds=1.0)
        cache.get_or_fetch("key1", lambda: "v", ttl_seconds=1.0)
        cache.get_or_fetch("key1", lambda: "v", ttl_seconds=1.0)

        stats = cache.get_stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 2
        assert stats["hit_rate_percent"] == pytest.approx(66.67, abs=0.01)

    def test_fetch_errors_are_not_cached(self):
        cache = TTLCache()

        def failing():
            raise LookupError("gone")

        with pytest.raises(LookupError):
            cache.get_or_fetch("key1", failing)

        assert cache.get("key1") is None

    def test_fetch_runs_without_lock(self):
        """A slow fetch for one key does not block readers of another key."""
        cache = TTLCache()
        cache.set("fast", "ready")
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(timeout=5)
            return "slow"

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(cache.get_or_fetch, "slow", slow_fetch, 10.0)
            assert started.wait(timeout=5)

            # Would deadlock if the lock were held across slow_fetch
            assert cache.get_or_fetch("fast", lambda: "unused", ttl_seconds=10.0) == "ready"

            release.set()
            assert future.result(timeout=5) == "slow"

    def test_invalidation_during_fetch_is_not_overwritten(self):
        """A result read before a write lands must not be cached after it."""
        cache = TTLCache()

        def fetch_racing_a_write():
            stale = {"votes": 1}
            cache.invalidate("poll:1:tally")
            return stale

        assert cache.get_or_fetch("poll:1:tally", fetch_racing_a_write, ttl_seconds=10.0) == {"votes": 1}
        assert cache.get("poll:1:tally") is None

        assert cache.get_or_fetch("poll:1:tally", lambda: {"votes": 2}, ttl_seconds=10.0) == {"votes": 2}
        assert cache.get("poll:1:tally") == {"votes": 2}

    def test_prefix_invalidation_during_fetch_is_not_overwritten(self):
        cache = TTLCache()

        def fetch_racing_a_write():
            cache.invalidate_prefix("quiz:3:")
            return ["stale"]

        cache.get_or_fetch("quiz:3:leaderboard", fetch_racing_a_write, ttl_seconds=10.0)

        assert cache.get("quiz:3:leaderboard") is None
