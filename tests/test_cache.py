"""Tests for the response cache."""

import asyncio

import pytest

from apigateway.services.response_cache import CacheEntry, ResponseCache


class TestCacheEntry:
    """Tests for CacheEntry expiry."""

    def test_fresh_entry(self):
        entry = CacheEntry(response={"a": 1}, stored_at=100.0)
        assert not entry.is_expired(ttl=10, now=109.9)

    def test_expired_at_ttl_boundary(self):
        """An entry is valid only while now - stored_at < ttl."""
        entry = CacheEntry(response={"a": 1}, stored_at=100.0)
        assert entry.is_expired(ttl=10, now=110.0)


class TestFingerprint:
    """Tests for request fingerprints."""

    def test_deterministic(self):
        a = ResponseCache.fingerprint("p", "/search", "GET", {"q": "cats"}, None)
        b = ResponseCache.fingerprint("p", "/search", "GET", {"q": "cats"}, None)
        assert a == b
        assert len(a) == 64

    def test_parameter_order_irrelevant(self):
        a = ResponseCache.fingerprint("p", "/search", "GET", {"q": "cats", "page": 2}, None)
        b = ResponseCache.fingerprint("p", "/search", "GET", {"page": 2, "q": "cats"}, None)
        assert a == b

    def test_nested_body_order_irrelevant(self):
        a = ResponseCache.fingerprint("p", "/x", "POST", None, {"a": {"x": 1, "y": 2}, "b": 3})
        b = ResponseCache.fingerprint("p", "/x", "POST", None, {"b": 3, "a": {"y": 2, "x": 1}})
        assert a == b

    def test_method_case_insensitive(self):
        assert ResponseCache.fingerprint("p", "/x", "get") == ResponseCache.fingerprint("p", "/x", "GET")

    @pytest.mark.parametrize(
        "other",
        [
            ("q", "/search", "GET", {"q": "cats"}, None),
            ("p", "/other", "GET", {"q": "cats"}, None),
            ("p", "/search", "POST", {"q": "cats"}, None),
            ("p", "/search", "GET", {"q": "dogs"}, None),
            ("p", "/search", "GET", {"q": "cats"}, {"x": 1}),
        ],
    )
    def test_each_field_changes_fingerprint(self, other):
        base = ResponseCache.fingerprint("p", "/search", "GET", {"q": "cats"}, None)
        assert ResponseCache.fingerprint(*other) != base


class TestResponseCache:
    """Tests for get/put/clear."""

    @pytest.fixture
    def cache(self, clock):
        return ResponseCache(clock=clock)

    @pytest.mark.asyncio
    async def test_get_missing(self, cache):
        assert await cache.get("p", "fp", ttl=60) is None

    @pytest.mark.asyncio
    async def test_get_default_distinguishes_cached_none(self, cache, clock):
        miss = object()
        await cache.put("p", "fp", None, ttl=60)

        assert await cache.get("p", "fp", ttl=60, default=miss) is None
        assert await cache.get("p", "other", ttl=60, default=miss) is miss
        clock.advance(60)
        assert await cache.get("p", "fp", ttl=60, default=miss) is miss

    @pytest.mark.asyncio
    async def test_round_trip_within_ttl(self, cache, clock):
        await cache.put("p", "fp", {"photos": [1, 2]}, ttl=60)
        clock.advance(59)
        assert await cache.get("p", "fp", ttl=60) == {"photos": [1, 2]}

    @pytest.mark.asyncio
    async def test_expired_entry_removed_on_lookup(self, cache, clock):
        await cache.put("p", "fp", "body", ttl=60)
        clock.advance(60)

        assert await cache.get("p", "fp", ttl=60) is None
        assert cache.entry_count("p") == 0

    @pytest.mark.asyncio
    async def test_put_overwrites(self, cache, clock):
        await cache.put("p", "fp", "old", ttl=60)
        clock.advance(30)
        await cache.put("p", "fp", "new", ttl=60)
        clock.advance(45)

        assert await cache.get("p", "fp", ttl=60) == "new"

    @pytest.mark.asyncio
    async def test_zero_ttl_never_caches(self, cache):
        await cache.put("p", "fp", "body", ttl=0)
        assert cache.entry_count("p") == 0
        assert await cache.get("p", "fp", ttl=0) is None

    @pytest.mark.asyncio
    async def test_lookups_scoped_by_provider(self, cache):
        await cache.put("p1", "fp", "one", ttl=60)
        assert await cache.get("p2", "fp", ttl=60) is None
        assert await cache.get("p1", "fp", ttl=60) == "one"

    @pytest.mark.asyncio
    async def test_clear_one_provider(self, cache):
        await cache.put("p1", "a", 1, ttl=60)
        await cache.put("p1", "b", 2, ttl=60)
        await cache.put("p2", "a", 3, ttl=60)

        assert await cache.clear("p1") == 2
        assert await cache.get("p1", "a", ttl=60) is None
        assert await cache.get("p2", "a", ttl=60) == 3

    @pytest.mark.asyncio
    async def test_clear_all(self, cache):
        await cache.put("p1", "a", 1, ttl=60)
        await cache.put("p2", "a", 2, ttl=60)

        assert await cache.clear() == 2
        assert cache.stats()["total_entries"] == 0

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, cache, clock):
        await cache.put("short", "a", 1, ttl=10)
        await cache.put("long", "a", 2, ttl=100)
        await cache.put("gone", "a", 3, ttl=100)
        clock.advance(20)

        removed = await cache.cleanup_expired({"short": 10, "long": 100})

        assert removed == 2
        assert cache.entry_count("short") == 0
        assert cache.entry_count("long") == 1
        assert cache.entry_count("gone") == 0

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        await cache.put("p1", "a", {"x": "y"}, ttl=60)
        await cache.put("p1", "b", "text", ttl=60)
        await cache.put("p2", "a", [1, 2, 3], ttl=60)

        stats = cache.stats()

        assert stats["total_entries"] == 3
        assert stats["providers_cached"] == 2
        assert stats["cache_size_mb"] == 0.0

    @pytest.mark.asyncio
    async def test_concurrent_access(self, cache):
        """Cache is safe for concurrent access."""

        async def writer(provider, count):
            for i in range(count):
                await cache.put(provider, f"fp{i}", f"value{i}", ttl=60)

        async def reader(provider, count):
            for i in range(count):
                await cache.get(provider, f"fp{i}", ttl=60)

        await asyncio.gather(
            writer("a", 50),
            writer("b", 50),
            reader("a", 50),
            reader("b", 50),
        )

        assert cache.stats()["total_entries"] == 100
