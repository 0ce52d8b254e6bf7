"""
Tests for the in-memory TTL cache.

Run with: pytest tests/test_cache.py -v
"""

import asyncio

import pytest

from roomsite.cache import (
    TTLCache,
    activity_key,
    availability_key,
    games_key,
    gift_card_key,
    pricing_key,
)


# ============================================================================
# GET / SET
# ============================================================================

class TestGetSet:
    """Plain reads and writes against the fake clock."""

    def test_value_visible_before_expiry(self, cache, clock):
        cache.set("k", {"a": 1}, ttl_seconds=60)
        clock.advance(59.9)
        assert cache.get("k") == {"a": 1}

    def test_value_invisible_at_expiry(self, cache, clock):
        """Expiry is exclusive: at exactly created + ttl the entry is gone."""
        cache.set("k", "v", ttl_seconds=60)
        clock.advance(60)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_missing_key_returns_default(self, cache):
        assert cache.get("nope") is None
        assert cache.get("nope", "fallback") == "fallback"

    def test_set_overwrites_and_resets_ttl(self, cache, clock):
        cache.set("k", "old", ttl_seconds=10)
        clock.advance(8)
        cache.set("k", "new", ttl_seconds=10)
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_expired_entries_are_not_purged(self, cache, clock):
        cache.set("k", "v", ttl_seconds=1)
        clock.advance(5)
        cache.get("k")
        assert cache.stats() == {"entries": 1, "live": 0, "inflight": 0}

    def test_falsy_values_are_cached(self, cache):
        cache.set("empty", [], ttl_seconds=30)
        assert "empty" in cache
        assert cache.get("empty", "fallback") == []

    def test_invalidate(self, cache):
        cache.set("a", 1, 30)
        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False

    def test_invalidate_prefix_and_clear(self, cache):
        cache.set(availability_key(1, "2026-03-12"), 1, 30)
        cache.set(availability_key(1, "2026-03-13"), 2, 30)
        cache.set(activity_key(1), 3, 30)

        assert cache.invalidate_prefix("availability:1:") == 2
        assert cache.stats()["entries"] == 1

        cache.clear()
        assert cache.stats()["entries"] == 0


# ============================================================================
# READ-THROUGH
# ============================================================================

class TestGetOrFetch:
    """Read-through loads, expiry and failure behaviour."""

    @pytest.mark.asyncio
    async def test_miss_loads_and_hit_skips_loader(self, cache):
        calls = []

        async def loader():
            calls.append(1)
            return "fresh"

        assert await cache.get_or_fetch("k", 60, loader) == "fresh"
        assert await cache.get_or_fetch("k", 60, loader) == "fresh"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_reloads_after_expiry(self, cache, clock):
        values = iter(["first", "second"])

        async def loader():
            return next(values)

        assert await cache.get_or_fetch("k", 30, loader) == "first"
        clock.advance(30)
        assert await cache.get_or_fetch("k", 30, loader) == "second"

    @pytest.mark.asyncio
    async def test_failed_load_caches_nothing(self, cache):
        async def broken():
            raise RuntimeError("upstream down")

        async def working():
            return "ok"

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", 60, broken)

        assert "k" not in cache
        assert cache.stats()["inflight"] == 0
        assert await cache.get_or_fetch("k", 60, working) == "ok"

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_load(self, cache):
        calls = 0
        release = asyncio.Event()

        async def loader():
            nonlocal calls
            calls += 1
            await release.wait()
            return "value"

        first = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        second = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        await asyncio.sleep(0)
        assert cache.stats()["inflight"] == 1

        release.set()
        assert await asyncio.gather(first, second) == ["value", "value"]
        assert calls == 1
        assert cache.stats()["inflight"] == 0

    @pytest.mark.asyncio
    async def test_concurrent_waiters_see_the_failure(self, cache):
        release = asyncio.Event()

        async def loader():
            await release.wait()
            raise ValueError("bad payload")

        first = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        second = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second, return_exceptions=True)
        assert all(isinstance(r, ValueError) for r in results)
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_cancelled_loader_does_not_cancel_waiters(self, cache):
        """A waiter whose shared load is cancelled runs its own load."""
        started = asyncio.Event()
        calls = 0

        async def loader():
            nonlocal calls
            calls += 1
            if calls == 1:
                started.set()
                await asyncio.Event().wait()
            return "v"

        owner = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        await started.wait()
        waiter = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        await asyncio.sleep(0)

        owner.cancel()

        assert await waiter == "v"
        assert owner.cancelled()
        assert calls == 2
        assert cache.get("k") == "v"
        assert cache.stats()["inflight"] == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_load_running(self, cache):
        release = asyncio.Event()

        async def loader():
            await release.wait()
            return "v"

        owner = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(cache.get_or_fetch("k", 60, loader))
        await asyncio.sleep(0)

        waiter.cancel()
        await asyncio.sleep(0)
        release.set()

        assert await owner == "v"
        assert waiter.cancelled()

    @pytest.mark.asyncio
    async def test_different_keys_load_independently(self):
        cache = TTLCache(clock=lambda: 0.0)

        async def load_a():
            return "a"

        async def load_b():
            return "b"

        a, b = await asyncio.gather(
            cache.get_or_fetch("a", 10, load_a),
            cache.get_or_fetch("b", 10, load_b),
        )
        assert (a, b) == ("a", "b")


# ============================================================================
# KEY BUILDERS
# ============================================================================

class TestKeys:

    def test_fixed_keys(self):
        assert availability_key(3, "2026-03-12") == "availability:3:2026-03-12"
        assert activity_key(3) == "activity:3"
        assert pricing_key(3) == "pricing:3"
        assert gift_card_key("ABC") == "giftcard:ABC"

    def test_games_key_ignores_parameter_order(self):
        assert games_key({"limit": "10", "archived": "false"}) == games_key(
            {"archived": "false", "limit": "10"}
        )
        assert games_key({"limit": "10"}) == "games:limit=10"

    def test_games_key_default(self):
        assert games_key() == "games:default"
        assert games_key({}) == "games:default"
