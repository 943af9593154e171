"""Tests for the TTL cache."""

import asyncio

import pytest

from regmaster.managers.registry.cache import TTLCache


class TestGetSet:
    def test_value_visible_within_ttl(self, cache, clock):
        cache.set("k", ["a"], ttl=10)
        clock.advance(10)
        assert cache.get("k") == ["a"]

    def test_expired_entry_is_evicted_on_read(self, cache, clock):
        cache.set("k", "v", ttl=10)
        clock.advance(10.5)
        assert cache.get("k") is None
        assert cache.stats()["size"] == 0

    def test_default_ttl_applies(self, clock):
        cache = TTLCache(default_ttl=5, clock=clock)
        cache.set("k", "v")
        clock.advance(6)
        assert cache.get("k") is None

    def test_missing_key(self, cache):
        assert cache.get("nope") is None

    def test_remove_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.remove("a")
        cache.remove("does-not-exist")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.clear()
        assert cache.stats() == {"size": 0, "oldest_timestamp": None}


class TestKeys:
    def test_params_order_does_not_matter(self, cache):
        first = cache.make_key("/v2/x", {"b": 1, "a": 2})
        second = cache.make_key("/v2/x", {"a": 2, "b": 1})
        assert first == second
        assert first.startswith("docker-registry:/v2/x:")

    def test_key_without_params(self, cache):
        assert cache.make_key("/v2/_catalog") == "docker-registry:/v2/_catalog"

    def test_remove_prefix_only_matches_resource(self, cache):
        cache.set(cache.make_key("/v2/app/cumulative-size", {"tags": "1"}), 1)
        cache.set(cache.make_key("/v2/app/cumulative-size", {"tags": "1,2"}), 2)
        cache.set(cache.make_key("/v2/app/cumulative-size-other"), 3)
        cache.set(cache.make_key("/v2/app/tags/list"), 4)

        assert cache.remove_prefix("/v2/app/cumulative-size") == 2
        assert cache.stats()["size"] == 2


class TestMaintenance:
    def test_clear_expired(self, cache, clock):
        cache.set("short", 1, ttl=1)
        cache.set("long", 2, ttl=100)
        clock.advance(2)

        assert cache.clear_expired() == 1
        assert cache.get("long") == 2

    def test_stats_reports_oldest(self, cache, clock):
        cache.set("a", 1)
        first = clock()
        clock.advance(3)
        cache.set("b", 2)

        assert cache.stats() == {"size": 2, "oldest_timestamp": first}


class TestWithCache:
    @pytest.mark.asyncio
    async def test_computes_once_within_ttl(self, cache):
        calls = []

        async def compute():
            calls.append(1)
            return ["x"]

        assert await cache.with_cache(compute, "k", ttl=60) == ["x"]
        assert await cache.with_cache(compute, "k", ttl=60) == ["x"]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_recomputes_after_expiry(self, cache, clock):
        calls = []

        async def compute():
            calls.append(1)
            return len(calls)

        await cache.with_cache(compute, "k", ttl=1)
        clock.advance(2)
        assert await cache.with_cache(compute, "k", ttl=1) == 2

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, cache):
        async def compute():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await cache.with_cache(compute, "k")
        assert cache.get("k") is None

    @pytest.mark.asyncio
    async def test_concurrent_misses_both_compute(self, cache):
        calls = []

        async def compute():
            calls.append(1)
            await asyncio.sleep(0)
            return len(calls)

        await asyncio.gather(cache.with_cache(compute, "k"), cache.with_cache(compute, "k"))
        assert len(calls) == 2
        assert cache.get("k") is not None


def test_zero_ttl_is_not_replaced_by_default(cache, clock):
    cache.set("k", "v", ttl=0)
    clock.advance(0.5)
    assert cache.get("k") is None
