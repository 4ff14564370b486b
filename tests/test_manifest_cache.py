"""Tests for the single-flight manifest cache."""

import asyncio

import pytest

from manifest.cache import ManifestCache, SingleFlightCache


class TestManifestCache:
    def test_concurrent_callers_share_one_load(self):
        cache = ManifestCache()
        calls = []

        async def loader():
            calls.append(1)
            await asyncio.sleep(0.01)
            return object()

        async def run():
            locations = [
                "https://Example.com/a/deno.json",
                "https://example.com/a/./deno.json",
                "https://example.com/b/../a/deno.json",
                "https://example.com/a/deno.json",
            ]
            return await asyncio.gather(*(cache.get_or_load(loc, loader) for loc in locations))

        results = asyncio.run(run())

        assert len(calls) == 1
        assert all(result is results[0] for result in results)
        assert cache.misses == 1

    def test_later_calls_hit_the_cache(self):
        cache = ManifestCache()
        value = object()

        async def loader():
            return value

        async def run():
            await cache.get_or_load("file:///p/deno.json", loader)
            return await cache.get_or_load("file:///p/deno.json", loader)

        assert asyncio.run(run()) is value
        assert cache.hits == 1
        assert cache.get("file:///p/deno.json") is value

    def test_peek_while_in_flight(self):
        cache = ManifestCache()

        async def run():
            started = asyncio.Event()
            release = asyncio.Event()

            async def loader():
                started.set()
                await release.wait()
                return "loaded"

            task = asyncio.create_task(cache.get_or_load("file:///p/deno.json", loader))
            await started.wait()
            during = cache.get("file:///p/deno.json")
            release.set()
            await task
            return during

        assert asyncio.run(run()) is None
        assert cache.get("file:///p/deno.json") == "loaded"


class TestEviction:
    def test_failure_is_not_cached(self):
        cache = SingleFlightCache()
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        async def run():
            with pytest.raises(RuntimeError):
                await cache.get_or_load("key", flaky)
            assert "key" not in cache
            return await cache.get_or_load("key", flaky)

        assert asyncio.run(run()) == "ok"
        assert len(attempts) == 2

    def test_waiters_see_the_failure(self):
        cache = SingleFlightCache()
        calls = []

        async def failing():
            calls.append(1)
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        async def run():
            return await asyncio.gather(
                cache.get_or_load("key", failing),
                cache.get_or_load("key", failing),
                return_exceptions=True,
            )

        results = asyncio.run(run())

        assert len(calls) == 1
        assert all(isinstance(result, RuntimeError) for result in results)

    def test_cancelled_owner_lets_waiter_retry(self):
        cache = SingleFlightCache()

        async def run():
            started = asyncio.Event()

            async def slow():
                started.set()
                await asyncio.sleep(10)
                return "slow"

            async def fast():
                return "fast"

            owner = asyncio.create_task(cache.get_or_load("key", slow))
            await started.wait()
            waiter = asyncio.create_task(cache.get_or_load("key", fast))
            await asyncio.sleep(0)
            owner.cancel()
            with pytest.raises(asyncio.CancelledError):
                await owner
            return await waiter

        assert asyncio.run(run()) == "fast"
        assert cache.peek("key") == "fast"

    def test_tuple_keys_without_normalizer(self):
        cache = SingleFlightCache()

        async def loader():
            return 42

        assert asyncio.run(cache.get_or_load(("jsr", "@std/path", "1.0.0"), loader)) == 42
        assert ("jsr", "@std/path", "1.0.0") in cache
        assert len(cache) == 1
