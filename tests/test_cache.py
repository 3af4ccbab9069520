"""Tests for the per-run resolution cache."""

import asyncio

import pytest

from versioning.cache import ResolutionCache


class TestResolutionCache:
    """get_or_fetch() memoizes per key with one in-flight fetch."""

    def test_concurrent_callers_share_one_fetch(self):
        """Concurrent lookups of one key run the fetch once."""
        cache = ResolutionCache()
        calls = []

        async def fetch():
            calls.append(1)
            await asyncio.sleep(0)
            return ["1.0.0"]

        async def run():
            return await asyncio.gather(*(cache.get_or_fetch("jsr:@std/fs", fetch) for _ in range(5)))

        results = asyncio.run(run())
        assert results == [["1.0.0"]] * 5
        assert len(calls) == 1
        assert cache.misses == 1
        assert cache.hits == 4

    def test_none_is_cached(self):
        """A None result is stored like any other."""
        cache = ResolutionCache()
        calls = []

        async def fetch():
            calls.append(1)

        async def run():
            await cache.get_or_fetch("k", fetch)
            return await cache.get_or_fetch("k", fetch)

        assert asyncio.run(run()) is None
        assert len(calls) == 1
        assert "k" in cache

    def test_exceptions_are_not_cached(self):
        """A failed fetch is retried on the next lookup."""
        cache = ResolutionCache()
        attempts = []

        async def fetch():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        async def run():
            with pytest.raises(RuntimeError):
                await cache.get_or_fetch("k", fetch)
            return await cache.get_or_fetch("k", fetch)

        assert asyncio.run(run()) == "ok"
        assert len(attempts) == 2

    def test_keys_are_independent(self):
        """Each key gets its own fetch."""
        cache = ResolutionCache()

        async def run():
            await cache.get_or_fetch("a", lambda: asyncio.sleep(0, result=1))
            await cache.get_or_fetch("b", lambda: asyncio.sleep(0, result=2))

        asyncio.run(run())
        assert cache.get("a") == 1
        assert cache.get("b") == 2
        assert len(cache) == 2
        cache.clear()
        assert len(cache) == 0
