import asyncio

import pytest

from src.cache.result_cache import ResultCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_rejects_invalid_limits():
    with pytest.raises(ValueError):
        ResultCache(capacity=0)
    with pytest.raises(ValueError):
        ResultCache(ttl_seconds=0)


@pytest.mark.asyncio
async def test_least_recently_used_entry_is_evicted():
    cache = ResultCache(capacity=2)
    await cache.set("a", 1)
    await cache.set("b", 2)
    assert await cache.get("a") == 1  # a is now most recent
    await cache.set("c", 3)

    assert len(cache) == 2
    assert await cache.get("b") is None
    assert await cache.get("a") == 1
    assert await cache.get("c") == 3


@pytest.mark.asyncio
async def test_entries_expire():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=10, clock=clock)
    await cache.set("a", "value")
    clock.now += 9.9
    assert await cache.get("a") == "value"
    clock.now += 0.1
    assert await cache.get("a") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_none_is_never_stored():
    cache = ResultCache()
    await cache.set("a", None)
    assert len(cache) == 0

    async def nothing():
        return None

    assert await cache.get_or_compute("b", nothing) is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_computation():
    cache = ResultCache()
    release = asyncio.Event()
    calls = []

    async def factory():
        calls.append(1)
        await release.wait()
        return {"answer": 42}

    waiters = [asyncio.create_task(cache.get_or_compute("k", factory)) for _ in range(4)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters)

    assert len(calls) == 1
    assert all(result is results[0] for result in results)
    assert await cache.get_or_compute("k", factory) is results[0]
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_is_not_cached():
    cache = ResultCache()
    release = asyncio.Event()
    attempts = []

    async def failing():
        attempts.append(1)
        await release.wait()
        raise RuntimeError("compute failed")

    waiters = [asyncio.create_task(cache.get_or_compute("k", failing)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert len(attempts) == 1
    assert all(isinstance(result, RuntimeError) for result in results)
    assert len(cache) == 0

    async def working():
        return "ok"

    assert await cache.get_or_compute("k", working) == "ok"


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_computation():
    cache = ResultCache()
    release = asyncio.Event()

    async def factory():
        await release.wait()
        return "done"

    first = asyncio.create_task(cache.get_or_compute("k", factory))
    second = asyncio.create_task(cache.get_or_compute("k", factory))
    await asyncio.sleep(0)
    first.cancel()
    release.set()

    assert await second == "done"
    with pytest.raises(asyncio.CancelledError):
        await first
    assert await cache.get("k") == "done"


@pytest.mark.asyncio
async def test_invalidate_by_prefix():
    cache = ResultCache()
    await cache.set("profile:1", 1)
    await cache.set("profile:2", 2)
    await cache.set("question:1", 3)

    assert cache.invalidate("profile:") == 2
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
