from __future__ import annotations

import asyncio

import pytest

from order_browser.client.cache import CacheStatus, FetchCache, RequestKey
from order_browser.core.errors import StoreError
from order_browser.domain.orders import FulfilmentStatus, PageResult

KEY_A = RequestKey(status=None, page=1, page_size=20)
KEY_B = RequestKey(status=None, page=2, page_size=20)
KEY_SHIPPED = RequestKey(status=FulfilmentStatus.SHIPPED, page=1, page_size=20)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _result(page: int, total: int = 45, limit: int = 20) -> PageResult:
    return PageResult(orders=(), total_count=total, current_page=page, total_pages=(total + limit - 1) // limit, limit=limit)


class CountingLoader:
    def __init__(self, result: PageResult, gate: asyncio.Event | None = None, error: Exception | None = None):
        self.result = result
        self.gate = gate
        self.error = error
        self.calls = 0

    async def __call__(self) -> PageResult:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


def test_concurrent_fetches_share_one_request():
    async def scenario():
        cache = FetchCache()
        gate = asyncio.Event()
        loader = CountingLoader(_result(1), gate=gate)

        first = asyncio.ensure_future(cache.fetch(KEY_A, loader))
        second = asyncio.ensure_future(cache.fetch(KEY_A, loader))
        await asyncio.sleep(0)
        assert cache.is_fetching(KEY_A)
        assert cache.get(KEY_A).status is CacheStatus.PENDING

        gate.set()
        results = await asyncio.gather(first, second)
        return loader.calls, results

    calls, (a, b) = asyncio.run(scenario())
    assert calls == 1
    assert a is b


def test_fresh_entry_is_served_without_reloading():
    async def scenario():
        clock = FakeClock()
        cache = FetchCache(staleness_seconds=600, clock=clock)
        loader = CountingLoader(_result(1))
        await cache.fetch(KEY_A, loader)
        clock.now += 599
        await cache.fetch(KEY_A, loader)
        return loader.calls

    assert asyncio.run(scenario()) == 1


def test_stale_entry_is_served_while_refetching_in_background():
    async def scenario():
        clock = FakeClock()
        cache = FetchCache(staleness_seconds=600, clock=clock)
        old = _result(1, total=45)
        new = _result(1, total=46)
        await cache.fetch(KEY_A, CountingLoader(old))
        old_entry = cache.get(KEY_A)

        clock.now += 601
        refresh = CountingLoader(new)
        served = await cache.fetch(KEY_A, refresh)
        assert served is old
        assert cache.is_fetching(KEY_A)

        await cache.wait_idle()
        return old_entry, cache.get(KEY_A), refresh.calls

    old_entry, new_entry, calls = asyncio.run(scenario())
    assert calls == 1
    assert new_entry is not old_entry
    assert new_entry.data.total_count == 46
    # The superseded entry is untouched.
    assert old_entry.data.total_count == 45
    assert old_entry.status is CacheStatus.READY


def test_invalidated_entry_is_refetched():
    async def scenario():
        cache = FetchCache()
        await cache.fetch(KEY_A, CountingLoader(_result(1)))
        cache.invalidate(KEY_A)
        loader = CountingLoader(_result(1, total=50))
        await cache.fetch(KEY_A, loader)
        await cache.wait_idle()
        return loader.calls, cache.get(KEY_A)

    calls, entry = asyncio.run(scenario())
    assert calls == 1
    assert entry.data.total_count == 50
    assert entry.invalidated is False


def test_failed_fetch_surfaces_error_and_keeps_other_keys():
    async def scenario():
        cache = FetchCache()
        await cache.fetch(KEY_A, CountingLoader(_result(1)))
        with pytest.raises(StoreError, match="connection refused"):
            await cache.fetch(KEY_B, CountingLoader(_result(2), error=StoreError("connection refused")))
        return cache

    cache = asyncio.run(scenario())
    assert cache.get(KEY_B).status is CacheStatus.ERROR
    assert cache.get(KEY_B).error == "connection refused"
    assert cache.get(KEY_A).status is CacheStatus.READY

    view = cache.view(KEY_B, previous_key=KEY_A)
    assert view.status is CacheStatus.ERROR
    assert view.error == "connection refused"


def test_view_keeps_previous_data_while_new_key_loads():
    async def scenario():
        cache = FetchCache()
        page_one = _result(1)
        await cache.fetch(KEY_A, CountingLoader(page_one))

        gate = asyncio.Event()
        pending = asyncio.ensure_future(cache.fetch(KEY_B, CountingLoader(_result(2), gate=gate)))
        await asyncio.sleep(0)
        during = cache.view(KEY_B, previous_key=KEY_A)

        gate.set()
        page_two = await pending
        after = cache.view(KEY_B, previous_key=KEY_A)
        return page_one, page_two, during, after

    page_one, page_two, during, after = asyncio.run(scenario())
    assert during.data is page_one
    assert during.is_placeholder is True
    assert during.is_fetching is True
    assert after.data is page_two
    assert after.is_placeholder is False
    assert after.is_fetching is False


def test_evict_stale_drops_only_expired_unreferenced_entries():
    async def scenario():
        clock = FakeClock()
        cache = FetchCache(staleness_seconds=600, clock=clock)
        await cache.fetch(KEY_A, CountingLoader(_result(1)))
        await cache.fetch(KEY_B, CountingLoader(_result(2)))
        clock.now += 700
        await cache.fetch(KEY_SHIPPED, CountingLoader(_result(1, total=12)))
        return cache, cache.evict_stale(live_keys=[KEY_A])

    cache, evicted = asyncio.run(scenario())
    assert evicted == [KEY_B]
    assert KEY_A in cache
    assert KEY_SHIPPED in cache
    assert len(cache) == 2


def test_clear_drops_entries_and_ignores_late_results():
    async def scenario():
        cache = FetchCache()
        await cache.fetch(KEY_A, CountingLoader(_result(1)))
        gate = asyncio.Event()
        pending = asyncio.ensure_future(cache.fetch(KEY_B, CountingLoader(_result(2), gate=gate)))
        await asyncio.sleep(0)

        cache.clear()
        gate.set()
        await pending
        return cache

    cache = asyncio.run(scenario())
    assert len(cache) == 0


def test_staleness_window_must_be_positive():
    with pytest.raises(ValueError):
        FetchCache(staleness_seconds=0)


def test_cancelled_fetch_from_before_clear_leaves_new_pending_entry():
    async def scenario():
        cache = FetchCache()
        old_gate = asyncio.Event()
        old_caller = asyncio.ensure_future(cache.fetch(KEY_A, CountingLoader(_result(1), gate=old_gate)))
        await asyncio.sleep(0)
        old_task = cache.inflight(KEY_A)

        cache.clear()
        new_gate = asyncio.Event()
        new_caller = asyncio.ensure_future(cache.fetch(KEY_A, CountingLoader(_result(1, total=46), gate=new_gate)))
        await asyncio.sleep(0)

        old_task.cancel()
        await asyncio.gather(old_caller, return_exceptions=True)
        await asyncio.sleep(0)
        during = cache.get(KEY_A)

        new_gate.set()
        result = await new_caller
        return old_task, during, result, cache.get(KEY_A)

    old_task, during, result, after = asyncio.run(scenario())
    assert old_task.cancelled()
    assert during is not None
    assert during.status is CacheStatus.PENDING
    assert result.total_count == 46
    assert after.status is CacheStatus.READY
