from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Iterable, NamedTuple

from order_browser.domain.orders import FulfilmentStatus, PageFilter, PageRequest, PageResult

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[PageResult]]


class RequestKey(NamedTuple):
    status: FulfilmentStatus | None
    page: int
    page_size: int

    def to_page_request(self) -> PageRequest:
        return PageRequest(page=self.page, limit=self.page_size, filter=PageFilter(status=self.status))


class CacheStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class CacheEntry:
    key: RequestKey
    status: CacheStatus
    data: PageResult | None = None
    fetched_at: float | None = None
    error: str | None = None
    invalidated: bool = False


@dataclass(frozen=True)
class CacheView:
    data: PageResult | None
    status: CacheStatus | None
    is_placeholder: bool
    is_fetching: bool
    error: str | None = None


class FetchCache:
    """Process-local page cache shared by every reader of one table.

    Entries are immutable: every completed fetch stores a new ``CacheEntry``
    for its key, so a reader holding an entry never sees it change. Only this
    class writes to the key map.
    """

    def __init__(self, staleness_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic):
        if staleness_seconds <= 0:
            raise ValueError("staleness_seconds must be > 0")
        self.staleness_seconds = staleness_seconds
        self._clock = clock
        self._entries: dict[RequestKey, CacheEntry] = {}
        self._inflight: dict[RequestKey, asyncio.Task[PageResult]] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: RequestKey) -> CacheEntry | None:
        return self._entries.get(key)

    def inflight(self, key: RequestKey) -> asyncio.Task[PageResult] | None:
        task = self._inflight.get(key)
        return task if task is not None and not task.done() else None

    def is_fetching(self, key: RequestKey) -> bool:
        return self.inflight(key) is not None

    def is_fresh(self, entry: CacheEntry) -> bool:
        if entry.status is not CacheStatus.READY or entry.fetched_at is None or entry.invalidated:
            return False
        return self._clock() - entry.fetched_at <= self.staleness_seconds

    async def fetch(self, key: RequestKey, loader: Loader, force: bool = False) -> PageResult:
        entry = self._entries.get(key)
        if not force and entry is not None and entry.status is CacheStatus.READY and entry.data is not None:
            if self.is_fresh(entry):
                logger.debug("cache hit key=%s", key)
                return entry.data
            logger.debug("cache stale key=%s, serving stale data while refetching", key)
            self._start(key, loader)
            return entry.data

        logger.debug("cache miss key=%s force=%s", key, force)
        task = self._start(key, loader)
        # Shielded so one caller giving up does not cancel the shared fetch.
        return await asyncio.shield(task)

    def _start(self, key: RequestKey, loader: Loader) -> asyncio.Task[PageResult]:
        task = self._inflight.get(key)
        if task is not None and not task.done():
            return task
        if key not in self._entries:
            self._entries[key] = CacheEntry(key=key, status=CacheStatus.PENDING)
        task = asyncio.ensure_future(self._run(key, loader, self._generation))
        self._inflight[key] = task
        task.add_done_callback(lambda done, k=key: self._on_done(k, done))
        return task

    async def _run(self, key: RequestKey, loader: Loader, generation: int) -> PageResult:
        try:
            data = await loader()
        except Exception as exc:
            if generation == self._generation:
                previous = self._entries.get(key)
                self._entries[key] = CacheEntry(
                    key=key,
                    status=CacheStatus.ERROR,
                    data=previous.data if previous else None,
                    fetched_at=previous.fetched_at if previous else None,
                    error=str(exc),
                )
            raise
        if generation == self._generation:
            self._entries[key] = CacheEntry(key=key, status=CacheStatus.READY, data=data, fetched_at=self._clock())
        return data

    def _on_done(self, key: RequestKey, task: asyncio.Task[PageResult]) -> None:
        # After clear() or a newer fetch, the key belongs to another task.
        owner = self._inflight.get(key) is task
        if owner:
            del self._inflight[key]
        if task.cancelled():
            entry = self._entries.get(key)
            if owner and entry is not None and entry.status is CacheStatus.PENDING:
                del self._entries[key]
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("fetch failed key=%s: %s", key, exc)

    def view(self, key: RequestKey, previous_key: RequestKey | None = None) -> CacheView:
        entry = self._entries.get(key)
        fetching = self.is_fetching(key)
        if entry is not None and entry.status is CacheStatus.ERROR:
            return CacheView(data=entry.data, status=entry.status, is_placeholder=False, is_fetching=fetching, error=entry.error)
        if entry is not None and entry.data is not None:
            return CacheView(data=entry.data, status=entry.status, is_placeholder=False, is_fetching=fetching)

        if previous_key is not None and previous_key != key:
            previous = self._entries.get(previous_key)
            if previous is not None and previous.data is not None:
                return CacheView(data=previous.data, status=entry.status if entry else None, is_placeholder=True, is_fetching=fetching)

        return CacheView(data=None, status=entry.status if entry else None, is_placeholder=False, is_fetching=fetching)

    def invalidate(self, key: RequestKey) -> None:
        entry = self._entries.get(key)
        if entry is not None and not entry.invalidated:
            self._entries[key] = replace(entry, invalidated=True)

    def evict_stale(self, live_keys: Iterable[RequestKey] = ()) -> list[RequestKey]:
        live = set(live_keys)
        now = self._clock()
        evicted: list[RequestKey] = []
        for key, entry in list(self._entries.items()):
            if key in live or self.is_fetching(key) or entry.status is CacheStatus.PENDING:
                continue
            if entry.fetched_at is not None and now - entry.fetched_at <= self.staleness_seconds:
                continue
            del self._entries[key]
            evicted.append(key)
        if evicted:
            logger.debug("evicted %s stale cache entries", len(evicted))
        return evicted

    def clear(self) -> None:
        # In-flight fetches from before the clear finish but are not stored.
        self._generation += 1
        self._entries.clear()
        self._inflight.clear()

    async def wait_idle(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)
