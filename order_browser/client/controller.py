from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Literal, Union

from order_browser.client.cache import FetchCache, RequestKey
from order_browser.client.debounce import Debouncer
from order_browser.client.transport import OrdersTransport
from order_browser.core.config import Settings, get_settings
from order_browser.core.errors import OrderBrowserError, StaleResponseDiscarded, ValidationError
from order_browser.domain.orders import DisplayRow, FulfilmentStatus, Order, PageResult, to_display_row

logger = logging.getLogger(__name__)

ALL = "All"
StatusFilter = Union[FulfilmentStatus, Literal["All"]]


@dataclass(frozen=True)
class ControllerState:
    page_index: int = 0
    page_size: int = 20
    status_filter: StatusFilter = ALL

    def request_key(self) -> RequestKey:
        status = None if self.status_filter == ALL else self.status_filter
        return RequestKey(status=status, page=self.page_index + 1, page_size=self.page_size)


@dataclass(frozen=True)
class IssuedRequest:
    seq: int
    key: RequestKey


@dataclass(frozen=True)
class TableView:
    rows: tuple[Order, ...]
    is_loading: bool
    is_fetching: bool
    is_error: bool
    error: str | None
    page_index: int
    page_count: int
    page_size: int
    status_filter: StatusFilter
    total_orders: int
    can_previous_page: bool
    can_next_page: bool
    is_placeholder_data: bool

    @property
    def display_rows(self) -> list[DisplayRow]:
        return [to_display_row(order) for order in self.rows]


def parse_status_filter(value: StatusFilter | str | None) -> StatusFilter:
    if value is None or value == ALL:
        return ALL
    if isinstance(value, FulfilmentStatus):
        return value
    try:
        return FulfilmentStatus(str(value).upper())
    except ValueError as exc:
        raise ValidationError(f"unknown status filter: {value!r}") from exc


def parse_page_number(value: int | str | None) -> int:
    """Turns typed one-based page input into a zero-based index (blank -> 0)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    try:
        page = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"page must be a number, got {value!r}") from exc
    return max(page - 1, 0)


class TablePaginationController:
    """Owns the order table's paging state and keeps it in step with fetches.

    Every state change goes through ``_transition``. Each transition issues a
    request tagged with a new sequence number; a response is applied only if
    its sequence number and key still match the latest issued request, so late
    responses for superseded state are dropped.

    Must be driven from inside a running event loop.
    """

    def __init__(
        self,
        transport: OrdersTransport,
        cache: FetchCache | None = None,
        settings: Settings | None = None,
        page_size: int | None = None,
        debounce_seconds: float | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        self.cache = cache if cache is not None else FetchCache(staleness_seconds=self.settings.cache_staleness_seconds)
        self.page_size_options = tuple(self.settings.page_size_options)

        size = self.settings.default_page_size if page_size is None else page_size
        self._check_page_size(size)
        self._state = ControllerState(page_size=size)

        self._seq = 0
        self._issued: IssuedRequest | None = None
        self._in_flight = False
        self._settled: IssuedRequest | None = None
        self._error: str | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[Callable[[TableView], None]] = []

        delay = self.settings.jump_debounce_seconds if debounce_seconds is None else debounce_seconds
        self._jump_debouncer: Debouncer[int] = Debouncer(delay, self._apply_jump)

    # ---- read model -------------------------------------------------

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def latest_request(self) -> IssuedRequest | None:
        return self._issued

    @property
    def is_fetching(self) -> bool:
        return self._in_flight or self.cache.is_fetching(self._state.request_key())

    def _current_data(self):
        previous_key = self._settled.key if self._settled else None
        return self.cache.view(self._state.request_key(), previous_key=previous_key)

    @property
    def page_count(self) -> int:
        data = self._current_data().data
        return data.total_pages if data is not None else 0

    @property
    def can_previous_page(self) -> bool:
        return not self.is_fetching and self._state.page_index > 0

    @property
    def can_next_page(self) -> bool:
        return not self.is_fetching and self._state.page_index + 1 < self.page_count

    def view(self) -> TableView:
        current = self._current_data()
        data: PageResult | None = current.data
        fetching = self.is_fetching
        page_count = data.total_pages if data is not None else 0
        return TableView(
            rows=data.orders if data is not None else (),
            is_loading=fetching and data is None,
            is_fetching=fetching,
            is_error=self._error is not None,
            error=self._error,
            page_index=self._state.page_index,
            page_count=page_count,
            page_size=self._state.page_size,
            status_filter=self._state.status_filter,
            total_orders=data.total_count if data is not None else 0,
            can_previous_page=not fetching and self._state.page_index > 0,
            can_next_page=not fetching and self._state.page_index + 1 < page_count,
            is_placeholder_data=current.is_placeholder,
        )

    def subscribe(self, listener: Callable[[TableView], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.view()
        for listener in list(self._listeners):
            listener(snapshot)

    # ---- intents ----------------------------------------------------

    def start(self) -> IssuedRequest:
        return self._issue()

    def set_status_filter(self, value: StatusFilter | str | None) -> bool:
        status_filter = parse_status_filter(value)
        if status_filter == self._state.status_filter:
            return False
        # A queued jump refers to pages of the old filter.
        self._jump_debouncer.cancel()
        return self._transition(replace(self._state, status_filter=status_filter, page_index=0), "filter")

    def set_page_size(self, page_size: int) -> bool:
        self._check_page_size(page_size)
        if page_size == self._state.page_size:
            return False
        self._jump_debouncer.cancel()
        first_row = self._state.page_index * self._state.page_size
        page_index = max(first_row // page_size, 0)
        return self._transition(replace(self._state, page_size=page_size, page_index=page_index), "page_size")

    def next_page(self) -> bool:
        if not self.can_next_page:
            return False
        return self._transition(replace(self._state, page_index=self._state.page_index + 1), "next")

    def previous_page(self) -> bool:
        if not self.can_previous_page:
            return False
        return self._transition(replace(self._state, page_index=self._state.page_index - 1), "previous")

    def jump_to_page(self, value: int | str | None) -> None:
        self._jump_debouncer.push(parse_page_number(value))

    def flush_jump(self) -> bool:
        return self._jump_debouncer.flush()

    @property
    def jump_pending(self) -> bool:
        return self._jump_debouncer.pending

    def retry(self) -> IssuedRequest:
        return self._issue(force=True)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._jump_debouncer.cancel()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
        self._in_flight = False
        self._listeners.clear()

    # ---- transitions ------------------------------------------------

    def _check_page_size(self, page_size: int) -> None:
        if page_size not in self.page_size_options:
            raise ValidationError(f"page size must be one of {list(self.page_size_options)}, got {page_size!r}")

    def _apply_jump(self, page_index: int) -> None:
        page_count = self.page_count
        if page_count > 0:
            page_index = min(page_index, page_count - 1)
        page_index = max(page_index, 0)
        self._transition(replace(self._state, page_index=page_index), "jump")

    def _transition(self, new_state: ControllerState, reason: str) -> bool:
        if new_state == self._state:
            return False
        logger.debug("transition %s: %s -> %s", reason, self._state, new_state)
        self._state = new_state
        self._issue()
        return True

    def _issue(self, force: bool = False) -> IssuedRequest:
        self._seq += 1
        issued = IssuedRequest(seq=self._seq, key=self._state.request_key())
        self._issued = issued
        self._in_flight = True
        self._error = None

        task = asyncio.get_running_loop().create_task(self._load(issued, force))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._notify()
        return issued

    async def _load(self, issued: IssuedRequest, force: bool) -> None:
        key = issued.key
        try:
            result = await self.cache.fetch(key, lambda: self.transport.get_orders(key.to_page_request()), force=force)
            self._reconcile(issued, result)
            # Stale data was served; follow the background refetch to its end.
            refresh = self.cache.inflight(key)
            if refresh is not None and self._issued is issued:
                self._reconcile(issued, await asyncio.shield(refresh))
        except StaleResponseDiscarded as stale:
            logger.debug("%s", stale)
        except Exception as exc:
            if not isinstance(exc, OrderBrowserError):
                logger.exception("unexpected error loading orders for %s", key)
            try:
                self._settle_error(issued, exc)
            except StaleResponseDiscarded as stale:
                logger.debug("%s (error: %s)", stale, exc)

    def _fence(self, issued: IssuedRequest, result: PageResult | None = None) -> None:
        latest = self._issued
        if latest is None or issued.seq != latest.seq or issued.key != self._state.request_key():
            raise StaleResponseDiscarded(issued.seq, latest.seq if latest else 0)
        if result is not None and result.current_page != self._state.page_index + 1:
            raise StaleResponseDiscarded(issued.seq, latest.seq)

    def _settle_error(self, issued: IssuedRequest, exc: Exception) -> None:
        self._fence(issued)
        self._in_flight = False
        self._error = str(exc)
        logger.warning("orders fetch failed for %s: %s", issued.key, exc)
        self._notify()

    def _reconcile(self, issued: IssuedRequest, result: PageResult) -> None:
        self._fence(issued, result)
        self._in_flight = False
        self._settled = issued

        page_index = self._state.page_index
        if result.total_pages == 0 and page_index != 0:
            self._transition(replace(self._state, page_index=0), "clamp")
            return
        if result.total_pages > 0 and page_index >= result.total_pages:
            self._transition(replace(self._state, page_index=result.total_pages - 1), "clamp")
            return

        self.cache.evict_stale(live_keys=[issued.key])
        self._notify()
