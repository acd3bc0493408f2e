from __future__ import annotations

import asyncio
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Collapses a burst of values into one callback with the last value.

    State is explicit: ``pending_value`` plus the timer handle. A new value
    cancels the running timer and starts a fresh one, so only the final value
    of a burst is ever delivered.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[T], None]):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = delay_seconds
        self._callback = callback
        self._pending_value: T | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def pending_value(self) -> T | None:
        return self._pending_value

    def push(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        self.cancel()
        self._pending_value = value
        self._handle = loop.call_later(self.delay_seconds, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending_value = None

    def flush(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        value = self._pending_value
        self._handle = None
        self._pending_value = None
        self._callback(value)
