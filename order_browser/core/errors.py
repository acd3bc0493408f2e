from __future__ import annotations


class OrderBrowserError(Exception):
    pass


class ValidationError(OrderBrowserError, ValueError):
    """Malformed page request; raised before any store access."""


class StoreError(OrderBrowserError, RuntimeError):
    """The order store (or the transport in front of it) failed."""


class StaleResponseDiscarded(OrderBrowserError):
    """A response arrived for a request that has since been superseded."""

    def __init__(self, seq: int, expected_seq: int):
        super().__init__(f"discarded response seq={seq}, expected seq={expected_seq}")
        self.seq = seq
        self.expected_seq = expected_seq
