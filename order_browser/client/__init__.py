from order_browser.client.cache import CacheEntry, CacheStatus, CacheView, FetchCache, RequestKey
from order_browser.client.controller import (
    ALL,
    ControllerState,
    IssuedRequest,
    TablePaginationController,
    TableView,
)
from order_browser.client.debounce import Debouncer
from order_browser.client.transport import (
    HTTPOrdersTransport,
    LocalOrdersTransport,
    OrdersTransport,
    build_transport,
)

__all__ = [
    "ALL",
    "CacheEntry",
    "CacheStatus",
    "CacheView",
    "ControllerState",
    "Debouncer",
    "FetchCache",
    "HTTPOrdersTransport",
    "IssuedRequest",
    "LocalOrdersTransport",
    "OrdersTransport",
    "RequestKey",
    "TablePaginationController",
    "TableView",
    "build_transport",
]
