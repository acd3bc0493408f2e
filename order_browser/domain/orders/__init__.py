from order_browser.domain.orders.display import DisplayRow, to_display_row
from order_browser.domain.orders.models import (
    FulfilmentStatus,
    Order,
    OrderItem,
    PageFilter,
    PageRequest,
    PageResult,
    total_pages_for,
)
from order_browser.domain.orders.query_service import OrderQueryService, validate_page_request
from order_browser.domain.orders.store import OrderStore

__all__ = [
    "DisplayRow",
    "FulfilmentStatus",
    "Order",
    "OrderItem",
    "OrderQueryService",
    "OrderStore",
    "PageFilter",
    "PageRequest",
    "PageResult",
    "to_display_row",
    "total_pages_for",
    "validate_page_request",
]
