from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from order_browser.core.errors import ValidationError
from order_browser.domain.orders.models import PageRequest, PageResult, total_pages_for
from order_browser.domain.orders.store import OrderStore

logger = logging.getLogger(__name__)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_page_request(request: PageRequest, max_limit: int | None = None) -> None:
    if not _is_count(request.page) or request.page < 1:
        raise ValidationError(f"page must be an integer >= 1, got {request.page!r}")
    if not _is_count(request.limit) or request.limit < 1:
        raise ValidationError(f"limit must be an integer >= 1, got {request.limit!r}")
    if max_limit is not None and request.limit > max_limit:
        raise ValidationError(f"limit must be <= {max_limit}, got {request.limit}")


class OrderQueryService:
    """Serves one page of orders plus the counts needed to paginate.

    The list and count reads are independent and not wrapped in a shared
    transaction, so a concurrent insert may leave ``total_pages`` one off from
    what the returned page implies. Callers re-query rather than trust it as an
    exact bound.
    """

    def __init__(self, store: OrderStore, max_limit: int | None = None):
        self.store = store
        self.max_limit = max_limit

    @classmethod
    def for_session(cls, session: Session, max_limit: int | None = None) -> OrderQueryService:
        return cls(OrderStore(session), max_limit=max_limit)

    def get_orders(self, request: PageRequest) -> PageResult:
        validate_page_request(request, self.max_limit)

        orders = self.store.list_orders(request.filter, skip=request.skip, take=request.take)
        total_count = self.store.count_orders(request.filter)
        total_pages = total_pages_for(total_count, request.limit)

        logger.debug(
            "get_orders page=%s limit=%s status=%s -> rows=%s total=%s pages=%s",
            request.page,
            request.limit,
            request.filter.status,
            len(orders),
            total_count,
            total_pages,
        )
        return PageResult(
            orders=tuple(orders),
            total_count=total_count,
            current_page=request.page,
            total_pages=total_pages,
            limit=request.limit,
        )
