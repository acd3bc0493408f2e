from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from order_browser.core.config import get_settings
from order_browser.demo import seed_demo_orders
from order_browser.domain.orders import FulfilmentStatus, OrderQueryService, PageFilter, PageRequest
from order_browser.persistence.pg import get_session

router = APIRouter(tags=["orders"])


@router.get("/orders")
def get_orders(
    limit: int | None = Query(default=None, ge=1, description="Page size (default 50)"),
    page: int = Query(default=1, ge=1, description="One-based page number"),
    status: FulfilmentStatus | None = Query(default=None),
    session: Session = Depends(get_session),
):
    settings = get_settings()
    request = PageRequest(
        page=page,
        limit=limit if limit is not None else settings.default_page_limit,
        filter=PageFilter(status=status),
    )
    service = OrderQueryService.for_session(session, max_limit=settings.max_page_limit)
    return service.get_orders(request).to_payload()


@router.post("/demo/seed")
def demo_seed(
    count: int | None = Query(default=None, ge=0, le=10_000),
    force: bool = Query(default=False),
    session: Session = Depends(get_session),
):
    return seed_demo_orders(session, count=count, force=force)
