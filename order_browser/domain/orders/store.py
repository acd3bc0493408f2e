from __future__ import annotations

import logging

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from order_browser.core.errors import StoreError
from order_browser.domain.orders.models import Order, OrderItem, PageFilter
from order_browser.persistence.models import OrderModel

logger = logging.getLogger(__name__)


def _to_order(row: OrderModel, with_items: bool) -> Order:
    items: tuple[OrderItem, ...] = ()
    if with_items:
        items = tuple(OrderItem(id=item.id, name=item.name, order_id=item.order_id) for item in row.items)
    return Order(
        id=row.id,
        customer=row.customer,
        address=row.address,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        items=items,
    )


class OrderStore:
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _apply_filter(stmt: Select, page_filter: PageFilter) -> Select:
        if page_filter.status is not None:
            stmt = stmt.where(OrderModel.status == page_filter.status.value)
        return stmt

    def list_orders(self, page_filter: PageFilter, skip: int, take: int, with_items: bool = True) -> list[Order]:
        # Newest first; id breaks createdAt ties so page boundaries are deterministic.
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        stmt = self._apply_filter(stmt, page_filter).offset(skip).limit(take)
        if with_items:
            stmt = stmt.options(selectinload(OrderModel.items))
        try:
            rows = list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.warning("list_orders failed: filter=%s skip=%s take=%s: %s", page_filter, skip, take, exc)
            raise StoreError(f"failed to list orders: {exc}") from exc
        return [_to_order(row, with_items) for row in rows]

    def count_orders(self, page_filter: PageFilter) -> int:
        stmt = self._apply_filter(select(func.count()).select_from(OrderModel), page_filter)
        try:
            return int(self.session.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            logger.warning("count_orders failed: filter=%s: %s", page_filter, exc)
            raise StoreError(f"failed to count orders: {exc}") from exc

