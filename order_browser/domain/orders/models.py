from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class FulfilmentStatus(str, Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    FULFILLED = "FULFILLED"
    CANCELLED = "CANCELLED"


class _ReadModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class OrderItem(_ReadModel):
    id: str
    name: str
    order_id: str


class Order(_ReadModel):
    id: str
    customer: str
    address: str
    status: FulfilmentStatus
    created_at: datetime
    updated_at: datetime
    items: tuple[OrderItem, ...] = ()

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything stored is UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        for key in ("createdAt", "updatedAt"):
            payload[key] = payload[key].replace("+00:00", "Z")
        return payload


@dataclass(frozen=True)
class PageFilter:
    status: FulfilmentStatus | None = None


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 50
    filter: PageFilter = field(default_factory=PageFilter)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def take(self) -> int:
        return self.limit


def total_pages_for(total_count: int, limit: int) -> int:
    if total_count <= 0:
        return 0
    return (total_count + limit - 1) // limit


@dataclass(frozen=True)
class PageResult:
    orders: tuple[Order, ...]
    total_count: int
    current_page: int
    total_pages: int
    limit: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "orders": [order.to_payload() for order in self.orders],
            "totalOrders": self.total_count,
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any], limit: int) -> PageResult:
        return cls(
            orders=tuple(Order.model_validate(item) for item in payload.get("orders", [])),
            total_count=int(payload["totalOrders"]),
            current_page=int(payload["currentPage"]),
            total_pages=int(payload["totalPages"]),
            limit=limit,
        )
