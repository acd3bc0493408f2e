from __future__ import annotations

from dataclasses import dataclass

from order_browser.domain.orders.models import FulfilmentStatus, Order

STATUS_TONES = {
    FulfilmentStatus.FULFILLED: "green",
    FulfilmentStatus.SHIPPED: "purple",
    FulfilmentStatus.PENDING: "blue",
}
FALLBACK_TONE = "red"


@dataclass(frozen=True)
class DisplayRow:
    order_id: str
    date: str
    customer: str
    address: str
    status_label: str
    status_tone: str
    item_names: tuple[str, ...]


def to_display_row(order: Order) -> DisplayRow:
    return DisplayRow(
        order_id=order.id,
        date=order.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        customer=order.customer,
        address=order.address,
        status_label=order.status.value.lower(),
        status_tone=STATUS_TONES.get(order.status, FALLBACK_TONE),
        item_names=tuple(item.name for item in order.items),
    )
