from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from order_browser.core.config import get_settings
from order_browser.domain.orders.models import FulfilmentStatus
from order_browser.persistence.models import OrderItemModel, OrderModel

logger = logging.getLogger(__name__)

DEMO_BASE_TIME = datetime(2026, 1, 31, 18, 0, tzinfo=timezone.utc)

_FIRST_NAMES = ["Ada", "Grace", "Linus", "Margaret", "Ken", "Barbara", "Dennis", "Frances", "Alan", "Radia"]
_LAST_NAMES = ["Lovelace", "Hopper", "Torvalds", "Hamilton", "Thompson", "Liskov", "Ritchie", "Allen", "Kay", "Perlman"]
_STREETS = ["Market St", "Station Rd", "Harbour Way", "Mill Lane", "King St", "Orchard Ave"]
_CITIES = ["Leeds", "Bristol", "Glasgow", "Cardiff", "York", "Norwich"]
_PRODUCTS = [
    "Espresso beans 1kg",
    "Ceramic mug",
    "Pour-over kettle",
    "Paper filters (100)",
    "Hand grinder",
    "Milk frother",
    "Tea sampler",
    "Cold brew jar",
]
_STATUS_WEIGHTS = [
    (FulfilmentStatus.PENDING, 4),
    (FulfilmentStatus.SHIPPED, 3),
    (FulfilmentStatus.FULFILLED, 4),
    (FulfilmentStatus.CANCELLED, 1),
]


def _uuid(rng: random.Random) -> str:
    return str(UUID(int=rng.getrandbits(128), version=4))


def _order_count(session: Session) -> int:
    return int(session.scalar(select(func.count()).select_from(OrderModel)) or 0)


def seed_demo_orders(
    session: Session,
    count: int | None = None,
    rng_seed: int | None = None,
    force: bool = False,
) -> dict[str, Any]:
    settings = get_settings()
    count = settings.demo_order_count if count is None else count
    rng = random.Random(settings.demo_rng_seed if rng_seed is None else rng_seed)

    existing = _order_count(session)
    if existing and not force:
        logger.info("demo orders already present: count=%s", existing)
        return {"seeded_now": False, "order_count": existing, "by_status": _status_breakdown(session)}

    if force:
        session.execute(delete(OrderItemModel))
        session.execute(delete(OrderModel))

    statuses = [status for status, _ in _STATUS_WEIGHTS]
    weights = [weight for _, weight in _STATUS_WEIGHTS]
    for index in range(count):
        # Pairs of orders share a timestamp so paging has ties to break.
        created_at = DEMO_BASE_TIME - timedelta(minutes=30 * (index // 2))
        status = rng.choices(statuses, weights=weights, k=1)[0]
        order = OrderModel(
            id=_uuid(rng),
            customer=f"{rng.choice(_FIRST_NAMES)} {rng.choice(_LAST_NAMES)}",
            address=f"{rng.randint(1, 240)} {rng.choice(_STREETS)}, {rng.choice(_CITIES)}",
            status=status.value,
            created_at=created_at,
            updated_at=created_at + timedelta(hours=rng.randint(0, 72)),
        )
        for _ in range(rng.randint(1, 4)):
            order.items.append(OrderItemModel(id=_uuid(rng), name=rng.choice(_PRODUCTS)))
        session.add(order)
    session.flush()

    logger.info("seeded demo orders: count=%s force=%s", count, force)
    return {"seeded_now": True, "order_count": count, "by_status": _status_breakdown(session)}


def _status_breakdown(session: Session) -> dict[str, int]:
    rows = session.execute(select(OrderModel.status, func.count()).group_by(OrderModel.status)).all()
    return {str(status): int(total) for status, total in sorted(rows)}
