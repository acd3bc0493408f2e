from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

import order_browser.persistence.pg as pg
from order_browser.domain.orders import FulfilmentStatus
from order_browser.persistence.models import Base, OrderItemModel, OrderModel

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

# 45 orders, 12 of them shipped.
STATUS_MIX = (
    [FulfilmentStatus.SHIPPED] * 12
    + [FulfilmentStatus.PENDING] * 15
    + [FulfilmentStatus.FULFILLED] * 13
    + [FulfilmentStatus.CANCELLED] * 5
)


def reset_orders(statuses: list[FulfilmentStatus]) -> list[dict]:
    """Replace every order in the test store; returns rows newest first."""
    rows = []
    with pg.session_scope() as session:
        session.execute(delete(OrderItemModel))
        session.execute(delete(OrderModel))
        for index, status in enumerate(statuses):
            # Triples share a timestamp so page boundaries land on ties.
            created_at = BASE_TIME - timedelta(minutes=10 * (index // 3))
            order = OrderModel(
                id=f"order-{index:03d}",
                customer=f"Customer {index}",
                address=f"{index} Test Street",
                status=status.value,
                created_at=created_at,
                updated_at=created_at,
            )
            order.items.append(OrderItemModel(id=f"item-{index:03d}-a", name=f"Widget {index}"))
            session.add(order)
            rows.append({"id": order.id, "created_at": created_at, "status": status})
    return sorted(rows, key=lambda row: (row["created_at"], row["id"]), reverse=True)


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(configure_test_engine):
    from order_browser.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def store_45(configure_test_engine) -> list[dict]:
    statuses = list(STATUS_MIX)
    random.Random(3).shuffle(statuses)
    return reset_orders(statuses)


@pytest.fixture()
def empty_store(configure_test_engine) -> list[dict]:
    return reset_orders([])
