"""
Shared fixtures: a file-backed SQLite database per test, a session factory
for the plan-run worker threads, and seed helpers for planning inputs.
"""
import os
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENABLE_REQUEST_LOGGING", "false")

from replenish.database import Base, get_db, get_session_factory  # noqa: E402
from replenish.main import app  # noqa: E402
from replenish.models import (  # noqa: E402
    DemandForecast,
    InventorySnapshot,
    ItemPolicy,
    Plan,
    ScheduledReceipt,
)
from replenish.utils.events import configure_event_bus  # noqa: E402

# A Monday, so weekly buckets start exactly on it.
AS_OF = date(2026, 1, 5)


def week(index: int) -> date:
    return AS_OF + timedelta(weeks=index)


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'replenish_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def event_bus():
    return configure_event_bus()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


def seed_pair(
    db,
    product_id: str,
    location: str,
    on_hand,
    demand=None,
    allocated=0,
    receipts=None,
):
    """Inventory snapshot, weekly forecast from AS_OF and open scheduled receipts."""
    db.add(InventorySnapshot(
        product_id=product_id,
        location=location,
        on_hand_qty=Decimal(str(on_hand)),
        allocated_qty=Decimal(str(allocated)),
        snapshot_date=AS_OF,
    ))
    for i, qty in enumerate(demand or []):
        db.add(DemandForecast(
            product_id=product_id,
            location=location,
            period_start=week(i),
            quantity=Decimal(str(qty)),
            source="test",
        ))
    for i, qty in (receipts or {}).items():
        db.add(ScheduledReceipt(
            product_id=product_id,
            location=location,
            due_date=week(i),
            quantity=Decimal(str(qty)),
            status="open",
        ))
    db.commit()


def seed_policy(db, product_id: str, location: str, **fields) -> ItemPolicy:
    values = {
        "safety_stock_method": "fixed",
        "safety_stock_value": Decimal("0"),
        "service_level": Decimal("0.95"),
        "lot_sizing_rule": "lot_for_lot",
        "min_order_qty": Decimal("0"),
        "order_multiple": Decimal("1"),
        "lead_time_days": 0,
        "unit_cost": Decimal("0"),
    }
    values.update(fields)
    policy = ItemPolicy(product_id=product_id, location=location, **values)
    db.add(policy)
    db.commit()
    db.refresh(policy)
    return policy


def seed_plan(db, horizon_buckets: int = 4, granularity: str = "week", status: str = "draft", **fields) -> Plan:
    plan = Plan(
        code=fields.pop("code", f"MRP-TEST-{horizon_buckets}-{granularity}"),
        name=fields.pop("name", "Weekly replenishment"),
        plan_type=fields.pop("plan_type", "MRP"),
        horizon_buckets=horizon_buckets,
        bucket_granularity=granularity,
        status=status,
        **fields,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


@pytest.fixture
def standard_pair(db):
    """
    P-100@DC-1: 100 on hand, 30 per week, safety stock 20, one-week lead time.

    Trajectory: 70, 40, 10 (below SS, order 10), -10 (stockout, order 30);
    bucket 0 at 70 is above 3 x SS and raises excess.
    """
    seed_pair(db, "P-100", "DC-1", on_hand=100, demand=[30, 30, 30, 30])
    return seed_policy(
        db, "P-100", "DC-1",
        safety_stock_value=Decimal("20"),
        lead_time_days=7,
        unit_cost=Decimal("5"),
        supplier_id="SUP-1",
        supplier_name="Acme Supply",
    )
