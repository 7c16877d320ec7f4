from decimal import Decimal

import pytest
from fastapi import HTTPException

from conftest import seed_policy
from replenish.config import settings
from replenish.mrp.types import LotSizingRule, SafetyStockMethod
from replenish.services.policy_store import PolicyStore, default_snapshot


def test_pairs_without_a_policy_use_configured_defaults(db, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_LEAD_TIME_DAYS", 21)
    snapshots = PolicyStore(db).load([("P-1", "DC-1")])

    snap = snapshots[("P-1", "DC-1")]
    assert snap.is_default is True
    assert snap.lead_time_days == 21
    assert snap.lot_sizing.rule == LotSizingRule.LOT_FOR_LOT


def test_stored_policy_is_snapshotted(db):
    seed_policy(
        db, "P-1", "DC-1",
        safety_stock_method="percentage",
        safety_stock_value=Decimal("50"),
        lot_sizing_rule="fixed_quantity",
        fixed_order_qty=Decimal("120"),
        min_order_qty=Decimal("10"),
        order_multiple=Decimal("12"),
        lead_time_days=9,
        unit_cost=Decimal("3.25"),
        approval_threshold=Decimal("750"),
    )

    snap = PolicyStore(db).load([("P-1", "DC-1")])[("P-1", "DC-1")]

    assert snap.is_default is False
    assert snap.safety_stock.method == SafetyStockMethod.PERCENTAGE
    assert snap.safety_stock.value == Decimal("50")
    assert snap.lot_sizing.rule == LotSizingRule.FIXED_QUANTITY
    assert snap.lot_sizing.fixed_quantity == Decimal("120")
    assert snap.lot_sizing.moq == Decimal("10")
    assert snap.lot_sizing.multiple == Decimal("12")
    assert snap.lead_time_days == 9
    assert snap.unit_cost == Decimal("3.25")
    assert snap.approval_threshold == Decimal("750")


def test_inactive_policy_excludes_the_pair(db):
    seed_policy(db, "P-1", "DC-1", active=False)
    seed_policy(db, "P-2", "DC-1")

    snapshots = PolicyStore(db).load([("P-1", "DC-1"), ("P-2", "DC-1")])
    assert list(snapshots) == [("P-2", "DC-1")]


def test_get_policy_404_unless_default_requested(db):
    store = PolicyStore(db)
    with pytest.raises(HTTPException) as exc:
        store.get_policy("P-404", "DC-1")
    assert exc.value.status_code == 404

    fallback = store.get_policy("P-404", "DC-1", include_default=True)
    assert fallback.is_default is True
    assert fallback.id is None


def test_default_snapshot_matches_settings():
    snap = default_snapshot("P-1", "DC-1")
    assert snap.safety_stock.method.value == settings.DEFAULT_SAFETY_STOCK_METHOD
    assert snap.lead_time_days == settings.DEFAULT_LEAD_TIME_DAYS
