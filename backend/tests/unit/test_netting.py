from datetime import date
from decimal import Decimal

import pytest

from replenish.core.exceptions import PairComputationError
from replenish.mrp.calendar import build_buckets
from replenish.mrp.netting import effective_lot_sizing, explode
from replenish.mrp.types import (
    BucketGranularity,
    LotSizing,
    LotSizingRule,
    PairInputs,
    PolicySnapshot,
    SafetyStockMethod,
    SafetyStockPolicy,
    StockPosition,
)

AS_OF = date(2026, 1, 5)
WEEK = BucketGranularity.WEEK


def D(value) -> Decimal:
    return Decimal(str(value))


def _inputs(on_hand, demand, receipts=None, committed=0, product_id="P-1", location="DC-1"):
    demand = tuple(D(v) for v in demand) if demand is not None else None
    receipts = tuple(D(v) for v in (receipts or [0] * len(demand or [])))
    return PairInputs(
        product_id=product_id,
        location=location,
        stock=StockPosition(on_hand=D(on_hand), committed=D(committed)),
        gross_requirements=demand,
        scheduled_receipts=receipts,
    )


def _policy(safety_stock=0, lead_time_days=0, lot=None, **fields):
    return PolicySnapshot(
        product_id="P-1",
        location="DC-1",
        safety_stock=SafetyStockPolicy(method=SafetyStockMethod.FIXED, value=D(safety_stock)),
        lot_sizing=lot or LotSizing(),
        lead_time_days=lead_time_days,
        **fields,
    )


def _buckets(n=4):
    return build_buckets(WEEK, n, AS_OF)


def test_stockout_is_projected_and_netted():
    rows = explode(_inputs(0, [50, 0, 0, 10]), _policy(), _buckets(), WEEK)

    assert rows[0].projected_available == D("-50.00")
    assert rows[0].net_requirements == D("50.00")
    assert rows[0].planned_order_receipt == D("50.00")
    # the receipt restores bucket 1's starting position
    assert rows[1].beginning_inventory == D("0.00")


def test_below_safety_stock_nets_to_the_target():
    rows = explode(_inputs(20, [5, 0, 0, 0]), _policy(safety_stock=30), _buckets(), WEEK)

    assert rows[0].projected_available == D("15.00")
    assert rows[0].net_requirements == D("15.00")
    assert rows[0].planned_order_receipt == D("15.00")
    assert rows[1].beginning_inventory == D("30.00")


def test_committed_stock_is_not_available():
    rows = explode(_inputs(100, [0, 0, 0, 0], committed=40), _policy(), _buckets(), WEEK)
    assert rows[0].beginning_inventory == D("60.00")


def test_scheduled_receipts_count_as_supply():
    rows = explode(_inputs(0, [40, 0, 0, 0], receipts=[40, 0, 0, 0]), _policy(), _buckets(), WEEK)
    assert rows[0].projected_available == D("0.00")
    assert rows[0].net_requirements == D("0.00")


def test_inventory_is_continuous_between_buckets():
    rows = explode(
        _inputs(100, [30, 30, 30, 30]),
        _policy(safety_stock=20, lead_time_days=7),
        _buckets(),
        WEEK,
    )
    for prev, cur in zip(rows, rows[1:]):
        assert cur.beginning_inventory == prev.projected_available + prev.planned_order_receipt


def test_releases_are_offset_by_the_lead_time():
    rows = explode(
        _inputs(100, [30, 30, 30, 30]),
        _policy(safety_stock=20, lead_time_days=7),
        _buckets(),
        WEEK,
    )

    assert [r.projected_available for r in rows] == [D("70.00"), D("40.00"), D("10.00"), D("-10.00")]
    assert [r.planned_order_receipt for r in rows] == [D(0), D(0), D("10.00"), D("30.00")]
    assert [r.planned_order_release for r in rows] == [D(0), D("10.00"), D("30.00"), D(0)]
    assert all(r.lead_time_offset == 1 for r in rows)
    assert not any(r.boundary_release for r in rows)


def test_release_before_the_horizon_lands_in_the_first_bucket():
    rows = explode(_inputs(0, [10, 0, 0, 0]), _policy(lead_time_days=14), _buckets(), WEEK)

    assert rows[0].planned_order_receipt == D("10.00")
    assert rows[0].planned_order_release == D("10.00")
    assert rows[0].boundary_release is True


def test_total_released_equals_total_received():
    rows = explode(_inputs(0, [10, 20, 30, 40]), _policy(lead_time_days=10), _buckets(), WEEK)
    assert sum(r.planned_order_release for r in rows) == sum(r.planned_order_receipt for r in rows)


def test_safety_stock_and_reorder_point_are_constant_over_the_horizon():
    rows = explode(_inputs(100, [10, 30, 10, 30]), _policy(safety_stock=25, lead_time_days=7), _buckets(), WEEK)
    assert {r.safety_stock for r in rows} == {D("25.00")}
    # 25 + average 20 x one bucket of lead time
    assert {r.reorder_point for r in rows} == {D("45.00")}


def test_net_requirement_is_never_negative():
    rows = explode(_inputs(500, [10, 10, 10, 10]), _policy(safety_stock=5), _buckets(), WEEK)
    assert all(r.net_requirements >= 0 for r in rows)
    assert all(r.planned_order_receipt == 0 for r in rows)


def test_derived_eoq_is_used_when_policy_has_none():
    policy = _policy(
        lot=LotSizing(rule=LotSizingRule.ECONOMIC_ORDER_QUANTITY),
        unit_cost=D(10),
        ordering_cost=D(50),
        carrying_cost_rate=D("0.2"),
    )
    gross = [D(70)] * 4
    lot = effective_lot_sizing(policy, gross, WEEK)
    # 10/day -> 3650 a year; sqrt(2 * 3650 * 50 / 2) = 427.2 -> 428
    assert lot.eoq == D("428.00")


def test_missing_demand_is_a_pair_error():
    with pytest.raises(PairComputationError) as exc:
        explode(_inputs(10, None, receipts=[0, 0, 0, 0]), _policy(), _buckets(), WEEK)
    assert exc.value.reason == "no demand data"


def test_demand_covering_the_wrong_horizon_is_a_pair_error():
    with pytest.raises(PairComputationError):
        explode(_inputs(10, [1, 2, 3]), _policy(), _buckets(), WEEK)


def test_negative_demand_is_a_pair_error():
    with pytest.raises(PairComputationError):
        explode(_inputs(10, [1, -2, 3, 4]), _policy(), _buckets(), WEEK)


def test_negative_on_hand_is_a_pair_error():
    with pytest.raises(PairComputationError):
        explode(_inputs(-5, [1, 2, 3, 4]), _policy(), _buckets(), WEEK)


def test_infeasible_lot_sizing_is_a_pair_error():
    policy = _policy(lot=LotSizing(moq=D(50), max_qty=D(40)))
    with pytest.raises(PairComputationError) as exc:
        explode(_inputs(0, [10, 0, 0, 0]), policy, _buckets(), WEEK)
    assert exc.value.product_id == "P-1"
