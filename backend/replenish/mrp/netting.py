"""
Netting Engine

Explodes one (product, location) pair over the plan horizon: projects
available inventory bucket by bucket, nets it against safety stock, sizes the
planned receipts and offsets them backward by the lead time.
"""
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional, Sequence

from replenish.core.exceptions import PairComputationError
from replenish.mrp.calendar import lead_time_buckets
from replenish.mrp.lot_sizing import economic_order_quantity, resolve, validate_lot_sizing
from replenish.mrp.safety_stock import compute_reorder_point, compute_safety_stock, demand_statistics
from replenish.mrp.types import (
    Bucket,
    BucketGranularity,
    BucketRow,
    LotSizing,
    LotSizingRule,
    PairInputs,
    PolicySnapshot,
    ZERO,
    q2,
)

DAYS_PER_YEAR = Decimal("365")


def _check_series(inputs: PairInputs, name: str, values: Optional[Sequence[Decimal]], horizon: int) -> None:
    if values is None:
        raise PairComputationError(inputs.product_id, inputs.location, f"no {name} data")
    if len(values) != horizon:
        raise PairComputationError(
            inputs.product_id,
            inputs.location,
            f"{name} covers {len(values)} buckets, horizon has {horizon}",
        )
    for i, v in enumerate(values):
        if not v.is_finite() or v < 0:
            raise PairComputationError(inputs.product_id, inputs.location, f"invalid {name} {v} in bucket {i}")


def validate_inputs(inputs: PairInputs, buckets: Sequence[Bucket]) -> None:
    if not buckets:
        raise PairComputationError(inputs.product_id, inputs.location, "empty horizon")
    _check_series(inputs, "demand", inputs.gross_requirements, len(buckets))
    _check_series(inputs, "scheduled receipt", inputs.scheduled_receipts, len(buckets))
    for label, v in (("on-hand", inputs.stock.on_hand), ("committed", inputs.stock.committed)):
        if not v.is_finite() or v < 0:
            raise PairComputationError(inputs.product_id, inputs.location, f"invalid {label} quantity {v}")


def effective_lot_sizing(
    policy: PolicySnapshot,
    gross_requirements: Sequence[Decimal],
    granularity: BucketGranularity,
) -> LotSizing:
    """Fill in a derived EOQ when the policy does not carry one."""
    lot = policy.lot_sizing
    if lot.rule != LotSizingRule.ECONOMIC_ORDER_QUANTITY or (lot.eoq and lot.eoq > 0):
        return lot

    horizon_days = Decimal(len(gross_requirements) * granularity.days)
    if horizon_days <= 0:
        return lot
    annual_demand = sum(gross_requirements, ZERO) / horizon_days * DAYS_PER_YEAR
    holding_cost = policy.unit_cost * policy.carrying_cost_rate
    eoq = economic_order_quantity(annual_demand, policy.ordering_cost, holding_cost)
    return replace(lot, eoq=eoq) if eoq > 0 else lot


def explode(
    inputs: PairInputs,
    policy: PolicySnapshot,
    buckets: Sequence[Bucket],
    granularity: BucketGranularity,
) -> List[BucketRow]:
    """Compute the trajectory of one pair. Pure: no I/O, no shared state."""
    validate_inputs(inputs, buckets)

    gross = [q2(v) for v in inputs.gross_requirements]
    sched = [q2(v) for v in inputs.scheduled_receipts]

    lot = effective_lot_sizing(policy, gross, granularity)
    try:
        validate_lot_sizing(lot)
    except ValueError as exc:
        raise PairComputationError(inputs.product_id, inputs.location, str(exc)) from exc

    lt = lead_time_buckets(policy.lead_time_days, granularity)
    avg_demand, std_dev = demand_statistics(gross)
    try:
        safety_stock = compute_safety_stock(policy.safety_stock, avg_demand, std_dev, lt)
    except ValueError as exc:
        raise PairComputationError(inputs.product_id, inputs.location, str(exc)) from exc
    reorder_point = compute_reorder_point(safety_stock, avg_demand, lt)

    rows: List[BucketRow] = []
    beginning = q2(inputs.stock.available)

    for bucket in buckets:
        i = bucket.index
        projected = q2(beginning + sched[i] - gross[i])
        net = q2(max(ZERO, safety_stock - projected))
        receipt = resolve(net, lot, projected, gross[i + 1:]) if net > 0 else ZERO

        rows.append(
            BucketRow(
                product_id=inputs.product_id,
                location=inputs.location,
                bucket_index=i,
                bucket_start=bucket.start,
                bucket_end=bucket.end,
                beginning_inventory=beginning,
                gross_requirements=gross[i],
                scheduled_receipts=sched[i],
                projected_available=projected,
                net_requirements=net,
                planned_order_receipt=receipt,
                planned_order_release=ZERO,
                safety_stock=safety_stock,
                reorder_point=reorder_point,
                lead_time_offset=lt,
            )
        )

        if receipt > 0:
            release_index = i - lt
            if release_index < 0:
                release_index = 0
                rows[0].boundary_release = True
            rows[release_index].planned_order_release += receipt

        beginning = q2(projected + receipt)

    return rows
