"""
Lot-Sizing Resolver

One resolver function dispatches over the closed set of lot-sizing rules; the
order-quantity bounds (MOQ, multiple, maximum) are applied afterwards to every
rule's raw quantity.
"""
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Sequence

from replenish.mrp.types import LotSizing, LotSizingRule, ZERO, q2


def round_up_to_multiple(value: Decimal, multiple: Decimal) -> Decimal:
    if multiple <= 0:
        return value
    n = (value / multiple).to_integral_value(rounding=ROUND_CEILING)
    return q2(n * multiple)


def round_down_to_multiple(value: Decimal, multiple: Decimal) -> Decimal:
    if multiple <= 0:
        return value
    n = (value / multiple).to_integral_value(rounding=ROUND_FLOOR)
    return q2(n * multiple)


def economic_order_quantity(annual_demand: Decimal, ordering_cost: Decimal, holding_cost: Decimal) -> Decimal:
    """EOQ = sqrt(2 * D * S / H); zero when any input is missing."""
    if annual_demand <= 0 or ordering_cost <= 0 or holding_cost <= 0:
        return ZERO
    eoq = (Decimal("2") * annual_demand * ordering_cost / holding_cost).sqrt()
    return q2(eoq.to_integral_value(rounding=ROUND_CEILING))


def validate_lot_sizing(lot: LotSizing) -> None:
    """Raise ValueError when the rule payload or bounds cannot be honored."""
    if lot.moq < 0:
        raise ValueError("minimum order quantity must not be negative")
    if lot.multiple <= 0:
        raise ValueError("order multiple must be positive")
    if lot.max_qty is not None:
        if lot.max_qty <= 0:
            raise ValueError("maximum order quantity must be positive")
        ceiling = round_down_to_multiple(lot.max_qty, lot.multiple)
        if ceiling <= 0 or ceiling < round_up_to_multiple(lot.moq, lot.multiple):
            raise ValueError(
                f"maximum order quantity {lot.max_qty} leaves no quantity that satisfies "
                f"MOQ {lot.moq} and multiple {lot.multiple}"
            )

    if lot.rule == LotSizingRule.FIXED_QUANTITY and not (lot.fixed_quantity and lot.fixed_quantity > 0):
        raise ValueError("fixed_quantity rule requires a positive fixed quantity")
    if lot.rule == LotSizingRule.MIN_MAX and lot.max_qty is None:
        raise ValueError("min_max rule requires a maximum order quantity")
    if lot.rule == LotSizingRule.ECONOMIC_ORDER_QUANTITY and not (lot.eoq and lot.eoq > 0):
        raise ValueError("economic_order_quantity rule requires a positive EOQ (or demand and cost data to derive one)")
    if lot.rule == LotSizingRule.PERIODS_OF_SUPPLY and lot.periods_of_supply < 1:
        raise ValueError("periods_of_supply rule requires at least one period")


def _whole_lots(requirement: Decimal, lot_qty: Decimal) -> Decimal:
    lots = (requirement / lot_qty).to_integral_value(rounding=ROUND_CEILING)
    return max(lots, Decimal("1")) * lot_qty


def raw_quantity(
    net_requirement: Decimal,
    lot: LotSizing,
    projected_available: Decimal = ZERO,
    forward_demand: Sequence[Decimal] = (),
) -> Decimal:
    rule = lot.rule

    if rule == LotSizingRule.LOT_FOR_LOT:
        return net_requirement

    if rule == LotSizingRule.FIXED_QUANTITY:
        return _whole_lots(net_requirement, lot.fixed_quantity)

    if rule == LotSizingRule.MIN_MAX:
        return max(net_requirement, lot.max_qty - projected_available)

    if rule == LotSizingRule.ECONOMIC_ORDER_QUANTITY:
        return _whole_lots(net_requirement, lot.eoq)

    if rule == LotSizingRule.PERIODS_OF_SUPPLY:
        window = list(forward_demand[: lot.periods_of_supply])
        if not window:
            return net_requirement
        average = sum(window, ZERO) / Decimal(len(window))
        return net_requirement + average * Decimal(lot.periods_of_supply)

    raise ValueError(f"Unsupported lot sizing rule: {rule}")


def apply_order_bounds(quantity: Decimal, lot: LotSizing) -> Decimal:
    """Raise to MOQ, round up to the multiple, cap at the maximum."""
    if quantity <= 0:
        return ZERO
    qty = max(quantity, lot.moq)
    qty = round_up_to_multiple(qty, lot.multiple)
    if lot.max_qty is not None and qty > lot.max_qty:
        # May land below the requirement; the shortfall carries into the next bucket.
        qty = round_down_to_multiple(lot.max_qty, lot.multiple)
    return q2(qty)


def resolve(
    net_requirement: Decimal,
    lot: LotSizing,
    projected_available: Decimal = ZERO,
    forward_demand: Sequence[Decimal] = (),
) -> Decimal:
    """Order quantity for a bucket's net requirement."""
    if net_requirement <= 0:
        return ZERO
    raw = raw_quantity(net_requirement, lot, projected_available, forward_demand)
    return apply_order_bounds(raw, lot)
