"""
Safety stock and reorder point per safety-stock method.
"""
from decimal import Decimal
from typing import Sequence, Tuple

from replenish.mrp.types import SafetyStockMethod, SafetyStockPolicy, ZERO, q2


def service_level_to_z(service_level: Decimal) -> Decimal:
    if service_level >= Decimal("0.99"):
        return Decimal("2.33")
    if service_level >= Decimal("0.98"):
        return Decimal("2.05")
    if service_level >= Decimal("0.95"):
        return Decimal("1.65")
    if service_level >= Decimal("0.90"):
        return Decimal("1.28")
    return Decimal("0.84")


def demand_statistics(demand: Sequence[Decimal]) -> Tuple[Decimal, Decimal]:
    """Mean and population standard deviation of per-bucket demand."""
    if not demand:
        return ZERO, ZERO
    n = Decimal(len(demand))
    mean = sum(demand, ZERO) / n
    variance = sum(((d - mean) ** 2 for d in demand), ZERO) / n
    return mean, variance.sqrt()


def compute_safety_stock(
    policy: SafetyStockPolicy,
    average_demand: Decimal,
    demand_std_dev: Decimal,
    lead_time_buckets: int,
) -> Decimal:
    lead_time = Decimal(lead_time_buckets)

    if policy.method == SafetyStockMethod.STATISTICAL:
        value = service_level_to_z(policy.service_level) * demand_std_dev * lead_time.sqrt()
    elif policy.method == SafetyStockMethod.FIXED:
        value = policy.value
    elif policy.method == SafetyStockMethod.LEAD_TIME_BASED:
        # value is the cover factor; treat an unset factor as one full lead time
        factor = policy.value if policy.value > 0 else Decimal("1")
        value = average_demand * lead_time * factor
    elif policy.method == SafetyStockMethod.PERCENTAGE:
        value = average_demand * policy.value / Decimal("100")
    else:
        raise ValueError(f"Unsupported safety stock method: {policy.method}")

    return q2(max(value, ZERO))


def compute_reorder_point(safety_stock: Decimal, average_demand: Decimal, lead_time_buckets: int) -> Decimal:
    return q2(safety_stock + average_demand * Decimal(lead_time_buckets))
