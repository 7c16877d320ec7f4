"""
Recommendation Generator

Turns every trajectory bucket with a planned receipt into a supplier-facing
purchase recommendation.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

from replenish.mrp.types import BucketRow, PolicySnapshot, RecommendationDraft, q2


def resolve_approval_threshold(
    policy: PolicySnapshot,
    plan_threshold: Optional[Decimal],
    default_threshold: Decimal,
) -> Decimal:
    """Item policy first, then the plan's parameter, then the configured default."""
    if policy.approval_threshold is not None:
        return policy.approval_threshold
    if plan_threshold is not None:
        return plan_threshold
    return default_threshold


def generate(
    rows: Sequence[BucketRow],
    policy: PolicySnapshot,
    today: date,
    approval_threshold: Decimal,
) -> List[RecommendationDraft]:
    drafts = []
    for row in sorted(rows, key=lambda r: r.bucket_index):
        if row.planned_order_receipt <= 0:
            continue

        order_date = row.bucket_start - timedelta(days=policy.lead_time_days)
        total_value = q2(row.planned_order_receipt * policy.unit_cost)

        drafts.append(
            RecommendationDraft(
                product_id=row.product_id,
                location=row.location,
                bucket_index=row.bucket_index,
                bucket_start=row.bucket_start,
                bucket_end=row.bucket_end,
                supplier_id=policy.supplier_id,
                supplier_name=policy.supplier_name,
                recommended_quantity=row.net_requirements,
                final_order_quantity=row.planned_order_receipt,
                minimum_order_quantity=policy.lot_sizing.moq,
                order_multiple=policy.lot_sizing.multiple,
                unit_cost=policy.unit_cost,
                total_value=total_value,
                lead_time_days=policy.lead_time_days,
                recommended_order_date=order_date,
                expected_delivery_date=row.bucket_start,
                past_due=order_date < today,
                threshold_exceeded=total_value > approval_threshold,
            )
        )
    return drafts
