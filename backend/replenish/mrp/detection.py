"""
Exception Detector

Scans a completed trajectory and raises at most one exception per bucket.
Rules are evaluated in priority order; the first match wins.
"""
from decimal import Decimal
from typing import List, Optional, Sequence

from replenish.mrp.types import (
    BucketRow,
    ExceptionDraft,
    ExceptionType,
    RecommendationDraft,
    Severity,
    q2,
)

DEFAULT_EXCESS_TRIGGER = Decimal("3")
DEFAULT_EXCESS_BASELINE = Decimal("2")


def _draft(row: BucketRow, current_inventory: Decimal, exception_type: ExceptionType, severity: Severity,
           action: str, shortage: Optional[Decimal] = None, excess: Optional[Decimal] = None) -> ExceptionDraft:
    return ExceptionDraft(
        product_id=row.product_id,
        location=row.location,
        bucket_index=row.bucket_index,
        bucket_start=row.bucket_start,
        exception_type=exception_type,
        severity=severity,
        current_inventory=current_inventory,
        projected_inventory=row.projected_available,
        safety_stock=row.safety_stock,
        reorder_point=row.reorder_point,
        projected_demand=row.gross_requirements,
        projected_supply=row.scheduled_receipts,
        shortage_quantity=q2(shortage) if shortage is not None else None,
        excess_quantity=q2(excess) if excess is not None else None,
        recommended_action=action,
    )


def classify(
    row: BucketRow,
    current_inventory: Decimal,
    excess_trigger: Decimal = DEFAULT_EXCESS_TRIGGER,
    excess_baseline: Decimal = DEFAULT_EXCESS_BASELINE,
) -> Optional[ExceptionDraft]:
    projected = row.projected_available
    ss = row.safety_stock

    if projected < 0:
        shortage = abs(projected)
        return _draft(
            row, current_inventory, ExceptionType.STOCKOUT, Severity.CRITICAL,
            f"Expedite order for {q2(shortage)} units", shortage=shortage,
        )

    if projected < ss:
        return _draft(
            row, current_inventory, ExceptionType.BELOW_SAFETY_STOCK, Severity.HIGH,
            "Review safety stock levels and consider placing order", shortage=ss - projected,
        )

    if projected > excess_trigger * ss:
        return _draft(
            row, current_inventory, ExceptionType.EXCESS_INVENTORY, Severity.LOW,
            "Consider reducing orders or redistributing inventory", excess=projected - excess_baseline * ss,
        )

    return None


def detect(
    rows: Sequence[BucketRow],
    excess_trigger: Decimal = DEFAULT_EXCESS_TRIGGER,
    excess_baseline: Decimal = DEFAULT_EXCESS_BASELINE,
) -> List[ExceptionDraft]:
    """Exceptions for one pair's trajectory, in bucket order."""
    if not rows:
        return []
    ordered = sorted(rows, key=lambda r: r.bucket_index)
    current_inventory = ordered[0].beginning_inventory

    drafts = []
    for row in ordered:
        draft = classify(row, current_inventory, excess_trigger, excess_baseline)
        if draft is not None:
            drafts.append(draft)
    return drafts


def order_urgency(
    recommendation: RecommendationDraft,
    row: BucketRow,
    current_inventory: Decimal,
) -> ExceptionDraft:
    """Exception for a recommendation whose order date already passed."""
    return _draft(
        row, current_inventory, ExceptionType.ORDER_URGENCY, Severity.MEDIUM,
        f"Order date {recommendation.recommended_order_date.isoformat()} has passed; "
        f"place {recommendation.final_order_quantity} units immediately",
        shortage=row.net_requirements,
    )
