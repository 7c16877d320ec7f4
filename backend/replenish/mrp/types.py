"""
Planning engine value types.

Policies, buckets and computed rows are plain frozen dataclasses so the
netting, detection and recommendation functions stay free of database
concerns and can run on worker threads.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


ZERO = Decimal("0")
CENT = Decimal("0.01")


def q2(value) -> Decimal:
    """Quantize any numeric to two decimals."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


class PlanStatus(str, Enum):
    DRAFT = "draft"
    RUNNING = "running"
    ACTIVE = "active"
    ARCHIVED = "archived"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BucketGranularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def days(self) -> int:
        return {"day": 1, "week": 7, "month": 30}[self.value]


class SafetyStockMethod(str, Enum):
    STATISTICAL = "statistical"
    FIXED = "fixed"
    LEAD_TIME_BASED = "lead_time_based"
    PERCENTAGE = "percentage"


class LotSizingRule(str, Enum):
    LOT_FOR_LOT = "lot_for_lot"
    FIXED_QUANTITY = "fixed_quantity"
    MIN_MAX = "min_max"
    ECONOMIC_ORDER_QUANTITY = "economic_order_quantity"
    PERIODS_OF_SUPPLY = "periods_of_supply"


class ExceptionType(str, Enum):
    STOCKOUT = "stockout"
    BELOW_SAFETY_STOCK = "below_safety_stock"
    EXCESS_INVENTORY = "excess_inventory"
    ORDER_URGENCY = "order_urgency"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"
    CONVERTED = "converted"


class ResolutionStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    IGNORED = "ignored"


@dataclass(frozen=True)
class LotSizing:
    """Lot-sizing rule plus the payload each rule reads."""

    rule: LotSizingRule = LotSizingRule.LOT_FOR_LOT
    moq: Decimal = ZERO
    max_qty: Optional[Decimal] = None
    multiple: Decimal = Decimal("1")
    fixed_quantity: Optional[Decimal] = None
    eoq: Optional[Decimal] = None
    periods_of_supply: int = 1


@dataclass(frozen=True)
class SafetyStockPolicy:
    method: SafetyStockMethod = SafetyStockMethod.FIXED
    value: Decimal = ZERO
    service_level: Decimal = Decimal("0.95")


@dataclass(frozen=True)
class PolicySnapshot:
    """Immutable view of one item policy for the duration of a run."""

    product_id: str
    location: str
    safety_stock: SafetyStockPolicy = field(default_factory=SafetyStockPolicy)
    lot_sizing: LotSizing = field(default_factory=LotSizing)
    lead_time_days: int = 14
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    unit_cost: Decimal = ZERO
    ordering_cost: Decimal = ZERO
    carrying_cost_rate: Decimal = ZERO
    approval_threshold: Optional[Decimal] = None
    is_default: bool = False


@dataclass(frozen=True)
class Bucket:
    index: int
    start: date
    end: date  # inclusive


@dataclass(frozen=True)
class StockPosition:
    on_hand: Decimal
    committed: Decimal

    @property
    def available(self) -> Decimal:
        return self.on_hand - self.committed


@dataclass(frozen=True)
class PairInputs:
    product_id: str
    location: str
    stock: StockPosition
    gross_requirements: Optional[Tuple[Decimal, ...]]  # None when the pair has no forecast at all
    scheduled_receipts: Tuple[Decimal, ...]


@dataclass
class BucketRow:
    """One computed trajectory bucket."""

    product_id: str
    location: str
    bucket_index: int
    bucket_start: date
    bucket_end: date
    beginning_inventory: Decimal
    gross_requirements: Decimal
    scheduled_receipts: Decimal
    projected_available: Decimal
    net_requirements: Decimal
    planned_order_receipt: Decimal
    planned_order_release: Decimal
    safety_stock: Decimal
    reorder_point: Decimal
    lead_time_offset: int
    boundary_release: bool = False

    @property
    def ending_inventory(self) -> Decimal:
        return self.projected_available + self.planned_order_receipt


@dataclass(frozen=True)
class ExceptionDraft:
    product_id: str
    location: str
    bucket_index: int
    bucket_start: date
    exception_type: ExceptionType
    severity: Severity
    current_inventory: Decimal
    projected_inventory: Decimal
    safety_stock: Decimal
    reorder_point: Decimal
    projected_demand: Decimal
    projected_supply: Decimal
    shortage_quantity: Optional[Decimal]
    excess_quantity: Optional[Decimal]
    recommended_action: str


@dataclass(frozen=True)
class RecommendationDraft:
    product_id: str
    location: str
    bucket_index: int
    bucket_start: date
    bucket_end: date
    supplier_id: Optional[str]
    supplier_name: Optional[str]
    recommended_quantity: Decimal
    final_order_quantity: Decimal
    minimum_order_quantity: Decimal
    order_multiple: Decimal
    unit_cost: Decimal
    total_value: Decimal
    lead_time_days: int
    recommended_order_date: date
    expected_delivery_date: date
    past_due: bool
    threshold_exceeded: bool
