from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Date,
    ForeignKey,
    Text,
    CheckConstraint,
    Index,
    func,
)

from replenish.database import Base


class PlanningException(Base):
    __tablename__ = "planning_exceptions"
    __table_args__ = (
        CheckConstraint(
            "exception_type IN ('stockout', 'below_safety_stock', 'excess_inventory', 'order_urgency')",
            name="ck_planning_exceptions_type",
        ),
        CheckConstraint(
            "severity IN ('critical', 'high', 'medium', 'low')",
            name="ck_planning_exceptions_severity",
        ),
        CheckConstraint(
            "resolution_status IN ('open', 'in_progress', 'resolved', 'ignored')",
            name="ck_planning_exceptions_resolution_status",
        ),
        Index("ix_planning_exceptions_plan_current_status", "plan_id", "is_current", "resolution_status"),
        Index("ix_planning_exceptions_pair_type", "product_id", "location", "exception_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("mrp_plans.id"), nullable=False, index=True)
    run_id = Column(String(64), nullable=False, index=True)
    trajectory_bucket_id = Column(Integer, ForeignKey("mrp_trajectory_buckets.id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    location = Column(String(100), nullable=False)
    bucket_start = Column(Date, nullable=False)

    exception_type = Column(String(30), nullable=False)
    severity = Column(String(10), nullable=False)
    current_inventory = Column(Numeric(14, 2), nullable=False, default=0)
    projected_inventory = Column(Numeric(14, 2), nullable=False)
    safety_stock = Column(Numeric(14, 2), nullable=False, default=0)
    reorder_point = Column(Numeric(14, 2), nullable=False, default=0)
    projected_demand = Column(Numeric(14, 2), nullable=False, default=0)
    projected_supply = Column(Numeric(14, 2), nullable=False, default=0)
    shortage_quantity = Column(Numeric(14, 2), nullable=True)
    excess_quantity = Column(Numeric(14, 2), nullable=True)
    recommended_action = Column(Text, nullable=False)

    resolution_status = Column(String(20), nullable=False, default="open")
    resolution_notes = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    is_current = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
