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


class PurchaseRecommendation(Base):
    __tablename__ = "purchase_recommendations"
    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected', 'modified', 'converted')",
            name="ck_purchase_recommendations_approval_status",
        ),
        CheckConstraint("final_order_quantity > 0", name="ck_purchase_recommendations_final_qty_positive"),
        Index("ix_purchase_recommendations_plan_current_status", "plan_id", "is_current", "approval_status"),
        Index("ix_purchase_recommendations_order_date", "recommended_order_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(60), unique=True, nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("mrp_plans.id"), nullable=False, index=True)
    run_id = Column(String(64), nullable=False, index=True)
    trajectory_bucket_id = Column(Integer, ForeignKey("mrp_trajectory_buckets.id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    location = Column(String(100), nullable=False)
    bucket_start = Column(Date, nullable=False)

    supplier_id = Column(String(64), nullable=True)
    supplier_name = Column(String(200), nullable=True)
    recommended_quantity = Column(Numeric(12, 2), nullable=False)
    final_order_quantity = Column(Numeric(12, 2), nullable=False)
    minimum_order_quantity = Column(Numeric(12, 2), nullable=False, default=0)
    order_multiple = Column(Numeric(12, 2), nullable=False, default=1)
    unit_cost = Column(Numeric(12, 2), nullable=False, default=0)
    total_value = Column(Numeric(14, 2), nullable=False, default=0)
    lead_time_days = Column(Integer, nullable=False, default=0)
    recommended_order_date = Column(Date, nullable=False)
    expected_delivery_date = Column(Date, nullable=False)
    past_due = Column(Boolean, nullable=False, default=False)

    approval_status = Column(String(20), nullable=False, default="pending")
    approval_threshold = Column(Numeric(14, 2), nullable=False, default=0)
    threshold_exceeded = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    order_reference = Column(String(64), nullable=True)
    decided_at = Column(DateTime, nullable=True)

    is_current = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
