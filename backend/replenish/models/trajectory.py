from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Date,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)

from replenish.database import Base


class TrajectoryBucket(Base):
    __tablename__ = "mrp_trajectory_buckets"
    __table_args__ = (
        UniqueConstraint(
            "run_id", "product_id", "location", "bucket_index",
            name="uq_mrp_trajectory_run_pair_bucket",
        ),
        CheckConstraint("bucket_index >= 0", name="ck_mrp_trajectory_bucket_index_non_negative"),
        CheckConstraint("net_requirements >= 0", name="ck_mrp_trajectory_net_non_negative"),
        CheckConstraint("planned_order_receipt >= 0", name="ck_mrp_trajectory_receipt_non_negative"),
        CheckConstraint("planned_order_release >= 0", name="ck_mrp_trajectory_release_non_negative"),
        Index("ix_mrp_trajectory_plan_current_pair", "plan_id", "is_current", "product_id", "location"),
    )

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("mrp_plans.id"), nullable=False, index=True)
    run_id = Column(String(64), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    location = Column(String(100), nullable=False)
    bucket_index = Column(Integer, nullable=False)
    bucket_start = Column(Date, nullable=False)
    bucket_end = Column(Date, nullable=False)

    beginning_inventory = Column(Numeric(14, 2), nullable=False)
    gross_requirements = Column(Numeric(14, 2), nullable=False, default=0)
    scheduled_receipts = Column(Numeric(14, 2), nullable=False, default=0)
    projected_available = Column(Numeric(14, 2), nullable=False)
    net_requirements = Column(Numeric(14, 2), nullable=False, default=0)
    planned_order_receipt = Column(Numeric(14, 2), nullable=False, default=0)
    planned_order_release = Column(Numeric(14, 2), nullable=False, default=0)
    safety_stock = Column(Numeric(14, 2), nullable=False, default=0)
    reorder_point = Column(Numeric(14, 2), nullable=False, default=0)
    lead_time_offset = Column(Integer, nullable=False, default=0)
    boundary_release = Column(Boolean, nullable=False, default=False)

    is_current = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now())
