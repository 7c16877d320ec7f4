import json

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Date,
    ForeignKey,
    Text,
    CheckConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship

from replenish.database import Base


class Plan(Base):
    __tablename__ = "mrp_plans"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'running', 'active', 'archived')",
            name="ck_mrp_plans_status",
        ),
        CheckConstraint(
            "plan_type IN ('MRP', 'DRP', 'Manual')",
            name="ck_mrp_plans_plan_type",
        ),
        CheckConstraint(
            "bucket_granularity IN ('day', 'week', 'month')",
            name="ck_mrp_plans_bucket_granularity",
        ),
        CheckConstraint("horizon_buckets >= 1", name="ck_mrp_plans_horizon_min_1"),
        Index("ix_mrp_plans_status_next_run", "status", "next_run_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(40), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    plan_type = Column(String(10), nullable=False, default="MRP")
    horizon_buckets = Column(Integer, nullable=False, default=12)
    bucket_granularity = Column(String(10), nullable=False, default="week")
    horizon_start = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="draft")
    current_run_id = Column(String(64), nullable=True)
    parameters_json = Column(Text, nullable=True)
    last_run_at = Column(DateTime, nullable=True)
    next_run_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    runs = relationship("PlanRun", back_populates="plan", order_by="PlanRun.id.desc()")

    @property
    def parameters(self) -> dict:
        if not self.parameters_json:
            return {}
        try:
            value = json.loads(self.parameters_json)
        except ValueError:
            return {}
        return value if isinstance(value, dict) else {}


class PlanRun(Base):
    __tablename__ = "mrp_plan_runs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('running', 'completed', 'failed', 'cancelled')",
            name="ck_mrp_plan_runs_status",
        ),
        CheckConstraint(
            "trigger_source IN ('manual', 'async', 'scheduled')",
            name="ck_mrp_plan_runs_trigger_source",
        ),
        Index("ix_mrp_plan_runs_plan_started", "plan_id", "started_at"),
        Index("ix_mrp_plan_runs_status_started", "status", "started_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(String(64), unique=True, index=True, nullable=False)
    plan_id = Column(Integer, ForeignKey("mrp_plans.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="running")
    previous_status = Column(String(20), nullable=False)
    trigger_source = Column(String(20), nullable=False, default="manual")
    scope_json = Column(Text, nullable=True)

    pairs_total = Column(Integer, nullable=False, default=0)
    pairs_processed = Column(Integer, nullable=False, default=0)
    pairs_errored = Column(Integer, nullable=False, default=0)
    trajectory_rows = Column(Integer, nullable=False, default=0)
    exceptions_created = Column(Integer, nullable=False, default=0)
    recommendations_created = Column(Integer, nullable=False, default=0)
    past_due_recommendations = Column(Integer, nullable=False, default=0)
    boundary_releases = Column(Integer, nullable=False, default=0)

    errors_json = Column(Text, nullable=True)
    error = Column(Text, nullable=True)

    started_at = Column(DateTime, default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)
    promoted_at = Column(DateTime, nullable=True)

    plan = relationship("Plan", back_populates="runs")

    @property
    def scope(self) -> dict:
        return json.loads(self.scope_json) if self.scope_json else {}

    @property
    def errored_pairs(self) -> list:
        return json.loads(self.errors_json) if self.errors_json else []
