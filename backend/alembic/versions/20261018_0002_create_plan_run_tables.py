"""create plan, plan run and derived planning output tables

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 09:30:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "mrp_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("plan_type", sa.String(length=10), nullable=False),
        sa.Column("horizon_buckets", sa.Integer(), nullable=False),
        sa.Column("bucket_granularity", sa.String(length=10), nullable=False),
        sa.Column("horizon_start", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("current_run_id", sa.String(length=64), nullable=True),
        sa.Column("parameters_json", sa.Text(), nullable=True),
        sa.Column("last_run_at", sa.DateTime(), nullable=True),
        sa.Column("next_run_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('draft', 'running', 'active', 'archived')",
            name="ck_mrp_plans_status",
        ),
        sa.CheckConstraint("plan_type IN ('MRP', 'DRP', 'Manual')", name="ck_mrp_plans_plan_type"),
        sa.CheckConstraint(
            "bucket_granularity IN ('day', 'week', 'month')",
            name="ck_mrp_plans_bucket_granularity",
        ),
        sa.CheckConstraint("horizon_buckets >= 1", name="ck_mrp_plans_horizon_min_1"),
    )
    op.create_index("ix_mrp_plans_id", "mrp_plans", ["id"], unique=False)
    op.create_index("ix_mrp_plans_code", "mrp_plans", ["code"], unique=True)
    op.create_index("ix_mrp_plans_status_next_run", "mrp_plans", ["status", "next_run_at"], unique=False)

    op.create_table(
        "mrp_plan_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("previous_status", sa.String(length=20), nullable=False),
        sa.Column("trigger_source", sa.String(length=20), nullable=False),
        sa.Column("scope_json", sa.Text(), nullable=True),
        sa.Column("pairs_total", sa.Integer(), nullable=False),
        sa.Column("pairs_processed", sa.Integer(), nullable=False),
        sa.Column("pairs_errored", sa.Integer(), nullable=False),
        sa.Column("trajectory_rows", sa.Integer(), nullable=False),
        sa.Column("exceptions_created", sa.Integer(), nullable=False),
        sa.Column("recommendations_created", sa.Integer(), nullable=False),
        sa.Column("past_due_recommendations", sa.Integer(), nullable=False),
        sa.Column("boundary_releases", sa.Integer(), nullable=False),
        sa.Column("errors_json", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("promoted_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["mrp_plans.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('running', 'completed', 'failed', 'cancelled')",
            name="ck_mrp_plan_runs_status",
        ),
        sa.CheckConstraint(
            "trigger_source IN ('manual', 'async', 'scheduled')",
            name="ck_mrp_plan_runs_trigger_source",
        ),
    )
    op.create_index("ix_mrp_plan_runs_id", "mrp_plan_runs", ["id"], unique=False)
    op.create_index("ix_mrp_plan_runs_run_id", "mrp_plan_runs", ["run_id"], unique=True)
    op.create_index("ix_mrp_plan_runs_plan_id", "mrp_plan_runs", ["plan_id"], unique=False)
    op.create_index("ix_mrp_plan_runs_plan_started", "mrp_plan_runs", ["plan_id", "started_at"], unique=False)
    op.create_index("ix_mrp_plan_runs_status_started", "mrp_plan_runs", ["status", "started_at"], unique=False)

    op.create_table(
        "mrp_trajectory_buckets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("bucket_index", sa.Integer(), nullable=False),
        sa.Column("bucket_start", sa.Date(), nullable=False),
        sa.Column("bucket_end", sa.Date(), nullable=False),
        sa.Column("beginning_inventory", sa.Numeric(14, 2), nullable=False),
        sa.Column("gross_requirements", sa.Numeric(14, 2), nullable=False),
        sa.Column("scheduled_receipts", sa.Numeric(14, 2), nullable=False),
        sa.Column("projected_available", sa.Numeric(14, 2), nullable=False),
        sa.Column("net_requirements", sa.Numeric(14, 2), nullable=False),
        sa.Column("planned_order_receipt", sa.Numeric(14, 2), nullable=False),
        sa.Column("planned_order_release", sa.Numeric(14, 2), nullable=False),
        sa.Column("safety_stock", sa.Numeric(14, 2), nullable=False),
        sa.Column("reorder_point", sa.Numeric(14, 2), nullable=False),
        sa.Column("lead_time_offset", sa.Integer(), nullable=False),
        sa.Column("boundary_release", sa.Boolean(), nullable=False),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["mrp_plans.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "run_id", "product_id", "location", "bucket_index",
            name="uq_mrp_trajectory_run_pair_bucket",
        ),
        sa.CheckConstraint("bucket_index >= 0", name="ck_mrp_trajectory_bucket_index_non_negative"),
        sa.CheckConstraint("net_requirements >= 0", name="ck_mrp_trajectory_net_non_negative"),
        sa.CheckConstraint("planned_order_receipt >= 0", name="ck_mrp_trajectory_receipt_non_negative"),
        sa.CheckConstraint("planned_order_release >= 0", name="ck_mrp_trajectory_release_non_negative"),
    )
    op.create_index("ix_mrp_trajectory_buckets_id", "mrp_trajectory_buckets", ["id"], unique=False)
    op.create_index("ix_mrp_trajectory_buckets_plan_id", "mrp_trajectory_buckets", ["plan_id"], unique=False)
    op.create_index("ix_mrp_trajectory_buckets_run_id", "mrp_trajectory_buckets", ["run_id"], unique=False)
    op.create_index(
        "ix_mrp_trajectory_plan_current_pair",
        "mrp_trajectory_buckets",
        ["plan_id", "is_current", "product_id", "location"],
        unique=False,
    )

    op.create_table(
        "purchase_recommendations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=60), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("trajectory_bucket_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("bucket_start", sa.Date(), nullable=False),
        sa.Column("supplier_id", sa.String(length=64), nullable=True),
        sa.Column("supplier_name", sa.String(length=200), nullable=True),
        sa.Column("recommended_quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("final_order_quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("minimum_order_quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("order_multiple", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("lead_time_days", sa.Integer(), nullable=False),
        sa.Column("recommended_order_date", sa.Date(), nullable=False),
        sa.Column("expected_delivery_date", sa.Date(), nullable=False),
        sa.Column("past_due", sa.Boolean(), nullable=False),
        sa.Column("approval_status", sa.String(length=20), nullable=False),
        sa.Column("approval_threshold", sa.Numeric(14, 2), nullable=False),
        sa.Column("threshold_exceeded", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("order_reference", sa.String(length=64), nullable=True),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["mrp_plans.id"]),
        sa.ForeignKeyConstraint(["trajectory_bucket_id"], ["mrp_trajectory_buckets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected', 'modified', 'converted')",
            name="ck_purchase_recommendations_approval_status",
        ),
        sa.CheckConstraint("final_order_quantity > 0", name="ck_purchase_recommendations_final_qty_positive"),
    )
    op.create_index("ix_purchase_recommendations_id", "purchase_recommendations", ["id"], unique=False)
    op.create_index("ix_purchase_recommendations_code", "purchase_recommendations", ["code"], unique=True)
    op.create_index("ix_purchase_recommendations_plan_id", "purchase_recommendations", ["plan_id"], unique=False)
    op.create_index("ix_purchase_recommendations_run_id", "purchase_recommendations", ["run_id"], unique=False)
    op.create_index(
        "ix_purchase_recommendations_trajectory_bucket_id",
        "purchase_recommendations",
        ["trajectory_bucket_id"],
        unique=False,
    )
    op.create_index(
        "ix_purchase_recommendations_plan_current_status",
        "purchase_recommendations",
        ["plan_id", "is_current", "approval_status"],
        unique=False,
    )
    op.create_index(
        "ix_purchase_recommendations_order_date",
        "purchase_recommendations",
        ["recommended_order_date"],
        unique=False,
    )

    op.create_table(
        "planning_exceptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("trajectory_bucket_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("bucket_start", sa.Date(), nullable=False),
        sa.Column("exception_type", sa.String(length=30), nullable=False),
        sa.Column("severity", sa.String(length=10), nullable=False),
        sa.Column("current_inventory", sa.Numeric(14, 2), nullable=False),
        sa.Column("projected_inventory", sa.Numeric(14, 2), nullable=False),
        sa.Column("safety_stock", sa.Numeric(14, 2), nullable=False),
        sa.Column("reorder_point", sa.Numeric(14, 2), nullable=False),
        sa.Column("projected_demand", sa.Numeric(14, 2), nullable=False),
        sa.Column("projected_supply", sa.Numeric(14, 2), nullable=False),
        sa.Column("shortage_quantity", sa.Numeric(14, 2), nullable=True),
        sa.Column("excess_quantity", sa.Numeric(14, 2), nullable=True),
        sa.Column("recommended_action", sa.Text(), nullable=False),
        sa.Column("resolution_status", sa.String(length=20), nullable=False),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["mrp_plans.id"]),
        sa.ForeignKeyConstraint(["trajectory_bucket_id"], ["mrp_trajectory_buckets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "exception_type IN ('stockout', 'below_safety_stock', 'excess_inventory', 'order_urgency')",
            name="ck_planning_exceptions_type",
        ),
        sa.CheckConstraint(
            "severity IN ('critical', 'high', 'medium', 'low')",
            name="ck_planning_exceptions_severity",
        ),
        sa.CheckConstraint(
            "resolution_status IN ('open', 'in_progress', 'resolved', 'ignored')",
            name="ck_planning_exceptions_resolution_status",
        ),
    )
    op.create_index("ix_planning_exceptions_id", "planning_exceptions", ["id"], unique=False)
    op.create_index("ix_planning_exceptions_plan_id", "planning_exceptions", ["plan_id"], unique=False)
    op.create_index("ix_planning_exceptions_run_id", "planning_exceptions", ["run_id"], unique=False)
    op.create_index(
        "ix_planning_exceptions_trajectory_bucket_id",
        "planning_exceptions",
        ["trajectory_bucket_id"],
        unique=False,
    )
    op.create_index(
        "ix_planning_exceptions_plan_current_status",
        "planning_exceptions",
        ["plan_id", "is_current", "resolution_status"],
        unique=False,
    )
    op.create_index(
        "ix_planning_exceptions_pair_type",
        "planning_exceptions",
        ["product_id", "location", "exception_type"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_planning_exceptions_pair_type", table_name="planning_exceptions")
    op.drop_index("ix_planning_exceptions_plan_current_status", table_name="planning_exceptions")
    op.drop_index("ix_planning_exceptions_trajectory_bucket_id", table_name="planning_exceptions")
    op.drop_index("ix_planning_exceptions_run_id", table_name="planning_exceptions")
    op.drop_index("ix_planning_exceptions_plan_id", table_name="planning_exceptions")
    op.drop_index("ix_planning_exceptions_id", table_name="planning_exceptions")
    op.drop_table("planning_exceptions")

    op.drop_index("ix_purchase_recommendations_order_date", table_name="purchase_recommendations")
    op.drop_index("ix_purchase_recommendations_plan_current_status", table_name="purchase_recommendations")
    op.drop_index("ix_purchase_recommendations_trajectory_bucket_id", table_name="purchase_recommendations")
    op.drop_index("ix_purchase_recommendations_run_id", table_name="purchase_recommendations")
    op.drop_index("ix_purchase_recommendations_plan_id", table_name="purchase_recommendations")
    op.drop_index("ix_purchase_recommendations_code", table_name="purchase_recommendations")
    op.drop_index("ix_purchase_recommendations_id", table_name="purchase_recommendations")
    op.drop_table("purchase_recommendations")

    op.drop_index("ix_mrp_trajectory_plan_current_pair", table_name="mrp_trajectory_buckets")
    op.drop_index("ix_mrp_trajectory_buckets_run_id", table_name="mrp_trajectory_buckets")
    op.drop_index("ix_mrp_trajectory_buckets_plan_id", table_name="mrp_trajectory_buckets")
    op.drop_index("ix_mrp_trajectory_buckets_id", table_name="mrp_trajectory_buckets")
    op.drop_table("mrp_trajectory_buckets")

    op.drop_index("ix_mrp_plan_runs_status_started", table_name="mrp_plan_runs")
    op.drop_index("ix_mrp_plan_runs_plan_started", table_name="mrp_plan_runs")
    op.drop_index("ix_mrp_plan_runs_plan_id", table_name="mrp_plan_runs")
    op.drop_index("ix_mrp_plan_runs_run_id", table_name="mrp_plan_runs")
    op.drop_index("ix_mrp_plan_runs_id", table_name="mrp_plan_runs")
    op.drop_table("mrp_plan_runs")

    op.drop_index("ix_mrp_plans_status_next_run", table_name="mrp_plans")
    op.drop_index("ix_mrp_plans_code", table_name="mrp_plans")
    op.drop_index("ix_mrp_plans_id", table_name="mrp_plans")
    op.drop_table("mrp_plans")
