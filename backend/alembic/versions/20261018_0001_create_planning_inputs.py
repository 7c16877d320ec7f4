"""create planning input and item policy tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inventory_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("on_hand_qty", sa.Numeric(12, 2), nullable=False),
        sa.Column("allocated_qty", sa.Numeric(12, 2), nullable=False),
        sa.Column("in_transit_qty", sa.Numeric(12, 2), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "location", name="uq_inventory_snapshots_product_location"),
        sa.CheckConstraint("on_hand_qty >= 0", name="ck_inventory_snapshots_on_hand_non_negative"),
        sa.CheckConstraint("allocated_qty >= 0", name="ck_inventory_snapshots_allocated_non_negative"),
        sa.CheckConstraint("in_transit_qty >= 0", name="ck_inventory_snapshots_in_transit_non_negative"),
    )
    op.create_index("ix_inventory_snapshots_id", "inventory_snapshots", ["id"], unique=False)
    op.create_index("ix_inventory_snapshots_product_id", "inventory_snapshots", ["product_id"], unique=False)
    op.create_index(
        "ix_inventory_snapshots_location_product",
        "inventory_snapshots",
        ["location", "product_id"],
        unique=False,
    )

    op.create_table(
        "item_policies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("safety_stock_method", sa.String(length=20), nullable=False),
        sa.Column("safety_stock_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("service_level", sa.Numeric(5, 4), nullable=False),
        sa.Column("lot_sizing_rule", sa.String(length=30), nullable=False),
        sa.Column("min_order_qty", sa.Numeric(12, 2), nullable=False),
        sa.Column("max_order_qty", sa.Numeric(12, 2), nullable=True),
        sa.Column("order_multiple", sa.Numeric(12, 2), nullable=False),
        sa.Column("fixed_order_qty", sa.Numeric(12, 2), nullable=True),
        sa.Column("eoq_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("periods_of_supply", sa.Integer(), nullable=False),
        sa.Column("lead_time_days", sa.Integer(), nullable=False),
        sa.Column("planning_time_fence_days", sa.Integer(), nullable=True),
        sa.Column("demand_time_fence_days", sa.Integer(), nullable=True),
        sa.Column("supplier_id", sa.String(length=64), nullable=True),
        sa.Column("supplier_name", sa.String(length=200), nullable=True),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("ordering_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("carrying_cost_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("approval_threshold", sa.Numeric(14, 2), nullable=True),
        sa.Column("abc_class", sa.String(length=1), nullable=True),
        sa.Column("xyz_class", sa.String(length=1), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "location", name="uq_item_policies_product_location"),
        sa.CheckConstraint(
            "safety_stock_method IN ('statistical', 'fixed', 'lead_time_based', 'percentage')",
            name="ck_item_policies_safety_stock_method",
        ),
        sa.CheckConstraint(
            "lot_sizing_rule IN ('lot_for_lot', 'fixed_quantity', 'min_max', "
            "'economic_order_quantity', 'periods_of_supply')",
            name="ck_item_policies_lot_sizing_rule",
        ),
        sa.CheckConstraint("safety_stock_value >= 0", name="ck_item_policies_safety_stock_non_negative"),
        sa.CheckConstraint(
            "service_level > 0 AND service_level < 1",
            name="ck_item_policies_service_level_range",
        ),
        sa.CheckConstraint("min_order_qty >= 0", name="ck_item_policies_moq_non_negative"),
        sa.CheckConstraint("order_multiple > 0", name="ck_item_policies_multiple_positive"),
        sa.CheckConstraint("lead_time_days >= 0", name="ck_item_policies_lead_time_non_negative"),
        sa.CheckConstraint(
            "abc_class IS NULL OR abc_class IN ('A', 'B', 'C')",
            name="ck_item_policies_abc_class",
        ),
        sa.CheckConstraint(
            "xyz_class IS NULL OR xyz_class IN ('X', 'Y', 'Z')",
            name="ck_item_policies_xyz_class",
        ),
    )
    op.create_index("ix_item_policies_id", "item_policies", ["id"], unique=False)
    op.create_index("ix_item_policies_product_id", "item_policies", ["product_id"], unique=False)
    op.create_index("ix_item_policies_active_location", "item_policies", ["active", "location"], unique=False)

    op.create_table(
        "demand_forecasts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity >= 0", name="ck_demand_forecasts_quantity_non_negative"),
    )
    op.create_index("ix_demand_forecasts_id", "demand_forecasts", ["id"], unique=False)
    op.create_index("ix_demand_forecasts_product_id", "demand_forecasts", ["product_id"], unique=False)
    op.create_index(
        "ix_demand_forecasts_pair_period",
        "demand_forecasts",
        ["product_id", "location", "period_start"],
        unique=False,
    )

    op.create_table(
        "scheduled_receipts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=100), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('open', 'received', 'cancelled')",
            name="ck_scheduled_receipts_status",
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_scheduled_receipts_quantity_non_negative"),
    )
    op.create_index("ix_scheduled_receipts_id", "scheduled_receipts", ["id"], unique=False)
    op.create_index("ix_scheduled_receipts_product_id", "scheduled_receipts", ["product_id"], unique=False)
    op.create_index(
        "ix_scheduled_receipts_pair_due",
        "scheduled_receipts",
        ["product_id", "location", "due_date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_scheduled_receipts_pair_due", table_name="scheduled_receipts")
    op.drop_index("ix_scheduled_receipts_product_id", table_name="scheduled_receipts")
    op.drop_index("ix_scheduled_receipts_id", table_name="scheduled_receipts")
    op.drop_table("scheduled_receipts")

    op.drop_index("ix_demand_forecasts_pair_period", table_name="demand_forecasts")
    op.drop_index("ix_demand_forecasts_product_id", table_name="demand_forecasts")
    op.drop_index("ix_demand_forecasts_id", table_name="demand_forecasts")
    op.drop_table("demand_forecasts")

    op.drop_index("ix_item_policies_active_location", table_name="item_policies")
    op.drop_index("ix_item_policies_product_id", table_name="item_policies")
    op.drop_index("ix_item_policies_id", table_name="item_policies")
    op.drop_table("item_policies")

    op.drop_index("ix_inventory_snapshots_location_product", table_name="inventory_snapshots")
    op.drop_index("ix_inventory_snapshots_product_id", table_name="inventory_snapshots")
    op.drop_index("ix_inventory_snapshots_id", table_name="inventory_snapshots")
    op.drop_table("inventory_snapshots")
