from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)

from replenish.database import Base


class ItemPolicy(Base):
    __tablename__ = "item_policies"
    __table_args__ = (
        UniqueConstraint("product_id", "location", name="uq_item_policies_product_location"),
        CheckConstraint(
            "safety_stock_method IN ('statistical', 'fixed', 'lead_time_based', 'percentage')",
            name="ck_item_policies_safety_stock_method",
        ),
        CheckConstraint(
            "lot_sizing_rule IN ('lot_for_lot', 'fixed_quantity', 'min_max', "
            "'economic_order_quantity', 'periods_of_supply')",
            name="ck_item_policies_lot_sizing_rule",
        ),
        CheckConstraint("safety_stock_value >= 0", name="ck_item_policies_safety_stock_non_negative"),
        CheckConstraint(
            "service_level > 0 AND service_level < 1",
            name="ck_item_policies_service_level_range",
        ),
        CheckConstraint("min_order_qty >= 0", name="ck_item_policies_moq_non_negative"),
        CheckConstraint("order_multiple > 0", name="ck_item_policies_multiple_positive"),
        CheckConstraint("lead_time_days >= 0", name="ck_item_policies_lead_time_non_negative"),
        CheckConstraint(
            "abc_class IS NULL OR abc_class IN ('A', 'B', 'C')",
            name="ck_item_policies_abc_class",
        ),
        CheckConstraint(
            "xyz_class IS NULL OR xyz_class IN ('X', 'Y', 'Z')",
            name="ck_item_policies_xyz_class",
        ),
        Index("ix_item_policies_active_location", "active", "location"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    location = Column(String(100), nullable=False)

    safety_stock_method = Column(String(20), nullable=False, default="fixed")
    safety_stock_value = Column(Numeric(12, 2), nullable=False, default=0)
    service_level = Column(Numeric(5, 4), nullable=False, default=0.95)

    lot_sizing_rule = Column(String(30), nullable=False, default="lot_for_lot")
    min_order_qty = Column(Numeric(12, 2), nullable=False, default=0)
    max_order_qty = Column(Numeric(12, 2), nullable=True)
    order_multiple = Column(Numeric(12, 2), nullable=False, default=1)
    fixed_order_qty = Column(Numeric(12, 2), nullable=True)
    eoq_value = Column(Numeric(12, 2), nullable=True)
    periods_of_supply = Column(Integer, nullable=False, default=1)

    lead_time_days = Column(Integer, nullable=False, default=14)
    planning_time_fence_days = Column(Integer, nullable=True)
    demand_time_fence_days = Column(Integer, nullable=True)

    supplier_id = Column(String(64), nullable=True)
    supplier_name = Column(String(200), nullable=True)
    unit_cost = Column(Numeric(12, 2), nullable=False, default=0)
    ordering_cost = Column(Numeric(12, 2), nullable=False, default=0)
    carrying_cost_rate = Column(Numeric(5, 4), nullable=False, default=0)
    approval_threshold = Column(Numeric(14, 2), nullable=True)

    abc_class = Column(String(1), nullable=True)
    xyz_class = Column(String(1), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
