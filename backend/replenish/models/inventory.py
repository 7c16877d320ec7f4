from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Date,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)

from replenish.database import Base


class InventorySnapshot(Base):
    __tablename__ = "inventory_snapshots"
    __table_args__ = (
        UniqueConstraint("product_id", "location", name="uq_inventory_snapshots_product_location"),
        CheckConstraint("on_hand_qty >= 0", name="ck_inventory_snapshots_on_hand_non_negative"),
        CheckConstraint("allocated_qty >= 0", name="ck_inventory_snapshots_allocated_non_negative"),
        CheckConstraint("in_transit_qty >= 0", name="ck_inventory_snapshots_in_transit_non_negative"),
        Index("ix_inventory_snapshots_location_product", "location", "product_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    location = Column(String(100), nullable=False, default="Main")
    on_hand_qty = Column(Numeric(12, 2), nullable=False, default=0)
    allocated_qty = Column(Numeric(12, 2), nullable=False, default=0)
    in_transit_qty = Column(Numeric(12, 2), nullable=False, default=0)
    snapshot_date = Column(Date, nullable=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
