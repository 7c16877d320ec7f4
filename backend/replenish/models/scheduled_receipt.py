from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Date,
    CheckConstraint,
    Index,
    func,
)

from replenish.database import Base


class ScheduledReceipt(Base):
    __tablename__ = "scheduled_receipts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('open', 'received', 'cancelled')",
            name="ck_scheduled_receipts_status",
        ),
        CheckConstraint("quantity >= 0", name="ck_scheduled_receipts_quantity_non_negative"),
        Index("ix_scheduled_receipts_pair_due", "product_id", "location", "due_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    location = Column(String(100), nullable=False)
    due_date = Column(Date, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default="open")
    reference = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=func.now())
