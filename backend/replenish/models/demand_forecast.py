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


class DemandForecast(Base):
    __tablename__ = "demand_forecasts"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_demand_forecasts_quantity_non_negative"),
        Index("ix_demand_forecasts_pair_period", "product_id", "location", "period_start"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    location = Column(String(100), nullable=False)
    period_start = Column(Date, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False, default=0)
    source = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=func.now())
