"""
Demand Forecast and Scheduled Receipt Repositories
"""
from datetime import date
from typing import List

from sqlalchemy.orm import Session

from replenish.models.demand_forecast import DemandForecast
from replenish.models.scheduled_receipt import ScheduledReceipt
from replenish.repositories.base import BaseRepository


class DemandForecastRepository(BaseRepository[DemandForecast]):

    def __init__(self, db: Session):
        super().__init__(DemandForecast, db)

    def has_forecast(self, product_id: str, location: str) -> bool:
        return (
            self.db.query(DemandForecast.id)
            .filter(DemandForecast.product_id == product_id, DemandForecast.location == location)
            .first()
            is not None
        )

    def list_for_pair(self, product_id: str, location: str, start: date, end: date) -> List[DemandForecast]:
        return (
            self.db.query(DemandForecast)
            .filter(
                DemandForecast.product_id == product_id,
                DemandForecast.location == location,
                DemandForecast.period_start >= start,
                DemandForecast.period_start <= end,
            )
            .order_by(DemandForecast.period_start)
            .all()
        )


class ScheduledReceiptRepository(BaseRepository[ScheduledReceipt]):

    def __init__(self, db: Session):
        super().__init__(ScheduledReceipt, db)

    def list_open_for_pair(self, product_id: str, location: str, start: date, end: date) -> List[ScheduledReceipt]:
        return (
            self.db.query(ScheduledReceipt)
            .filter(
                ScheduledReceipt.product_id == product_id,
                ScheduledReceipt.location == location,
                ScheduledReceipt.status == "open",
                ScheduledReceipt.due_date >= start,
                ScheduledReceipt.due_date <= end,
            )
            .order_by(ScheduledReceipt.due_date)
            .all()
        )
