"""
Planning-input providers: inventory snapshot, demand forecast and scheduled
receipts, aggregated onto the plan's buckets.

Each pair task builds its own provider over its own session, so an instance
is never shared between threads.
"""
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from replenish.core.exceptions import PairComputationError
from replenish.mrp.calendar import bucket_index_for
from replenish.mrp.types import Bucket, PairInputs, StockPosition, ZERO, q2
from replenish.repositories.inventory_repository import InventoryRepository
from replenish.repositories.supply_demand_repository import (
    DemandForecastRepository,
    ScheduledReceiptRepository,
)


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


class DatabasePlanningInputs:

    def __init__(self, db: Session):
        self._inventory = InventoryRepository(db)
        self._demand = DemandForecastRepository(db)
        self._receipts = ScheduledReceiptRepository(db)

    def current_stock(self, product_id: str, location: str) -> StockPosition:
        snapshot = self._inventory.get_for_pair(product_id, location)
        if snapshot is None:
            raise PairComputationError(product_id, location, "no inventory snapshot")
        return StockPosition(on_hand=_dec(snapshot.on_hand_qty), committed=_dec(snapshot.allocated_qty))

    def demand(self, product_id: str, location: str, buckets: Sequence[Bucket]) -> Optional[Tuple[Decimal, ...]]:
        """Gross requirements per bucket; None when the pair has no forecast records at all."""
        if not self._demand.has_forecast(product_id, location):
            return None
        totals: List[Decimal] = [ZERO] * len(buckets)
        for row in self._demand.list_for_pair(product_id, location, buckets[0].start, buckets[-1].end):
            idx = bucket_index_for(buckets, row.period_start)
            if idx is not None:
                totals[idx] += _dec(row.quantity)
        return tuple(q2(t) for t in totals)

    def scheduled_receipts(self, product_id: str, location: str, buckets: Sequence[Bucket]) -> Tuple[Decimal, ...]:
        totals: List[Decimal] = [ZERO] * len(buckets)
        for row in self._receipts.list_open_for_pair(product_id, location, buckets[0].start, buckets[-1].end):
            idx = bucket_index_for(buckets, row.due_date)
            if idx is not None:
                totals[idx] += _dec(row.quantity)
        return tuple(q2(t) for t in totals)

    def pair_inputs(self, product_id: str, location: str, buckets: Sequence[Bucket]) -> PairInputs:
        return PairInputs(
            product_id=product_id,
            location=location,
            stock=self.current_stock(product_id, location),
            gross_requirements=self.demand(product_id, location, buckets),
            scheduled_receipts=self.scheduled_receipts(product_id, location, buckets),
        )
