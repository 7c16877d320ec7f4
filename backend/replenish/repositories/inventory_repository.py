"""
Inventory Snapshot Repository
"""
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from replenish.models.inventory import InventorySnapshot
from replenish.repositories.base import BaseRepository


class InventoryRepository(BaseRepository[InventorySnapshot]):

    def __init__(self, db: Session):
        super().__init__(InventorySnapshot, db)

    def get_for_pair(self, product_id: str, location: str) -> Optional[InventorySnapshot]:
        return (
            self.db.query(InventorySnapshot)
            .filter(InventorySnapshot.product_id == product_id, InventorySnapshot.location == location)
            .first()
        )

    def list_for_scope(
        self,
        product_ids: Optional[Sequence[str]] = None,
        locations: Optional[Sequence[str]] = None,
    ) -> List[InventorySnapshot]:
        q = self.db.query(InventorySnapshot)
        if product_ids:
            q = q.filter(InventorySnapshot.product_id.in_(list(product_ids)))
        if locations:
            q = q.filter(InventorySnapshot.location.in_(list(locations)))
        return q.order_by(InventorySnapshot.product_id, InventorySnapshot.location).all()
