"""
Item Policy Repository
"""
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from replenish.models.item_policy import ItemPolicy
from replenish.repositories.base import BaseRepository


class ItemPolicyRepository(BaseRepository[ItemPolicy]):

    def __init__(self, db: Session):
        super().__init__(ItemPolicy, db)

    def get_for_pair(self, product_id: str, location: str) -> Optional[ItemPolicy]:
        return (
            self.db.query(ItemPolicy)
            .filter(ItemPolicy.product_id == product_id, ItemPolicy.location == location)
            .first()
        )

    def list_filtered(
        self,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> List[ItemPolicy]:
        q = self.db.query(ItemPolicy)
        if product_id:
            q = q.filter(ItemPolicy.product_id == product_id)
        if location:
            q = q.filter(ItemPolicy.location == location)
        if active is not None:
            q = q.filter(ItemPolicy.active == active)
        return q.order_by(ItemPolicy.product_id, ItemPolicy.location).all()

    def list_for_scope(
        self,
        product_ids: Optional[Sequence[str]] = None,
        locations: Optional[Sequence[str]] = None,
    ) -> List[ItemPolicy]:
        q = self.db.query(ItemPolicy)
        if product_ids:
            q = q.filter(ItemPolicy.product_id.in_(list(product_ids)))
        if locations:
            q = q.filter(ItemPolicy.location.in_(list(locations)))
        return q.all()
