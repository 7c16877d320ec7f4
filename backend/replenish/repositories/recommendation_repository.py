"""
Purchase Recommendation Repository
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from replenish.models.purchase_recommendation import PurchaseRecommendation
from replenish.repositories.run_scoped import RunScopedRepository


class RecommendationRepository(RunScopedRepository[PurchaseRecommendation]):

    def __init__(self, db: Session):
        super().__init__(PurchaseRecommendation, db)

    def list_filtered(
        self,
        plan_id: int,
        run_id: Optional[str] = None,
        approval_status: Optional[str] = None,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
        past_due: Optional[bool] = None,
        threshold_exceeded: Optional[bool] = None,
    ) -> List[PurchaseRecommendation]:
        q = self.db.query(PurchaseRecommendation).filter(PurchaseRecommendation.plan_id == plan_id)
        if run_id:
            q = q.filter(PurchaseRecommendation.run_id == run_id)
        else:
            q = q.filter(PurchaseRecommendation.is_current.is_(True))
        if approval_status:
            q = q.filter(PurchaseRecommendation.approval_status == approval_status)
        if product_id:
            q = q.filter(PurchaseRecommendation.product_id == product_id)
        if location:
            q = q.filter(PurchaseRecommendation.location == location)
        if past_due is not None:
            q = q.filter(PurchaseRecommendation.past_due.is_(past_due))
        if threshold_exceeded is not None:
            q = q.filter(PurchaseRecommendation.threshold_exceeded.is_(threshold_exceeded))
        return q.order_by(
            PurchaseRecommendation.recommended_order_date,
            PurchaseRecommendation.product_id,
            PurchaseRecommendation.location,
        ).all()
