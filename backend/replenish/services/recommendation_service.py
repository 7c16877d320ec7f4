"""
Recommendation Service — planner decisions on purchase recommendations.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from replenish.core.exceptions import EntityNotFoundException, InvalidStateTransitionException, to_http_exception
from replenish.models.purchase_recommendation import PurchaseRecommendation
from replenish.mrp.lifecycle import RECOMMENDATION_LIFECYCLE
from replenish.mrp.types import ApprovalStatus
from replenish.repositories.plan_repository import PlanRunRepository
from replenish.repositories.recommendation_repository import RecommendationRepository
from replenish.schemas.planning import RecommendationModifyRequest
from replenish.utils.events import EntityUpdatedEvent, get_event_bus


class RecommendationService:

    def __init__(self, db: Session):
        self._repo = RecommendationRepository(db)
        self._run_repo = PlanRunRepository(db)
        self._bus = get_event_bus()

    def get_recommendation(self, recommendation_id: int) -> PurchaseRecommendation:
        rec = self._repo.get_by_id(recommendation_id)
        if rec:
            run = self._run_repo.get_by_run_id(rec.run_id)
            if run and run.promoted_at is not None:
                return rec
        raise to_http_exception(EntityNotFoundException("Recommendation", recommendation_id))

    def approve(self, recommendation_id: int, notes: Optional[str] = None) -> PurchaseRecommendation:
        return self._decide(recommendation_id, ApprovalStatus.APPROVED, {"notes": notes} if notes else {})

    def reject(self, recommendation_id: int, notes: Optional[str] = None) -> PurchaseRecommendation:
        return self._decide(recommendation_id, ApprovalStatus.REJECTED, {"notes": notes} if notes else {})

    def modify(self, recommendation_id: int, patch: RecommendationModifyRequest) -> PurchaseRecommendation:
        rec = self.get_recommendation(recommendation_id)
        updates = patch.model_dump(exclude_unset=True, exclude_none=True)

        quantity = updates.get("final_order_quantity", rec.final_order_quantity)
        unit_cost = updates.get("unit_cost", rec.unit_cost)
        total_value = (Decimal(str(quantity)) * Decimal(str(unit_cost))).quantize(Decimal("0.01"))
        updates["total_value"] = total_value
        updates["threshold_exceeded"] = total_value > Decimal(str(rec.approval_threshold))

        return self._decide(recommendation_id, ApprovalStatus.MODIFIED, updates, rec=rec)

    def mark_converted(
        self,
        recommendation_id: int,
        order_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PurchaseRecommendation:
        updates = {}
        if order_reference:
            updates["order_reference"] = order_reference
        if notes:
            updates["notes"] = notes
        return self._decide(recommendation_id, ApprovalStatus.CONVERTED, updates)

    def _decide(
        self,
        recommendation_id: int,
        target: ApprovalStatus,
        updates: dict,
        rec: Optional[PurchaseRecommendation] = None,
    ) -> PurchaseRecommendation:
        rec = rec or self.get_recommendation(recommendation_id)
        try:
            RECOMMENDATION_LIFECYCLE.ensure(rec.approval_status, target)
        except InvalidStateTransitionException as exc:
            raise to_http_exception(exc)

        old_values = {
            "approval_status": rec.approval_status,
            **{k: self._serialize(getattr(rec, k)) for k in updates},
        }
        rec = self._repo.update(rec, {**updates, "approval_status": target.value, "decided_at": datetime.utcnow()})

        self._bus.publish(EntityUpdatedEvent(
            entity_type="purchase_recommendation",
            entity_id=recommendation_id,
            old_values=old_values,
            new_values={
                "approval_status": rec.approval_status,
                **{k: self._serialize(v) for k, v in updates.items()},
            },
        ))
        return rec

    def _serialize(self, value):
        if isinstance(value, Decimal):
            return str(value)
        if hasattr(value, "isoformat"):
            return value.isoformat()
        return value
