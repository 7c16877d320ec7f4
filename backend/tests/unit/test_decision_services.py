from decimal import Decimal

import pytest
from fastapi import HTTPException

from conftest import AS_OF, seed_plan
from replenish.models import PlanningException, PurchaseRecommendation
from replenish.schemas.planning import PlanningExceptionUpdateRequest, RecommendationModifyRequest
from replenish.services.plan_run_service import PlanRunService
from replenish.services.planning_exception_service import PlanningExceptionService
from replenish.services.recommendation_service import RecommendationService


@pytest.fixture
def promoted_plan(db, session_factory, standard_pair):
    plan = seed_plan(db)
    PlanRunService(db, session_factory=session_factory).run(plan.id, as_of=AS_OF)
    return plan


def _first_recommendation(db, plan_id) -> PurchaseRecommendation:
    return (
        db.query(PurchaseRecommendation)
        .filter(PurchaseRecommendation.plan_id == plan_id)
        .order_by(PurchaseRecommendation.bucket_start)
        .first()
    )


def _exception(db, plan_id, exception_type) -> PlanningException:
    return (
        db.query(PlanningException)
        .filter(PlanningException.plan_id == plan_id, PlanningException.exception_type == exception_type)
        .one()
    )


class TestRecommendationDecisions:

    def test_approve_then_convert(self, db, promoted_plan):
        rec = _first_recommendation(db, promoted_plan.id)
        service = RecommendationService(db)

        approved = service.approve(rec.id, notes="ok for next PO run")
        assert approved.approval_status == "approved"
        assert approved.notes == "ok for next PO run"
        assert approved.decided_at is not None

        converted = service.mark_converted(rec.id, order_reference="PO-7781")
        assert converted.approval_status == "converted"
        assert converted.order_reference == "PO-7781"

    def test_converted_recommendation_is_final(self, db, promoted_plan):
        rec = _first_recommendation(db, promoted_plan.id)
        service = RecommendationService(db)
        service.approve(rec.id)
        service.mark_converted(rec.id)

        with pytest.raises(HTTPException) as exc:
            service.reject(rec.id)
        assert exc.value.status_code == 409

    def test_pending_recommendation_cannot_be_converted(self, db, promoted_plan):
        rec = _first_recommendation(db, promoted_plan.id)
        with pytest.raises(HTTPException) as exc:
            RecommendationService(db).mark_converted(rec.id)
        assert exc.value.status_code == 409

    def test_modify_recalculates_value_and_threshold(self, db, promoted_plan):
        rec = _first_recommendation(db, promoted_plan.id)

        modified = RecommendationService(db).modify(
            rec.id,
            RecommendationModifyRequest(final_order_quantity=Decimal("2500"), supplier_name="Backup Supply"),
        )

        assert modified.approval_status == "modified"
        assert Decimal(str(modified.final_order_quantity)) == Decimal("2500")
        assert modified.supplier_name == "Backup Supply"
        # 2500 x 5 against the default 10000 threshold
        assert Decimal(str(modified.total_value)) == Decimal("12500.00")
        assert modified.threshold_exceeded is True
        # the engine's own quantity is kept for comparison
        assert Decimal(str(modified.recommended_quantity)) == Decimal("10")

    def test_modified_recommendation_can_be_approved(self, db, promoted_plan):
        rec = _first_recommendation(db, promoted_plan.id)
        service = RecommendationService(db)
        service.modify(rec.id, RecommendationModifyRequest(final_order_quantity=Decimal("12")))
        assert service.approve(rec.id).approval_status == "approved"

    def test_unknown_recommendation(self, db):
        with pytest.raises(HTTPException) as exc:
            RecommendationService(db).get_recommendation(12345)
        assert exc.value.status_code == 404


class TestExceptionFollowUp:

    def test_progress_then_resolve(self, db, promoted_plan):
        ex = _exception(db, promoted_plan.id, "stockout")
        service = PlanningExceptionService(db)

        in_progress = service.update_exception(
            ex.id, PlanningExceptionUpdateRequest(resolution_status="in_progress", resolution_notes="expediting"),
        )
        assert in_progress.resolution_status == "in_progress"
        assert in_progress.resolution_notes == "expediting"

        resolved = service.resolve(ex.id, notes="PO expedited")
        assert resolved.resolution_status == "resolved"
        assert resolved.resolved_at is not None
        assert resolved.resolution_notes == "PO expedited"

    def test_resolved_exception_cannot_be_reopened_or_resolved_again(self, db, promoted_plan):
        ex = _exception(db, promoted_plan.id, "excess_inventory")
        service = PlanningExceptionService(db)
        service.resolve(ex.id)

        with pytest.raises(HTTPException) as exc:
            service.update_exception(ex.id, PlanningExceptionUpdateRequest(resolution_status="open"))
        assert exc.value.status_code == 409

        with pytest.raises(HTTPException) as exc:
            service.resolve(ex.id)
        assert exc.value.status_code == 409

    def test_ignored_exception_can_be_reopened(self, db, promoted_plan):
        ex = _exception(db, promoted_plan.id, "below_safety_stock")
        service = PlanningExceptionService(db)
        service.update_exception(ex.id, PlanningExceptionUpdateRequest(resolution_status="ignored"))

        reopened = service.update_exception(ex.id, PlanningExceptionUpdateRequest(resolution_status="open"))
        assert reopened.resolution_status == "open"
        assert reopened.resolved_at is None

    def test_notes_only_update_keeps_status(self, db, promoted_plan):
        ex = _exception(db, promoted_plan.id, "stockout")
        updated = PlanningExceptionService(db).update_exception(
            ex.id, PlanningExceptionUpdateRequest(resolution_notes="waiting on supplier"),
        )
        assert updated.resolution_status == "open"
        assert updated.resolution_notes == "waiting on supplier"
