"""
Plan Service — plan management and reads of promoted planning output.
"""
import json
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from replenish.core.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    InvalidStateTransitionException,
    to_http_exception,
)
from replenish.models.plan import Plan, PlanRun
from replenish.models.planning_exception import PlanningException
from replenish.models.purchase_recommendation import PurchaseRecommendation
from replenish.models.trajectory import TrajectoryBucket
from replenish.mrp.lifecycle import PLAN_LIFECYCLE
from replenish.mrp.types import PlanStatus
from replenish.repositories.plan_repository import PlanRepository, PlanRunRepository
from replenish.repositories.planning_exception_repository import PlanningExceptionRepository
from replenish.repositories.recommendation_repository import RecommendationRepository
from replenish.repositories.trajectory_repository import TrajectoryRepository
from replenish.schemas.plan import PlanCreate, PlanUpdate
from replenish.utils.events import EntityCreatedEvent, EntityUpdatedEvent, PlanStatusChangedEvent, get_event_bus


def transition_plan_status(
    repo: PlanRepository,
    plan_id: int,
    current: str,
    target: str,
    values: Optional[dict] = None,
) -> bool:
    """
    The single write path for plan status. Checks the lifecycle table, then
    writes with a compare-and-set on ``current`` so two writers can never both
    win. Does not commit.
    """
    PLAN_LIFECYCLE.ensure(current, target)
    return repo.compare_and_set_status(plan_id, [current], target, values)


class PlanService:

    def __init__(self, db: Session):
        self.db = db
        self._repo = PlanRepository(db)
        self._run_repo = PlanRunRepository(db)
        self._trajectory_repo = TrajectoryRepository(db)
        self._recommendation_repo = RecommendationRepository(db)
        self._exception_repo = PlanningExceptionRepository(db)
        self._bus = get_event_bus()

    def create_plan(self, data: PlanCreate) -> Plan:
        plan = self._repo.create(
            Plan(
                code=self._repo.next_code(data.plan_type, date.today()),
                name=data.name,
                description=data.description,
                plan_type=data.plan_type,
                horizon_buckets=data.horizon_buckets,
                bucket_granularity=data.bucket_granularity,
                horizon_start=data.horizon_start,
                status=PlanStatus.DRAFT.value,
                parameters_json=json.dumps(data.parameters) if data.parameters else None,
            )
        )
        self._bus.publish(EntityCreatedEvent(entity_type="plan", entity_id=plan.id))
        return plan

    def list_plans(self, status: Optional[str] = None, plan_type: Optional[str] = None) -> List[Plan]:
        return self._repo.list_filtered(status=status, plan_type=plan_type)

    def get_plan(self, plan_id: int) -> Plan:
        plan = self._repo.get_by_id(plan_id)
        if not plan:
            raise to_http_exception(EntityNotFoundException("Plan", plan_id))
        return plan

    def update_plan(self, plan_id: int, data: PlanUpdate) -> Plan:
        plan = self.get_plan(plan_id)
        if plan.status in (PlanStatus.RUNNING.value, PlanStatus.ARCHIVED.value):
            raise to_http_exception(
                BusinessRuleViolationException(f"A {plan.status} plan cannot be edited.", {"status": plan.status})
            )

        updates = data.model_dump(exclude_unset=True)
        if "parameters" in updates:
            params = updates.pop("parameters")
            updates["parameters_json"] = json.dumps(params) if params else None

        old_values = {k: self._serialize(getattr(plan, k)) for k in updates}
        plan = self._repo.update(plan, updates)
        self._bus.publish(EntityUpdatedEvent(
            entity_type="plan",
            entity_id=plan_id,
            old_values=old_values,
            new_values={k: self._serialize(v) for k, v in updates.items()},
        ))
        return plan

    def archive_plan(self, plan_id: int) -> Plan:
        plan = self.get_plan(plan_id)
        current = plan.status
        try:
            archived = transition_plan_status(self._repo, plan_id, current, PlanStatus.ARCHIVED.value)
        except InvalidStateTransitionException as exc:
            raise to_http_exception(exc)
        if not archived:
            # A run grabbed the plan between the read and the write.
            self.db.rollback()
            raise to_http_exception(
                InvalidStateTransitionException("Plan", PlanStatus.RUNNING.value, PlanStatus.ARCHIVED.value)
            )
        self.db.commit()
        self.db.refresh(plan)
        self._bus.publish(PlanStatusChangedEvent(
            entity_id=plan_id, old_status=current, new_status=plan.status,
        ))
        return plan

    def list_runs(self, plan_id: int, limit: int = 50) -> List[PlanRun]:
        self.get_plan(plan_id)
        return self._run_repo.list_for_plan(plan_id, limit=limit)

    def get_run(self, run_id: str) -> PlanRun:
        run = self._run_repo.get_by_run_id(run_id)
        if not run:
            raise to_http_exception(EntityNotFoundException("PlanRun", run_id))
        return run

    def get_trajectory(
        self,
        plan_id: int,
        run_id: Optional[str] = None,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TrajectoryBucket]:
        self.get_plan(plan_id)
        self._check_run_visible(plan_id, run_id)
        return self._trajectory_repo.list_filtered(
            plan_id,
            run_id=run_id,
            product_id=product_id,
            location=location,
            start_date=start_date,
            end_date=end_date,
        )

    def get_recommendations(
        self,
        plan_id: int,
        run_id: Optional[str] = None,
        approval_status: Optional[str] = None,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
        past_due: Optional[bool] = None,
        threshold_exceeded: Optional[bool] = None,
    ) -> List[PurchaseRecommendation]:
        self.get_plan(plan_id)
        self._check_run_visible(plan_id, run_id)
        return self._recommendation_repo.list_filtered(
            plan_id,
            run_id=run_id,
            approval_status=approval_status,
            product_id=product_id,
            location=location,
            past_due=past_due,
            threshold_exceeded=threshold_exceeded,
        )

    def get_exceptions(
        self,
        plan_id: int,
        run_id: Optional[str] = None,
        exception_type: Optional[str] = None,
        severity: Optional[str] = None,
        resolution_status: Optional[str] = None,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[PlanningException]:
        self.get_plan(plan_id)
        self._check_run_visible(plan_id, run_id)
        return self._exception_repo.list_filtered(
            plan_id,
            run_id=run_id,
            exception_type=exception_type,
            severity=severity,
            resolution_status=resolution_status,
            product_id=product_id,
            location=location,
        )

    def _check_run_visible(self, plan_id: int, run_id: Optional[str]) -> None:
        """Rows of a run are readable only once that run was promoted."""
        if not run_id:
            return
        run = self._run_repo.get_by_run_id(run_id)
        if not run or run.plan_id != plan_id or run.promoted_at is None:
            raise to_http_exception(EntityNotFoundException("PlanRun", run_id))

    def _serialize(self, value):
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value
