"""
Planning Exception Service — planner follow-up on raised exceptions.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from replenish.core.exceptions import EntityNotFoundException, InvalidStateTransitionException, to_http_exception
from replenish.models.planning_exception import PlanningException
from replenish.mrp.lifecycle import EXCEPTION_LIFECYCLE
from replenish.mrp.types import ResolutionStatus
from replenish.repositories.plan_repository import PlanRunRepository
from replenish.repositories.planning_exception_repository import PlanningExceptionRepository
from replenish.schemas.planning import PlanningExceptionUpdateRequest
from replenish.utils.events import EntityUpdatedEvent, get_event_bus


class PlanningExceptionService:

    def __init__(self, db: Session):
        self._repo = PlanningExceptionRepository(db)
        self._run_repo = PlanRunRepository(db)
        self._bus = get_event_bus()

    def get_exception(self, exception_id: int) -> PlanningException:
        ex = self._repo.get_by_id(exception_id)
        if ex:
            run = self._run_repo.get_by_run_id(ex.run_id)
            if run and run.promoted_at is not None:
                return ex
        raise to_http_exception(EntityNotFoundException("PlanningException", exception_id))

    def update_exception(self, exception_id: int, payload: PlanningExceptionUpdateRequest) -> PlanningException:
        ex = self.get_exception(exception_id)
        updates = payload.model_dump(exclude_unset=True)

        target = updates.get("resolution_status")
        if target and target != ex.resolution_status:
            try:
                EXCEPTION_LIFECYCLE.ensure(ex.resolution_status, target)
            except InvalidStateTransitionException as exc:
                raise to_http_exception(exc)
            if target == ResolutionStatus.RESOLVED.value:
                updates["resolved_at"] = datetime.utcnow()
            elif ex.resolved_at is not None:
                updates["resolved_at"] = None
        elif target:
            updates.pop("resolution_status")

        if not updates:
            return ex

        old_values = {
            "resolution_status": ex.resolution_status,
            "resolution_notes": ex.resolution_notes,
        }
        ex = self._repo.update(ex, updates)

        self._bus.publish(EntityUpdatedEvent(
            entity_type="planning_exception",
            entity_id=exception_id,
            old_values=old_values,
            new_values={
                "resolution_status": ex.resolution_status,
                "resolution_notes": ex.resolution_notes,
            },
        ))
        return ex

    def resolve(self, exception_id: int, notes: Optional[str] = None) -> PlanningException:
        ex = self.get_exception(exception_id)
        if ex.resolution_status == ResolutionStatus.RESOLVED.value:
            raise to_http_exception(
                InvalidStateTransitionException("PlanningException", ex.resolution_status, ResolutionStatus.RESOLVED.value)
            )
        fields = {"resolution_status": ResolutionStatus.RESOLVED.value}
        if notes is not None:
            fields["resolution_notes"] = notes
        return self.update_exception(exception_id, PlanningExceptionUpdateRequest(**fields))
