"""
Plan Run Maintenance Utility

Runner-style helpers executed outside the request/response flow (cron, CI,
scheduled task runner):

- run plans whose ``next_run_at`` is due;
- recover plans left in ``running`` by a process that died mid-run;
- purge derived rows of runs that were never promoted.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from replenish.config import settings
from replenish.core.exceptions import ReplenishException
from replenish.database import SessionLocal
from replenish.mrp.types import PlanStatus, RunStatus
from replenish.repositories.plan_repository import PlanRepository, PlanRunRepository
from replenish.repositories.planning_exception_repository import PlanningExceptionRepository
from replenish.repositories.recommendation_repository import RecommendationRepository
from replenish.repositories.trajectory_repository import TrajectoryRepository
from replenish.services.plan_run_service import PlanRunService, is_run_active_here
from replenish.services.plan_service import transition_plan_status
from replenish.utils.events import PlanStatusChangedEvent, get_event_bus

logger = logging.getLogger(__name__)


def run_due_plans(
    now: Optional[datetime] = None,
    as_of: Optional[date] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> dict:
    """Run every active plan whose next_run_at has passed."""
    now = now or datetime.utcnow()
    db = session_factory()
    try:
        due = [plan.id for plan in PlanRepository(db).list_due(now)]
        completed, failed = [], []
        for plan_id in due:
            service = PlanRunService(db, session_factory=session_factory)
            try:
                result = service.run(plan_id, as_of=as_of, trigger_source="scheduled")
                completed.append({"plan_id": plan_id, "run_id": result.run_id, "status": result.status})
            except ReplenishException as exc:
                logger.warning("scheduled_plan_run_failed plan_id=%s code=%s message=%s", plan_id, exc.code, exc.message)
                failed.append({"plan_id": plan_id, "code": exc.code, "message": exc.message})
            except Exception as exc:  # noqa: BLE001
                logger.exception("scheduled_plan_run_crashed plan_id=%s", plan_id)
                failed.append({"plan_id": plan_id, "code": type(exc).__name__, "message": str(exc)})
        return {"due": len(due), "completed": completed, "failed": failed}
    finally:
        db.close()


def recover_stale_runs(
    stale_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> dict:
    """Fail runs stuck in ``running`` and put their plans back to the pre-run status."""
    minutes = stale_minutes or settings.STALE_RUN_MINUTES
    cutoff = (now or datetime.utcnow()) - timedelta(minutes=minutes)
    bus = get_event_bus()

    db = session_factory()
    try:
        plans = PlanRepository(db)
        recovered = []
        for run in PlanRunRepository(db).list_stale(cutoff):
            if is_run_active_here(run.run_id):
                continue
            transition_plan_status(plans, run.plan_id, PlanStatus.RUNNING.value, run.previous_status)
            run.status = RunStatus.FAILED.value
            run.error = f"Recovered after exceeding {minutes} minutes in running state"
            run.completed_at = datetime.utcnow()
            db.commit()
            recovered.append(run.run_id)
            logger.warning(
                "stale_plan_run_recovered plan_id=%s run_id=%s reverted_to=%s",
                run.plan_id, run.run_id, run.previous_status,
            )
            bus.publish(PlanStatusChangedEvent(
                entity_id=run.plan_id,
                old_status=PlanStatus.RUNNING.value,
                new_status=run.previous_status,
                run_id=run.run_id,
            ))
        return {"stale_minutes": minutes, "cutoff": cutoff.isoformat(), "recovered_runs": recovered}
    finally:
        db.close()


def purge_unpromoted_runs(
    retention_days: Optional[int] = None,
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> dict:
    """Delete rows written by failed or cancelled runs once past retention."""
    days = retention_days or settings.PLAN_RUN_RETENTION_DAYS
    cutoff = (now or datetime.utcnow()) - timedelta(days=days)

    db = session_factory()
    try:
        trajectory = TrajectoryRepository(db)
        recommendations = RecommendationRepository(db)
        exceptions = PlanningExceptionRepository(db)

        runs = PlanRunRepository(db).list_unpromoted_finished_before(cutoff)
        deleted_rows = 0
        for run in runs:
            # Children reference trajectory rows, so they go first.
            deleted_rows += recommendations.delete_for_run(run.run_id)
            deleted_rows += exceptions.delete_for_run(run.run_id)
            deleted_rows += trajectory.delete_for_run(run.run_id)
        db.commit()

        logger.info("unpromoted_runs_purged runs=%s rows=%s cutoff=%s", len(runs), deleted_rows, cutoff.isoformat())
        return {
            "retention_days": days,
            "cutoff": cutoff.isoformat(),
            "purged_runs": len(runs),
            "deleted_rows": deleted_rows,
        }
    finally:
        db.close()
