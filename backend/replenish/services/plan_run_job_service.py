"""
Plan Run Job Service

Background execution of plan runs. The run is started (and the plan locked
into ``running``) synchronously, so a concurrent request fails fast with 409;
netting and promotion then continue on a small executor.

Note:
- This is an in-process implementation; cancellation only reaches runs that
  execute in this process. Runs orphaned by a restart are picked up by
  ``plan_run_maintenance.recover_stale_runs``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session

from replenish.core.exceptions import EntityNotFoundException, InvalidStateTransitionException, ReplenishException
from replenish.database import SessionLocal
from replenish.models.plan import PlanRun
from replenish.mrp.types import RunStatus
from replenish.repositories.plan_repository import PlanRunRepository
from replenish.services.plan_run_service import PlanRunService, request_cancel

logger = logging.getLogger(__name__)


class PlanRunJobService:
    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="plan-run-worker")

    def enqueue_run(
        self,
        db: Session,
        plan_id: int,
        scope: Optional[dict] = None,
        as_of: Optional[date] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ) -> PlanRun:
        factory = session_factory or SessionLocal
        run = PlanRunService(db, session_factory=factory).start(plan_id, scope=scope, trigger_source="async")
        self._executor.submit(self._execute_run, run.run_id, as_of, factory)
        return run

    def get_run(self, db: Session, run_id: str) -> PlanRun:
        run = PlanRunRepository(db).get_by_run_id(run_id)
        if not run:
            raise EntityNotFoundException("PlanRun", run_id)
        return run

    def cancel_run(self, db: Session, run_id: str) -> PlanRun:
        run = self.get_run(db, run_id)
        if run.status != RunStatus.RUNNING.value:
            raise InvalidStateTransitionException("PlanRun", run.status, RunStatus.CANCELLED.value)
        if not request_cancel(run_id):
            raise InvalidStateTransitionException("PlanRun", "orphaned", RunStatus.CANCELLED.value)
        logger.info("plan_run_cancel_requested run_id=%s plan_id=%s", run_id, run.plan_id)
        return run

    def _execute_run(self, run_id: str, as_of: Optional[date], session_factory: Callable[[], Session]) -> None:
        db = session_factory()
        try:
            PlanRunService(db, session_factory=session_factory).execute(run_id, as_of=as_of)
        except ReplenishException as exc:
            # Already recorded on the run row and the plan reverted.
            logger.error("plan_run_job_failed run_id=%s code=%s message=%s", run_id, exc.code, exc.message)
        except Exception:  # noqa: BLE001
            logger.exception("plan_run_job_crashed run_id=%s", run_id)
        finally:
            db.close()


plan_run_job_service = PlanRunJobService()
