"""
Plan and Plan Run Repositories
"""
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from replenish.models.plan import Plan, PlanRun
from replenish.repositories.base import BaseRepository


class PlanRepository(BaseRepository[Plan]):

    def __init__(self, db: Session):
        super().__init__(Plan, db)

    def get_by_code(self, code: str) -> Optional[Plan]:
        return self.db.query(Plan).filter(Plan.code == code).first()

    def next_code(self, plan_type: str, on: date) -> str:
        prefix = f"{plan_type.upper()}-{on.strftime('%Y%m%d')}-"
        count = self.db.query(Plan).filter(Plan.code.like(f"{prefix}%")).count()
        return f"{prefix}{count + 1:04d}"

    def list_filtered(
        self,
        status: Optional[str] = None,
        plan_type: Optional[str] = None,
    ) -> List[Plan]:
        q = self.db.query(Plan)
        if status:
            q = q.filter(Plan.status == status)
        if plan_type:
            q = q.filter(Plan.plan_type == plan_type)
        return q.order_by(Plan.created_at.desc(), Plan.id.desc()).all()

    def compare_and_set_status(
        self,
        plan_id: int,
        expected: Iterable[str],
        target: str,
        values: Optional[dict] = None,
    ) -> bool:
        """Conditional status write; False when the row was not in an expected state."""
        updated = (
            self.db.query(Plan)
            .filter(Plan.id == plan_id, Plan.status.in_(list(expected)))
            .update({Plan.status: target, **(values or {})}, synchronize_session=False)
        )
        return updated == 1

    def list_due(self, now: datetime) -> List[Plan]:
        return (
            self.db.query(Plan)
            .filter(Plan.status == "active", Plan.next_run_at.isnot(None), Plan.next_run_at <= now)
            .order_by(Plan.next_run_at)
            .all()
        )


class PlanRunRepository(BaseRepository[PlanRun]):

    def __init__(self, db: Session):
        super().__init__(PlanRun, db)

    def get_by_run_id(self, run_id: str) -> Optional[PlanRun]:
        return self.db.query(PlanRun).filter(PlanRun.run_id == run_id).first()

    def list_for_plan(self, plan_id: int, limit: int = 50) -> List[PlanRun]:
        return (
            self.db.query(PlanRun)
            .filter(PlanRun.plan_id == plan_id)
            .order_by(PlanRun.started_at.desc(), PlanRun.id.desc())
            .limit(limit)
            .all()
        )

    def list_stale(self, cutoff: datetime) -> List[PlanRun]:
        return (
            self.db.query(PlanRun)
            .filter(PlanRun.status == "running", PlanRun.started_at < cutoff)
            .order_by(PlanRun.started_at)
            .all()
        )

    def list_unpromoted_finished_before(self, cutoff: datetime) -> List[PlanRun]:
        return (
            self.db.query(PlanRun)
            .filter(PlanRun.status.in_(["failed", "cancelled"]))
            .filter(PlanRun.promoted_at.is_(None))
            .filter(PlanRun.completed_at.isnot(None))
            .filter(PlanRun.completed_at < cutoff)
            .all()
        )
