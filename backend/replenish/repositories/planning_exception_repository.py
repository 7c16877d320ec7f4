"""
Planning Exception Repository
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from replenish.models.planning_exception import PlanningException
from replenish.repositories.run_scoped import RunScopedRepository

SEVERITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


class PlanningExceptionRepository(RunScopedRepository[PlanningException]):

    def __init__(self, db: Session):
        super().__init__(PlanningException, db)

    def list_filtered(
        self,
        plan_id: int,
        run_id: Optional[str] = None,
        exception_type: Optional[str] = None,
        severity: Optional[str] = None,
        resolution_status: Optional[str] = None,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[PlanningException]:
        q = self.db.query(PlanningException).filter(PlanningException.plan_id == plan_id)
        if run_id:
            q = q.filter(PlanningException.run_id == run_id)
        else:
            q = q.filter(PlanningException.is_current.is_(True))
        if exception_type:
            q = q.filter(PlanningException.exception_type == exception_type)
        if severity:
            q = q.filter(PlanningException.severity == severity)
        if resolution_status:
            q = q.filter(PlanningException.resolution_status == resolution_status)
        if product_id:
            q = q.filter(PlanningException.product_id == product_id)
        if location:
            q = q.filter(PlanningException.location == location)
        rows = q.order_by(PlanningException.bucket_start, PlanningException.id).all()
        return sorted(rows, key=lambda e: SEVERITY_ORDER.get(e.severity, len(SEVERITY_ORDER)))
