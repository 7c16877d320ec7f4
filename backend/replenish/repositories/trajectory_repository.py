"""
Trajectory Bucket Repository
"""
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from replenish.models.trajectory import TrajectoryBucket
from replenish.repositories.run_scoped import RunScopedRepository


class TrajectoryRepository(RunScopedRepository[TrajectoryBucket]):

    def __init__(self, db: Session):
        super().__init__(TrajectoryBucket, db)

    def list_filtered(
        self,
        plan_id: int,
        run_id: Optional[str] = None,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TrajectoryBucket]:
        q = self.db.query(TrajectoryBucket).filter(TrajectoryBucket.plan_id == plan_id)
        if run_id:
            q = q.filter(TrajectoryBucket.run_id == run_id)
        else:
            q = q.filter(TrajectoryBucket.is_current.is_(True))
        if product_id:
            q = q.filter(TrajectoryBucket.product_id == product_id)
        if location:
            q = q.filter(TrajectoryBucket.location == location)
        if start_date:
            q = q.filter(TrajectoryBucket.bucket_start >= start_date)
        if end_date:
            q = q.filter(TrajectoryBucket.bucket_start <= end_date)
        return q.order_by(
            TrajectoryBucket.product_id,
            TrajectoryBucket.location,
            TrajectoryBucket.bucket_index,
        ).all()

    def list_run_ordered(self, run_id: str) -> List[TrajectoryBucket]:
        return (
            self.db.query(TrajectoryBucket)
            .filter(TrajectoryBucket.run_id == run_id)
            .order_by(
                TrajectoryBucket.product_id,
                TrajectoryBucket.location,
                TrajectoryBucket.bucket_index,
            )
            .all()
        )
