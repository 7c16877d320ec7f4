"""
Shared queries for rows derived by a plan run (trajectory, recommendations,
exceptions). Rows are written unpromoted under their run id and only become
visible once the run is promoted. None of these methods commit.
"""
from typing import Iterable, List, Tuple

from replenish.repositories.base import BaseRepository, ModelT


class RunScopedRepository(BaseRepository[ModelT]):

    def list_for_run(self, run_id: str) -> List[ModelT]:
        return self.db.query(self.model).filter(self.model.run_id == run_id).order_by(self.model.id).all()

    def count_for_run(self, run_id: str) -> int:
        return self.db.query(self.model).filter(self.model.run_id == run_id).count()

    def supersede_current(self, plan_id: int, run_id: str, pairs: Iterable[Tuple[str, str]]) -> int:
        """Unset the current flag on older rows of the given pairs."""
        cleared = 0
        for product_id, location in pairs:
            cleared += (
                self.db.query(self.model)
                .filter(
                    self.model.plan_id == plan_id,
                    self.model.is_current.is_(True),
                    self.model.run_id != run_id,
                    self.model.product_id == product_id,
                    self.model.location == location,
                )
                .update({self.model.is_current: False}, synchronize_session=False)
            )
        return cleared

    def promote_run(self, run_id: str) -> int:
        return (
            self.db.query(self.model)
            .filter(self.model.run_id == run_id)
            .update({self.model.is_current: True}, synchronize_session=False)
        )

    def delete_for_run(self, run_id: str) -> int:
        return (
            self.db.query(self.model)
            .filter(self.model.run_id == run_id)
            .delete(synchronize_session=False)
        )
