"""
Lifecycle state machines for plans, recommendations and planning exceptions.

Every status write in the service layer is checked against one of these
tables first; an illegal move raises InvalidStateTransitionException before
anything is mutated.
"""
from typing import Dict, FrozenSet, Iterable, Mapping

from replenish.core.exceptions import InvalidStateTransitionException
from replenish.mrp.types import ApprovalStatus, PlanStatus, ResolutionStatus


class StateMachine:

    def __init__(self, entity: str, transitions: Mapping[str, Iterable[str]]):
        self.entity = entity
        self._transitions: Dict[str, FrozenSet[str]] = {
            self._key(src): frozenset(self._key(t) for t in targets)
            for src, targets in transitions.items()
        }

    @staticmethod
    def _key(state) -> str:
        return state.value if hasattr(state, "value") else str(state)

    @property
    def states(self) -> FrozenSet[str]:
        return frozenset(self._transitions)

    def can_transition(self, current, target) -> bool:
        return self._key(target) in self._transitions.get(self._key(current), frozenset())

    def ensure(self, current, target) -> None:
        if not self.can_transition(current, target):
            raise InvalidStateTransitionException(self.entity, self._key(current), self._key(target))

    def is_terminal(self, state) -> bool:
        return not self._transitions.get(self._key(state))

    def sources_for(self, target) -> FrozenSet[str]:
        """States from which ``target`` is reachable in one step."""
        key = self._key(target)
        return frozenset(src for src, targets in self._transitions.items() if key in targets)


# running -> draft/active is the revert path after a failed or cancelled run.
PLAN_LIFECYCLE = StateMachine(
    "Plan",
    {
        PlanStatus.DRAFT: {PlanStatus.RUNNING, PlanStatus.ARCHIVED},
        PlanStatus.ACTIVE: {PlanStatus.RUNNING, PlanStatus.ARCHIVED},
        PlanStatus.RUNNING: {PlanStatus.ACTIVE, PlanStatus.DRAFT},
        PlanStatus.ARCHIVED: set(),
    },
)

RECOMMENDATION_LIFECYCLE = StateMachine(
    "Recommendation",
    {
        ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.MODIFIED},
        ApprovalStatus.MODIFIED: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.MODIFIED},
        ApprovalStatus.APPROVED: {ApprovalStatus.CONVERTED, ApprovalStatus.REJECTED},
        ApprovalStatus.REJECTED: set(),
        ApprovalStatus.CONVERTED: set(),
    },
)

EXCEPTION_LIFECYCLE = StateMachine(
    "PlanningException",
    {
        ResolutionStatus.OPEN: {ResolutionStatus.IN_PROGRESS, ResolutionStatus.RESOLVED, ResolutionStatus.IGNORED},
        ResolutionStatus.IN_PROGRESS: {ResolutionStatus.OPEN, ResolutionStatus.RESOLVED, ResolutionStatus.IGNORED},
        ResolutionStatus.IGNORED: {ResolutionStatus.OPEN},
        ResolutionStatus.RESOLVED: set(),
    },
)
