# Repository Layer — Data Access (Repository Pattern, GoF)
from replenish.repositories.base import BaseRepository
from replenish.repositories.plan_repository import PlanRepository, PlanRunRepository
from replenish.repositories.item_policy_repository import ItemPolicyRepository
from replenish.repositories.inventory_repository import InventoryRepository
from replenish.repositories.supply_demand_repository import DemandForecastRepository, ScheduledReceiptRepository
from replenish.repositories.trajectory_repository import TrajectoryRepository
from replenish.repositories.recommendation_repository import RecommendationRepository
from replenish.repositories.planning_exception_repository import PlanningExceptionRepository

__all__ = [
    "BaseRepository",
    "PlanRepository",
    "PlanRunRepository",
    "ItemPolicyRepository",
    "InventoryRepository",
    "DemandForecastRepository",
    "ScheduledReceiptRepository",
    "TrajectoryRepository",
    "RecommendationRepository",
    "PlanningExceptionRepository",
]
