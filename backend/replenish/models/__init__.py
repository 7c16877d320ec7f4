from replenish.models.plan import Plan, PlanRun
from replenish.models.item_policy import ItemPolicy
from replenish.models.inventory import InventorySnapshot
from replenish.models.demand_forecast import DemandForecast
from replenish.models.scheduled_receipt import ScheduledReceipt
from replenish.models.trajectory import TrajectoryBucket
from replenish.models.purchase_recommendation import PurchaseRecommendation
from replenish.models.planning_exception import PlanningException

__all__ = [
    "Plan",
    "PlanRun",
    "ItemPolicy",
    "InventorySnapshot",
    "DemandForecast",
    "ScheduledReceipt",
    "TrajectoryBucket",
    "PurchaseRecommendation",
    "PlanningException",
]
