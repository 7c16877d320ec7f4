# Routers package — Thin Controllers (SRP / DIP)
from replenish.routers import (
    plans,
    recommendations,
    planning_exceptions,
    policies,
)

__all__ = [
    "plans",
    "recommendations",
    "planning_exceptions",
    "policies",
]
