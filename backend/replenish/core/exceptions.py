"""
Domain Exceptions

Every error raised by the planning engine derives from ReplenishException so the
API layer can translate it with a single handler. Services that serve plain
request/response reads raise ``to_http_exception(...)`` directly; the plan
orchestrator raises the domain exception and lets the global handler map it.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class ReplenishException(Exception):
    code = "REPLENISH_ERROR"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EntityNotFoundException(ReplenishException):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} with id '{entity_id}' not found.", {"entity": entity, "id": entity_id})


class BusinessRuleViolationException(ReplenishException):
    code = "BUSINESS_RULE_VIOLATION"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidStateTransitionException(BusinessRuleViolationException):
    code = "INVALID_STATE_TRANSITION"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"{entity} cannot move from '{current}' to '{target}'.",
            {"entity": entity, "current": current, "target": target},
        )
        self.current = current
        self.target = target


class ConcurrentRunError(ReplenishException):
    """Another run already holds the plan."""

    code = "CONCURRENT_RUN"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, plan_id: int):
        super().__init__(
            f"Plan {plan_id} already has a run in progress.",
            {"plan_id": plan_id},
        )


class InfrastructureError(ReplenishException):
    """Policy Store or persistence unavailable. Fatal to the current run only."""

    code = "INFRASTRUCTURE_UNAVAILABLE"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, details: Optional[dict] = None):
        details = dict(details or {})
        details.setdefault("retry", "The plan was restored to its pre-run status; retry the run once the dependency is reachable.")
        super().__init__(message, details)


class PairComputationError(ReplenishException):
    """Malformed policy or planning inputs for a single (product, location)."""

    code = "PAIR_COMPUTATION_ERROR"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, product_id: str, location: str, reason: str):
        super().__init__(
            f"Cannot plan {product_id}@{location}: {reason}",
            {"product_id": product_id, "location": location},
        )
        self.product_id = product_id
        self.location = location
        self.reason = reason


def to_http_exception(exc: ReplenishException) -> HTTPException:
    return HTTPException(
        status_code=exc.http_status,
        detail={"code": exc.code, "message": exc.message, **({"details": exc.details} if exc.details else {})},
    )
