"""
Plans Router — Thin Controller (SRP / DIP)
"""
from datetime import date
from typing import Callable, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from replenish.database import get_db, get_session_factory
from replenish.schemas.plan import (
    PlanCreate,
    PlanUpdate,
    PlanResponse,
    PlanRunScope,
    PlanRunResponse,
    RunResult,
)
from replenish.schemas.planning import (
    TrajectoryBucketResponse,
    RecommendationResponse,
    PlanningExceptionResponse,
)
from replenish.services.plan_run_job_service import plan_run_job_service
from replenish.services.plan_run_service import PlanRunService
from replenish.services.plan_service import PlanService

router = APIRouter(tags=["Planning Runs"])


def get_plan_service(db: Session = Depends(get_db)) -> PlanService:
    return PlanService(db)


def get_plan_run_service(
    db: Session = Depends(get_db),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> PlanRunService:
    return PlanRunService(db, session_factory=session_factory)


def _scope_dict(scope: Optional[PlanRunScope]) -> Optional[dict]:
    if scope is None:
        return None
    data = scope.model_dump(exclude_none=True, exclude={"as_of"})
    return data or None


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    data: PlanCreate,
    service: PlanService = Depends(get_plan_service),
):
    return service.create_plan(data)


@router.get("/plans", response_model=List[PlanResponse])
def list_plans(
    plan_status: Optional[str] = Query(None, alias="status", pattern="^(draft|running|active|archived)$"),
    plan_type: Optional[str] = Query(None, pattern="^(MRP|DRP|Manual)$"),
    service: PlanService = Depends(get_plan_service),
):
    return service.list_plans(status=plan_status, plan_type=plan_type)


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: int,
    service: PlanService = Depends(get_plan_service),
):
    return service.get_plan(plan_id)


@router.put("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: int,
    data: PlanUpdate,
    service: PlanService = Depends(get_plan_service),
):
    return service.update_plan(plan_id, data)


@router.post("/plans/{plan_id}/archive", response_model=PlanResponse)
def archive_plan(
    plan_id: int,
    service: PlanService = Depends(get_plan_service),
):
    return service.archive_plan(plan_id)


@router.post("/plans/{plan_id}/run", response_model=RunResult)
def run_plan(
    plan_id: int,
    scope: Optional[PlanRunScope] = Body(None),
    service: PlanRunService = Depends(get_plan_run_service),
):
    return service.run(plan_id, scope=_scope_dict(scope), as_of=scope.as_of if scope else None)


@router.post("/plans/{plan_id}/runs", response_model=PlanRunResponse, status_code=status.HTTP_202_ACCEPTED)
def enqueue_plan_run(
    plan_id: int,
    scope: Optional[PlanRunScope] = Body(None),
    db: Session = Depends(get_db),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    return plan_run_job_service.enqueue_run(
        db,
        plan_id,
        scope=_scope_dict(scope),
        as_of=scope.as_of if scope else None,
        session_factory=session_factory,
    )


@router.get("/plans/{plan_id}/runs", response_model=List[PlanRunResponse])
def list_plan_runs(
    plan_id: int,
    limit: int = Query(50, ge=1, le=500),
    service: PlanService = Depends(get_plan_service),
):
    return service.list_runs(plan_id, limit=limit)


@router.get("/plan-runs/{run_id}", response_model=PlanRunResponse)
def get_plan_run(
    run_id: str,
    service: PlanService = Depends(get_plan_service),
):
    return service.get_run(run_id)


@router.post("/plan-runs/{run_id}/cancel", response_model=PlanRunResponse, status_code=status.HTTP_202_ACCEPTED)
def cancel_plan_run(
    run_id: str,
    db: Session = Depends(get_db),
):
    return plan_run_job_service.cancel_run(db, run_id)


@router.get("/plans/{plan_id}/trajectory", response_model=List[TrajectoryBucketResponse])
def get_trajectory(
    plan_id: int,
    run_id: Optional[str] = None,
    product_id: Optional[str] = None,
    location: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: PlanService = Depends(get_plan_service),
):
    return service.get_trajectory(
        plan_id, run_id=run_id, product_id=product_id, location=location,
        start_date=start_date, end_date=end_date,
    )


@router.get("/plans/{plan_id}/recommendations", response_model=List[RecommendationResponse])
def get_recommendations(
    plan_id: int,
    run_id: Optional[str] = None,
    approval_status: Optional[str] = Query(None, pattern="^(pending|approved|rejected|modified|converted)$"),
    product_id: Optional[str] = None,
    location: Optional[str] = None,
    past_due: Optional[bool] = None,
    threshold_exceeded: Optional[bool] = None,
    service: PlanService = Depends(get_plan_service),
):
    return service.get_recommendations(
        plan_id, run_id=run_id, approval_status=approval_status, product_id=product_id,
        location=location, past_due=past_due, threshold_exceeded=threshold_exceeded,
    )


@router.get("/plans/{plan_id}/exceptions", response_model=List[PlanningExceptionResponse])
def get_exceptions(
    plan_id: int,
    run_id: Optional[str] = None,
    exception_type: Optional[str] = Query(
        None, pattern="^(stockout|below_safety_stock|excess_inventory|order_urgency)$",
    ),
    severity: Optional[str] = Query(None, pattern="^(critical|high|medium|low)$"),
    resolution_status: Optional[str] = Query(None, pattern="^(open|in_progress|resolved|ignored)$"),
    product_id: Optional[str] = None,
    location: Optional[str] = None,
    service: PlanService = Depends(get_plan_service),
):
    return service.get_exceptions(
        plan_id, run_id=run_id, exception_type=exception_type, severity=severity,
        resolution_status=resolution_status, product_id=product_id, location=location,
    )
