"""
Planning Exceptions Router — Thin Controller (SRP / DIP)
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from replenish.database import get_db
from replenish.schemas.planning import (
    PlanningExceptionResponse,
    PlanningExceptionUpdateRequest,
    PlanningExceptionResolveRequest,
)
from replenish.services.planning_exception_service import PlanningExceptionService

router = APIRouter(prefix="/planning-exceptions", tags=["Planning Exceptions"])


def get_planning_exception_service(db: Session = Depends(get_db)) -> PlanningExceptionService:
    return PlanningExceptionService(db)


@router.get("/{exception_id}", response_model=PlanningExceptionResponse)
def get_planning_exception(
    exception_id: int,
    service: PlanningExceptionService = Depends(get_planning_exception_service),
):
    return service.get_exception(exception_id)


@router.patch("/{exception_id}", response_model=PlanningExceptionResponse)
def update_planning_exception(
    exception_id: int,
    payload: PlanningExceptionUpdateRequest,
    service: PlanningExceptionService = Depends(get_planning_exception_service),
):
    return service.update_exception(exception_id, payload)


@router.post("/{exception_id}/resolve", response_model=PlanningExceptionResponse)
def resolve_planning_exception(
    exception_id: int,
    payload: Optional[PlanningExceptionResolveRequest] = Body(None),
    service: PlanningExceptionService = Depends(get_planning_exception_service),
):
    return service.resolve(exception_id, notes=payload.resolution_notes if payload else None)
