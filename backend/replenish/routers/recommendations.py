"""
Recommendations Router — Thin Controller (SRP / DIP)
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from replenish.database import get_db
from replenish.schemas.planning import (
    RecommendationResponse,
    RecommendationDecisionRequest,
    RecommendationModifyRequest,
    RecommendationConvertRequest,
)
from replenish.services.recommendation_service import RecommendationService

router = APIRouter(prefix="/recommendations", tags=["Purchase Recommendations"])


def get_recommendation_service(db: Session = Depends(get_db)) -> RecommendationService:
    return RecommendationService(db)


@router.get("/{recommendation_id}", response_model=RecommendationResponse)
def get_recommendation(
    recommendation_id: int,
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.get_recommendation(recommendation_id)


@router.post("/{recommendation_id}/approve", response_model=RecommendationResponse)
def approve_recommendation(
    recommendation_id: int,
    payload: Optional[RecommendationDecisionRequest] = Body(None),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.approve(recommendation_id, notes=payload.notes if payload else None)


@router.post("/{recommendation_id}/reject", response_model=RecommendationResponse)
def reject_recommendation(
    recommendation_id: int,
    payload: Optional[RecommendationDecisionRequest] = Body(None),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.reject(recommendation_id, notes=payload.notes if payload else None)


@router.patch("/{recommendation_id}", response_model=RecommendationResponse)
def modify_recommendation(
    recommendation_id: int,
    payload: RecommendationModifyRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.modify(recommendation_id, payload)


@router.post("/{recommendation_id}/convert", response_model=RecommendationResponse)
def convert_recommendation(
    recommendation_id: int,
    payload: Optional[RecommendationConvertRequest] = Body(None),
    service: RecommendationService = Depends(get_recommendation_service),
):
    return service.mark_converted(
        recommendation_id,
        order_reference=payload.order_reference if payload else None,
        notes=payload.notes if payload else None,
    )
