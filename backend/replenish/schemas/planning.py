from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date
from decimal import Decimal


class TrajectoryBucketResponse(BaseModel):
    id: int
    plan_id: int
    run_id: str
    product_id: str
    location: str
    bucket_index: int
    bucket_start: date
    bucket_end: date
    beginning_inventory: Decimal
    gross_requirements: Decimal
    scheduled_receipts: Decimal
    projected_available: Decimal
    net_requirements: Decimal
    planned_order_receipt: Decimal
    planned_order_release: Decimal
    safety_stock: Decimal
    reorder_point: Decimal
    lead_time_offset: int
    boundary_release: bool
    is_current: bool

    class Config:
        from_attributes = True


class RecommendationResponse(BaseModel):
    id: int
    code: str
    plan_id: int
    run_id: str
    trajectory_bucket_id: int
    product_id: str
    location: str
    bucket_start: date
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    recommended_quantity: Decimal
    final_order_quantity: Decimal
    minimum_order_quantity: Decimal
    order_multiple: Decimal
    unit_cost: Decimal
    total_value: Decimal
    lead_time_days: int
    recommended_order_date: date
    expected_delivery_date: date
    past_due: bool
    approval_status: str
    approval_threshold: Decimal
    threshold_exceeded: bool
    notes: Optional[str] = None
    order_reference: Optional[str] = None
    decided_at: Optional[datetime] = None
    is_current: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RecommendationDecisionRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class RecommendationModifyRequest(BaseModel):
    final_order_quantity: Optional[Decimal] = Field(None, gt=0)
    supplier_id: Optional[str] = Field(None, max_length=64)
    supplier_name: Optional[str] = Field(None, max_length=200)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    recommended_order_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class RecommendationConvertRequest(BaseModel):
    order_reference: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = Field(None, max_length=1000)


class PlanningExceptionResponse(BaseModel):
    id: int
    plan_id: int
    run_id: str
    trajectory_bucket_id: int
    product_id: str
    location: str
    bucket_start: date
    exception_type: str
    severity: str
    current_inventory: Decimal
    projected_inventory: Decimal
    safety_stock: Decimal
    reorder_point: Decimal
    projected_demand: Decimal
    projected_supply: Decimal
    shortage_quantity: Optional[Decimal] = None
    excess_quantity: Optional[Decimal] = None
    recommended_action: str
    resolution_status: str
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    is_current: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlanningExceptionUpdateRequest(BaseModel):
    resolution_status: Optional[str] = Field(None, pattern="^(open|in_progress|resolved|ignored)$")
    resolution_notes: Optional[str] = Field(None, max_length=2000)


class PlanningExceptionResolveRequest(BaseModel):
    resolution_notes: Optional[str] = Field(None, max_length=2000)
