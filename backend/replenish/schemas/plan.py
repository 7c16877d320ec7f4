from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, date


class PlanBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    plan_type: str = Field("MRP", pattern="^(MRP|DRP|Manual)$")
    horizon_buckets: int = Field(12, ge=1, le=520)
    bucket_granularity: str = Field("week", pattern="^(day|week|month)$")
    horizon_start: Optional[date] = None


class PlanCreate(PlanBase):
    parameters: Optional[Dict[str, Any]] = None


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    horizon_buckets: Optional[int] = Field(None, ge=1, le=520)
    bucket_granularity: Optional[str] = Field(None, pattern="^(day|week|month)$")
    horizon_start: Optional[date] = None
    parameters: Optional[Dict[str, Any]] = None


class PlanResponse(PlanBase):
    id: int
    code: str
    status: str
    current_run_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlanRunScope(BaseModel):
    product_ids: Optional[List[str]] = None
    locations: Optional[List[str]] = None
    as_of: Optional[date] = None


class ErroredPair(BaseModel):
    product_id: str
    location: str
    reason: str


class PlanRunResponse(BaseModel):
    id: int
    run_id: str
    plan_id: int
    status: str
    previous_status: str
    trigger_source: str
    scope: Dict[str, Any] = Field(default_factory=dict)
    pairs_total: int
    pairs_processed: int
    pairs_errored: int
    trajectory_rows: int
    exceptions_created: int
    recommendations_created: int
    past_due_recommendations: int
    boundary_releases: int
    errored_pairs: List[ErroredPair] = Field(default_factory=list)
    error: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    promoted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RunResult(BaseModel):
    run_id: str
    plan_id: int
    status: str
    plan_status: str
    pairs_total: int = 0
    pairs_processed: int = 0
    pairs_errored: int = 0
    errored_pairs: List[ErroredPair] = Field(default_factory=list)
    trajectory_rows: int = 0
    exceptions_created: int = 0
    recommendations_created: int = 0
    past_due_recommendations: int = 0
    boundary_releases: int = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
