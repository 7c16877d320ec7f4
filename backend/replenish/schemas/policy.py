from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ItemPolicyResponse(BaseModel):
    id: Optional[int] = None
    product_id: str
    location: str
    safety_stock_method: str
    safety_stock_value: Decimal
    service_level: Decimal
    lot_sizing_rule: str
    min_order_qty: Decimal
    max_order_qty: Optional[Decimal] = None
    order_multiple: Decimal
    fixed_order_qty: Optional[Decimal] = None
    eoq_value: Optional[Decimal] = None
    periods_of_supply: int
    lead_time_days: int
    planning_time_fence_days: Optional[int] = None
    demand_time_fence_days: Optional[int] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    unit_cost: Decimal
    ordering_cost: Decimal
    carrying_cost_rate: Decimal
    approval_threshold: Optional[Decimal] = None
    abc_class: Optional[str] = None
    xyz_class: Optional[str] = None
    active: bool = True
    is_default: bool = False
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
