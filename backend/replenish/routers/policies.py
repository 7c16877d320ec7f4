"""
Item Policies Router — read-only Policy Store access
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from replenish.database import get_db
from replenish.schemas.policy import ItemPolicyResponse
from replenish.services.policy_store import PolicyStore

router = APIRouter(prefix="/policies", tags=["Item Policies"])


def get_policy_store(db: Session = Depends(get_db)) -> PolicyStore:
    return PolicyStore(db)


@router.get("", response_model=List[ItemPolicyResponse])
def list_policies(
    product_id: Optional[str] = None,
    location: Optional[str] = None,
    active: Optional[bool] = None,
    store: PolicyStore = Depends(get_policy_store),
):
    return store.list_policies(product_id=product_id, location=location, active=active)


@router.get("/{product_id}/{location}", response_model=ItemPolicyResponse)
def get_policy(
    product_id: str,
    location: str,
    include_default: bool = False,
    store: PolicyStore = Depends(get_policy_store),
):
    return store.get_policy(product_id, location, include_default=include_default)
