"""
Policy Store — read-only lookup of per-item planning parameters.

A plan run loads the policies of its working set once, up front, into
immutable PolicySnapshot objects; worker threads only ever see snapshots.
Pairs without a stored policy plan with the configured defaults.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from replenish.config import settings
from replenish.core.exceptions import EntityNotFoundException, InfrastructureError, to_http_exception
from replenish.models.item_policy import ItemPolicy
from replenish.mrp.types import (
    LotSizing,
    LotSizingRule,
    PolicySnapshot,
    SafetyStockMethod,
    SafetyStockPolicy,
)
from replenish.repositories.item_policy_repository import ItemPolicyRepository
from replenish.schemas.policy import ItemPolicyResponse

Pair = Tuple[str, str]


def _dec(value) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def default_snapshot(product_id: str, location: str) -> PolicySnapshot:
    return PolicySnapshot(
        product_id=product_id,
        location=location,
        safety_stock=SafetyStockPolicy(
            method=SafetyStockMethod(settings.DEFAULT_SAFETY_STOCK_METHOD),
            value=_dec(settings.DEFAULT_SAFETY_STOCK_VALUE),
            service_level=_dec(settings.DEFAULT_SERVICE_LEVEL),
        ),
        lot_sizing=LotSizing(
            rule=LotSizingRule(settings.DEFAULT_LOT_SIZING_RULE),
            multiple=_dec(settings.DEFAULT_ORDER_MULTIPLE),
        ),
        lead_time_days=settings.DEFAULT_LEAD_TIME_DAYS,
        is_default=True,
    )


def to_snapshot(policy: ItemPolicy) -> PolicySnapshot:
    return PolicySnapshot(
        product_id=policy.product_id,
        location=policy.location,
        safety_stock=SafetyStockPolicy(
            method=SafetyStockMethod(policy.safety_stock_method),
            value=_dec(policy.safety_stock_value) or Decimal("0"),
            service_level=_dec(policy.service_level) or Decimal("0.95"),
        ),
        lot_sizing=LotSizing(
            rule=LotSizingRule(policy.lot_sizing_rule),
            moq=_dec(policy.min_order_qty) or Decimal("0"),
            max_qty=_dec(policy.max_order_qty),
            multiple=_dec(policy.order_multiple) or Decimal("1"),
            fixed_quantity=_dec(policy.fixed_order_qty),
            eoq=_dec(policy.eoq_value),
            periods_of_supply=policy.periods_of_supply or 1,
        ),
        lead_time_days=policy.lead_time_days if policy.lead_time_days is not None else settings.DEFAULT_LEAD_TIME_DAYS,
        supplier_id=policy.supplier_id,
        supplier_name=policy.supplier_name,
        unit_cost=_dec(policy.unit_cost) or Decimal("0"),
        ordering_cost=_dec(policy.ordering_cost) or Decimal("0"),
        carrying_cost_rate=_dec(policy.carrying_cost_rate) or Decimal("0"),
        approval_threshold=_dec(policy.approval_threshold),
    )


class PolicyStore:

    def __init__(self, db: Session):
        self._repo = ItemPolicyRepository(db)

    def load(self, pairs: Iterable[Pair]) -> Dict[Pair, PolicySnapshot]:
        """Snapshots for the given pairs. Pairs whose policy is inactive are left out."""
        pairs = list(pairs)
        product_ids = sorted({p for p, _ in pairs})
        locations = sorted({loc for _, loc in pairs})
        try:
            stored = {
                (row.product_id, row.location): row
                for row in self._repo.list_for_scope(product_ids=product_ids, locations=locations)
            }
        except SQLAlchemyError as exc:
            raise InfrastructureError("Policy store is unavailable.", {"reason": str(exc)}) from exc

        snapshots: Dict[Pair, PolicySnapshot] = {}
        for pair in pairs:
            row = stored.get(pair)
            if row is None:
                snapshots[pair] = default_snapshot(*pair)
            elif row.active:
                snapshots[pair] = to_snapshot(row)
        return snapshots

    def list_policies(
        self,
        product_id: Optional[str] = None,
        location: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> List[ItemPolicy]:
        return self._repo.list_filtered(product_id=product_id, location=location, active=active)

    def get_policy(self, product_id: str, location: str, include_default: bool = False) -> ItemPolicyResponse:
        row = self._repo.get_for_pair(product_id, location)
        if row is not None:
            return ItemPolicyResponse.model_validate(row)
        if not include_default:
            raise to_http_exception(EntityNotFoundException("ItemPolicy", f"{product_id}@{location}"))

        snap = default_snapshot(product_id, location)
        return ItemPolicyResponse(
            product_id=product_id,
            location=location,
            safety_stock_method=snap.safety_stock.method.value,
            safety_stock_value=snap.safety_stock.value,
            service_level=snap.safety_stock.service_level,
            lot_sizing_rule=snap.lot_sizing.rule.value,
            min_order_qty=snap.lot_sizing.moq,
            order_multiple=snap.lot_sizing.multiple,
            periods_of_supply=snap.lot_sizing.periods_of_supply,
            lead_time_days=snap.lead_time_days,
            unit_cost=snap.unit_cost,
            ordering_cost=snap.ordering_cost,
            carrying_cost_rate=snap.carrying_cost_rate,
            is_default=True,
        )
