"""
Plan Run Service — the plan orchestrator.

A run moves through three stages:

1. start: compare-and-set the plan to ``running`` and record a PlanRun row
   holding the pre-run status.
2. netting: one task per (product, location) pair on a bounded thread pool.
   Tasks read their inputs through their own session and return computed
   rows; this thread persists them unpromoted under the run id.
3. after the join barrier: exception detection and recommendation generation
   over the persisted trajectory, then promotion in a single transaction.

A pair-level failure is recorded and skipped. Infrastructure failures abort
the run and put the plan back to its pre-run status.
"""
import json
import logging
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from itertools import groupby
from time import monotonic
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from replenish.config import settings
from replenish.core.exceptions import (
    BusinessRuleViolationException,
    ConcurrentRunError,
    EntityNotFoundException,
    InfrastructureError,
    InvalidStateTransitionException,
    PairComputationError,
)
from replenish.database import SessionLocal
from replenish.models.plan import Plan, PlanRun
from replenish.models.planning_exception import PlanningException
from replenish.models.purchase_recommendation import PurchaseRecommendation
from replenish.models.trajectory import TrajectoryBucket
from replenish.mrp.calendar import build_buckets
from replenish.mrp.detection import detect, order_urgency
from replenish.mrp.netting import explode
from replenish.mrp.recommendations import generate, resolve_approval_threshold
from replenish.mrp.types import (
    Bucket,
    BucketGranularity,
    BucketRow,
    PlanStatus,
    PolicySnapshot,
    ResolutionStatus,
    RunStatus,
    ApprovalStatus,
)
from replenish.repositories.inventory_repository import InventoryRepository
from replenish.repositories.plan_repository import PlanRepository, PlanRunRepository
from replenish.repositories.planning_exception_repository import PlanningExceptionRepository
from replenish.repositories.recommendation_repository import RecommendationRepository
from replenish.repositories.trajectory_repository import TrajectoryRepository
from replenish.schemas.plan import RunResult
from replenish.services.plan_service import transition_plan_status
from replenish.services.planning_inputs import DatabasePlanningInputs
from replenish.services.policy_store import PolicyStore
from replenish.utils.events import (
    PastDueRecommendationEvent,
    PlanningExceptionRaisedEvent,
    PlanRunCompletedEvent,
    PlanStatusChangedEvent,
    get_event_bus,
)

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]

# Cancellation flags of runs executing in this process, keyed by run id.
_cancel_flags: Dict[str, threading.Event] = {}
_cancel_lock = threading.Lock()


def _cancel_flag(run_id: str) -> threading.Event:
    with _cancel_lock:
        return _cancel_flags.setdefault(run_id, threading.Event())


def _release_cancel_flag(run_id: str) -> None:
    with _cancel_lock:
        _cancel_flags.pop(run_id, None)


def request_cancel(run_id: str) -> bool:
    """Ask a run executing in this process to stop dispatching pairs."""
    with _cancel_lock:
        flag = _cancel_flags.get(run_id)
    if flag is None:
        return False
    flag.set()
    return True


def is_run_active_here(run_id: str) -> bool:
    with _cancel_lock:
        return run_id in _cancel_flags


@dataclass
class _NettingOutcome:
    processed: List[Pair] = field(default_factory=list)
    errored: List[dict] = field(default_factory=list)
    trajectory_rows: int = 0
    boundary_releases: int = 0
    cancelled: bool = False


class PlanRunService:

    def __init__(
        self,
        db: Session,
        session_factory: Optional[Callable[[], Session]] = None,
        inputs_factory: Callable[[Session], DatabasePlanningInputs] = DatabasePlanningInputs,
    ):
        self.db = db
        self._session_factory = session_factory or SessionLocal
        self._inputs_factory = inputs_factory
        self._plans = PlanRepository(db)
        self._runs = PlanRunRepository(db)
        self._inventory = InventoryRepository(db)
        self._trajectory = TrajectoryRepository(db)
        self._recommendations = RecommendationRepository(db)
        self._exceptions = PlanningExceptionRepository(db)
        self._bus = get_event_bus()

    # ── Public API ───────────────────────────────────────────────────────────

    def run(
        self,
        plan_id: int,
        scope: Optional[dict] = None,
        as_of: Optional[date] = None,
        trigger_source: str = "manual",
    ) -> RunResult:
        run = self.start(plan_id, scope=scope, trigger_source=trigger_source)
        return self.execute(run.run_id, as_of=as_of)

    def start(self, plan_id: int, scope: Optional[dict] = None, trigger_source: str = "manual") -> PlanRun:
        plan = self._plans.get_by_id(plan_id)
        if not plan:
            raise EntityNotFoundException("Plan", plan_id)

        previous = plan.status
        if previous == PlanStatus.RUNNING.value:
            raise ConcurrentRunError(plan_id)

        now = datetime.utcnow()
        try:
            started = transition_plan_status(
                self._plans, plan_id, previous, PlanStatus.RUNNING.value, {Plan.last_run_at: now},
            )
            if not started:
                self.db.rollback()
                self.db.expire_all()
                current = self._plans.get_by_id(plan_id)
                if current and current.status == PlanStatus.RUNNING.value:
                    raise ConcurrentRunError(plan_id)
                raise InvalidStateTransitionException(
                    "Plan", current.status if current else previous, PlanStatus.RUNNING.value,
                )

            run = PlanRun(
                run_id=str(uuid4()),
                plan_id=plan_id,
                status=RunStatus.RUNNING.value,
                previous_status=previous,
                trigger_source=trigger_source,
                scope_json=json.dumps(scope) if scope else None,
                started_at=now,
            )
            self.db.add(run)
            self.db.commit()
            self.db.refresh(run)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise InfrastructureError("Could not start plan run.", {"plan_id": plan_id, "reason": str(exc)}) from exc

        _cancel_flag(run.run_id)
        logger.info("plan_run_started plan_id=%s run_id=%s previous_status=%s", plan_id, run.run_id, previous)
        self._bus.publish(PlanStatusChangedEvent(
            entity_id=plan_id,
            old_status=previous,
            new_status=PlanStatus.RUNNING.value,
            run_id=run.run_id,
        ))
        return run

    def execute(self, run_id: str, as_of: Optional[date] = None) -> RunResult:
        run = self._runs.get_by_run_id(run_id)
        if not run:
            raise EntityNotFoundException("PlanRun", run_id)
        if run.status != RunStatus.RUNNING.value:
            raise BusinessRuleViolationException(
                f"Plan run {run_id} is already {run.status}.", {"run_id": run_id, "status": run.status},
            )

        plan_id = run.plan_id
        previous_status = run.previous_status
        cancel_flag = _cancel_flag(run_id)
        try:
            return self._execute(run, as_of or date.today(), cancel_flag)
        except Exception as exc:
            self._fail(run_id, plan_id, previous_status, exc)
            if isinstance(exc, InfrastructureError):
                raise
            if isinstance(exc, SQLAlchemyError):
                raise InfrastructureError(
                    "Persistence failed during the plan run.", {"plan_id": plan_id, "run_id": run_id, "reason": str(exc)},
                ) from exc
            raise
        finally:
            _release_cancel_flag(run_id)

    # ── Stages ───────────────────────────────────────────────────────────────

    def _execute(self, run: PlanRun, as_of: date, cancel_flag: threading.Event) -> RunResult:
        plan = self._plans.get_by_id(run.plan_id)
        params = plan.parameters
        scope = run.scope
        granularity = BucketGranularity(plan.bucket_granularity)
        buckets = build_buckets(granularity, plan.horizon_buckets, as_of, plan.horizon_start)

        snapshots = self._inventory.list_for_scope(
            product_ids=scope.get("product_ids"), locations=scope.get("locations"),
        )
        pairs = [(s.product_id, s.location) for s in snapshots]
        policies = PolicyStore(self.db).load(pairs)
        work = [p for p in pairs if p in policies]

        run.pairs_total = len(work)
        self.db.commit()
        logger.info(
            "plan_run_netting plan_id=%s run_id=%s pairs=%s excluded_inactive=%s buckets=%s",
            plan.id, run.run_id, len(work), len(pairs) - len(work), len(buckets),
        )

        outcome = self._net_all(
            plan, run, work, policies, buckets, granularity,
            max_workers=max(1, int(params.get("max_workers", settings.PLAN_MAX_WORKERS))),
            timeout=float(params.get("pair_timeout_seconds", settings.PAIR_TIMEOUT_SECONDS)),
            cancel_flag=cancel_flag,
        )

        run.pairs_processed = len(outcome.processed)
        run.pairs_errored = len(outcome.errored)
        run.trajectory_rows = outcome.trajectory_rows
        run.boundary_releases = outcome.boundary_releases
        run.errors_json = json.dumps(outcome.errored) if outcome.errored else None

        if outcome.cancelled:
            return self._cancel(plan, run)

        # Join barrier passed: every pair has either persisted rows or an error entry.
        created_exceptions, created_recommendations = self._derive(plan, run, policies, as_of, params)
        self._promote(plan, run, outcome.processed, params)

        self._publish_run_output(plan, run, created_exceptions, created_recommendations)
        return self._result(run, PlanStatus.ACTIVE.value)

    def _net_all(
        self,
        plan: Plan,
        run: PlanRun,
        work: Sequence[Pair],
        policies: Dict[Pair, PolicySnapshot],
        buckets: List[Bucket],
        granularity: BucketGranularity,
        max_workers: int,
        timeout: float,
        cancel_flag: threading.Event,
    ) -> _NettingOutcome:
        outcome = _NettingOutcome()
        pending = deque(work)
        # Start times are stamped by the worker, so a queued pair's clock only
        # runs once it actually holds a thread.
        in_flight: Dict[Future, Tuple[Pair, Dict[str, float]]] = {}
        # Timed-out tasks still occupy their thread until they return.
        abandoned: Set[Future] = set()

        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"plan-{plan.id}-netting")
        try:
            while pending or in_flight:
                abandoned = {f for f in abandoned if not f.done()}
                while pending and len(in_flight) + len(abandoned) < max_workers:
                    if cancel_flag.is_set():
                        outcome.cancelled = True
                        pending.clear()
                        break
                    pair = pending.popleft()
                    clock: Dict[str, float] = {}
                    future = executor.submit(self._compute_pair, pair, policies[pair], buckets, granularity, clock)
                    in_flight[future] = (pair, clock)

                if not in_flight and not abandoned:
                    break

                now = monotonic()
                deadlines = [
                    clock["started"] + timeout if "started" in clock else now + timeout
                    for _, clock in in_flight.values()
                ]
                wait_for = max(0.0, min(deadlines) - now) if deadlines else None
                done, _ = wait(list(in_flight) + list(abandoned), timeout=wait_for, return_when=FIRST_COMPLETED)

                for future in done:
                    if future in in_flight:
                        pair, _ = in_flight.pop(future)
                        self._collect(run, pair, future, outcome)

                now = monotonic()
                for future, (pair, clock) in list(in_flight.items()):
                    started = clock.get("started")
                    if started is not None and started + timeout <= now and not future.done():
                        # The result is discarded whenever the task returns.
                        in_flight.pop(future)
                        abandoned.add(future)
                        self._record_error(outcome, pair, f"timed out after {timeout:g}s")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return outcome

    def _compute_pair(
        self,
        pair: Pair,
        policy: PolicySnapshot,
        buckets: List[Bucket],
        granularity: BucketGranularity,
        clock: Optional[Dict[str, float]] = None,
    ) -> List[BucketRow]:
        if clock is not None:
            clock["started"] = monotonic()
        product_id, location = pair
        db = self._session_factory()
        try:
            inputs = self._inputs_factory(db).pair_inputs(product_id, location, buckets)
        finally:
            db.close()
        return explode(inputs, policy, buckets, granularity)

    def _collect(self, run: PlanRun, pair: Pair, future: Future, outcome: _NettingOutcome) -> None:
        try:
            rows = future.result()
        except (InfrastructureError, SQLAlchemyError):
            raise
        except PairComputationError as exc:
            self._record_error(outcome, pair, exc.reason)
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("pair_netting_crashed run_id=%s product_id=%s location=%s", run.run_id, *pair)
            self._record_error(outcome, pair, str(exc) or type(exc).__name__)
            return

        self._trajectory.add_all([self._to_trajectory_row(run, row) for row in rows])
        self.db.commit()
        outcome.processed.append(pair)
        outcome.trajectory_rows += len(rows)
        outcome.boundary_releases += sum(1 for row in rows if row.boundary_release)

    def _record_error(self, outcome: _NettingOutcome, pair: Pair, reason: str) -> None:
        product_id, location = pair
        logger.warning("pair_netting_failed product_id=%s location=%s reason=%s", product_id, location, reason)
        outcome.errored.append({"product_id": product_id, "location": location, "reason": reason})

    def _derive(
        self,
        plan: Plan,
        run: PlanRun,
        policies: Dict[Pair, PolicySnapshot],
        as_of: date,
        params: dict,
    ) -> Tuple[List[PlanningException], List[PurchaseRecommendation]]:
        trigger = Decimal(str(settings.EXCESS_TRIGGER_MULTIPLIER))
        baseline = Decimal(str(settings.EXCESS_BASELINE_MULTIPLIER))
        plan_threshold = params.get("approval_threshold")
        plan_threshold = Decimal(str(plan_threshold)) if plan_threshold is not None else None
        default_threshold = Decimal(str(settings.APPROVAL_THRESHOLD))

        exceptions: List[PlanningException] = []
        recommendations: List[PurchaseRecommendation] = []

        stored = self._trajectory.list_run_ordered(run.run_id)
        for pair, group in groupby(stored, key=lambda r: (r.product_id, r.location)):
            db_rows = list(group)
            by_index = {r.bucket_index: r for r in db_rows}
            rows = [self._to_bucket_row(r) for r in db_rows]
            policy = policies[pair]

            drafts = detect(rows, excess_trigger=trigger, excess_baseline=baseline)

            threshold = resolve_approval_threshold(policy, plan_threshold, default_threshold)
            rec_drafts = generate(rows, policy, as_of, threshold)

            # A past-due order always sits on a bucket that already raised a
            # shortage, so urgency is raised next to it.
            if settings.PAST_DUE_RAISES_EXCEPTION:
                current_inventory = rows[0].beginning_inventory
                drafts.extend(
                    order_urgency(rec, rows[rec.bucket_index], current_inventory)
                    for rec in rec_drafts
                    if rec.past_due
                )

            for d in drafts:
                exceptions.append(PlanningException(
                    plan_id=plan.id,
                    run_id=run.run_id,
                    trajectory_bucket_id=by_index[d.bucket_index].id,
                    product_id=d.product_id,
                    location=d.location,
                    bucket_start=d.bucket_start,
                    exception_type=d.exception_type.value,
                    severity=d.severity.value,
                    current_inventory=d.current_inventory,
                    projected_inventory=d.projected_inventory,
                    safety_stock=d.safety_stock,
                    reorder_point=d.reorder_point,
                    projected_demand=d.projected_demand,
                    projected_supply=d.projected_supply,
                    shortage_quantity=d.shortage_quantity,
                    excess_quantity=d.excess_quantity,
                    recommended_action=d.recommended_action,
                    resolution_status=ResolutionStatus.OPEN.value,
                ))

            for r in rec_drafts:
                recommendations.append(PurchaseRecommendation(
                    code=f"REC-{run.run_id[:8].upper()}-{len(recommendations) + 1:05d}",
                    plan_id=plan.id,
                    run_id=run.run_id,
                    trajectory_bucket_id=by_index[r.bucket_index].id,
                    product_id=r.product_id,
                    location=r.location,
                    bucket_start=r.bucket_start,
                    supplier_id=r.supplier_id,
                    supplier_name=r.supplier_name,
                    recommended_quantity=r.recommended_quantity,
                    final_order_quantity=r.final_order_quantity,
                    minimum_order_quantity=r.minimum_order_quantity,
                    order_multiple=r.order_multiple,
                    unit_cost=r.unit_cost,
                    total_value=r.total_value,
                    lead_time_days=r.lead_time_days,
                    recommended_order_date=r.recommended_order_date,
                    expected_delivery_date=r.expected_delivery_date,
                    past_due=r.past_due,
                    approval_status=ApprovalStatus.PENDING.value,
                    approval_threshold=threshold,
                    threshold_exceeded=r.threshold_exceeded,
                ))

        self._exceptions.add_all(exceptions)
        self._recommendations.add_all(recommendations)
        self.db.commit()

        run.exceptions_created = len(exceptions)
        run.recommendations_created = len(recommendations)
        run.past_due_recommendations = sum(1 for r in recommendations if r.past_due)
        return exceptions, recommendations

    def _promote(self, plan: Plan, run: PlanRun, processed: Sequence[Pair], params: dict) -> None:
        """Make this run's rows current and the plan active, all in one transaction."""
        now = datetime.utcnow()
        cadence = int(params.get("run_cadence_days", settings.PLAN_RUN_CADENCE_DAYS))

        for repo in (self._trajectory, self._recommendations, self._exceptions):
            repo.supersede_current(plan.id, run.run_id, processed)
            repo.promote_run(run.run_id)

        activated = transition_plan_status(
            self._plans, plan.id, PlanStatus.RUNNING.value, PlanStatus.ACTIVE.value,
            {Plan.current_run_id: run.run_id, Plan.next_run_at: now + timedelta(days=cadence)},
        )
        if not activated:
            raise InfrastructureError(
                "Plan left the running state before promotion.", {"plan_id": plan.id, "run_id": run.run_id},
            )

        run.status = RunStatus.COMPLETED.value
        run.completed_at = now
        run.promoted_at = now
        self.db.commit()
        logger.info(
            "plan_run_promoted plan_id=%s run_id=%s processed=%s errored=%s exceptions=%s recommendations=%s",
            plan.id, run.run_id, run.pairs_processed, run.pairs_errored,
            run.exceptions_created, run.recommendations_created,
        )

    def _cancel(self, plan: Plan, run: PlanRun) -> RunResult:
        previous = run.previous_status
        reverted = transition_plan_status(self._plans, plan.id, PlanStatus.RUNNING.value, previous)
        if not reverted:
            raise InfrastructureError(
                "Plan left the running state before the cancelled run was reverted.",
                {"plan_id": plan.id, "run_id": run.run_id},
            )
        run.status = RunStatus.CANCELLED.value
        run.error = "Cancelled by user"
        run.completed_at = datetime.utcnow()
        self.db.commit()

        logger.info("plan_run_cancelled plan_id=%s run_id=%s processed=%s", plan.id, run.run_id, run.pairs_processed)
        self._bus.publish(PlanStatusChangedEvent(
            entity_id=plan.id, old_status=PlanStatus.RUNNING.value, new_status=previous, run_id=run.run_id,
        ))
        self._bus.publish(PlanRunCompletedEvent(
            plan_id=plan.id,
            run_id=run.run_id,
            status=run.status,
            pairs_processed=run.pairs_processed,
            pairs_errored=run.pairs_errored,
        ))
        return self._result(run, previous)

    def _fail(self, run_id: str, plan_id: int, previous_status: str, exc: Exception) -> None:
        self.db.rollback()
        try:
            transition_plan_status(self._plans, plan_id, PlanStatus.RUNNING.value, previous_status)
            run = self._runs.get_by_run_id(run_id)
            if run:
                run.status = RunStatus.FAILED.value
                run.error = str(exc) or type(exc).__name__
                run.completed_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            # Left for recover_stale_runs; the original error is re-raised by the caller.
            logger.exception("plan_run_revert_failed plan_id=%s run_id=%s", plan_id, run_id)
            return

        logger.error("plan_run_failed plan_id=%s run_id=%s reverted_to=%s error=%s", plan_id, run_id, previous_status, exc)
        self._bus.publish(PlanStatusChangedEvent(
            entity_id=plan_id, old_status=PlanStatus.RUNNING.value, new_status=previous_status, run_id=run_id,
        ))
        self._bus.publish(PlanRunCompletedEvent(plan_id=plan_id, run_id=run_id, status=RunStatus.FAILED.value))

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _publish_run_output(
        self,
        plan: Plan,
        run: PlanRun,
        exceptions: List[PlanningException],
        recommendations: List[PurchaseRecommendation],
    ) -> None:
        self._bus.publish(PlanStatusChangedEvent(
            entity_id=plan.id,
            old_status=PlanStatus.RUNNING.value,
            new_status=PlanStatus.ACTIVE.value,
            run_id=run.run_id,
        ))
        for ex in exceptions:
            self._bus.publish(PlanningExceptionRaisedEvent(
                plan_id=plan.id,
                run_id=run.run_id,
                exception_id=ex.id,
                exception_type=ex.exception_type,
                severity=ex.severity,
                product_id=ex.product_id,
                location=ex.location,
                bucket_start=ex.bucket_start.isoformat(),
            ))
        for rec in recommendations:
            if rec.past_due:
                self._bus.publish(PastDueRecommendationEvent(
                    plan_id=plan.id,
                    run_id=run.run_id,
                    recommendation_id=rec.id,
                    product_id=rec.product_id,
                    location=rec.location,
                    recommended_order_date=rec.recommended_order_date.isoformat(),
                    final_order_quantity=str(rec.final_order_quantity),
                ))
        self._bus.publish(PlanRunCompletedEvent(
            plan_id=plan.id,
            run_id=run.run_id,
            status=run.status,
            pairs_processed=run.pairs_processed,
            pairs_errored=run.pairs_errored,
            exceptions_created=run.exceptions_created,
            recommendations_created=run.recommendations_created,
        ))

    def _to_trajectory_row(self, run: PlanRun, row: BucketRow) -> TrajectoryBucket:
        return TrajectoryBucket(
            plan_id=run.plan_id,
            run_id=run.run_id,
            product_id=row.product_id,
            location=row.location,
            bucket_index=row.bucket_index,
            bucket_start=row.bucket_start,
            bucket_end=row.bucket_end,
            beginning_inventory=row.beginning_inventory,
            gross_requirements=row.gross_requirements,
            scheduled_receipts=row.scheduled_receipts,
            projected_available=row.projected_available,
            net_requirements=row.net_requirements,
            planned_order_receipt=row.planned_order_receipt,
            planned_order_release=row.planned_order_release,
            safety_stock=row.safety_stock,
            reorder_point=row.reorder_point,
            lead_time_offset=row.lead_time_offset,
            boundary_release=row.boundary_release,
            is_current=False,
        )

    def _to_bucket_row(self, row: TrajectoryBucket) -> BucketRow:
        return BucketRow(
            product_id=row.product_id,
            location=row.location,
            bucket_index=row.bucket_index,
            bucket_start=row.bucket_start,
            bucket_end=row.bucket_end,
            beginning_inventory=Decimal(str(row.beginning_inventory)),
            gross_requirements=Decimal(str(row.gross_requirements)),
            scheduled_receipts=Decimal(str(row.scheduled_receipts)),
            projected_available=Decimal(str(row.projected_available)),
            net_requirements=Decimal(str(row.net_requirements)),
            planned_order_receipt=Decimal(str(row.planned_order_receipt)),
            planned_order_release=Decimal(str(row.planned_order_release)),
            safety_stock=Decimal(str(row.safety_stock)),
            reorder_point=Decimal(str(row.reorder_point)),
            lead_time_offset=row.lead_time_offset,
            boundary_release=bool(row.boundary_release),
        )

    def _result(self, run: PlanRun, plan_status: str) -> RunResult:
        return RunResult(
            run_id=run.run_id,
            plan_id=run.plan_id,
            status=run.status,
            plan_status=plan_status,
            pairs_total=run.pairs_total,
            pairs_processed=run.pairs_processed,
            pairs_errored=run.pairs_errored,
            errored_pairs=run.errored_pairs,
            trajectory_rows=run.trajectory_rows,
            exceptions_created=run.exceptions_created,
            recommendations_created=run.recommendations_created,
            past_due_recommendations=run.past_due_recommendations,
            boundary_releases=run.boundary_releases,
            started_at=run.started_at,
            completed_at=run.completed_at,
        )
