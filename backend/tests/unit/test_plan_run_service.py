import threading
from decimal import Decimal

import pytest
from fastapi import HTTPException

from conftest import AS_OF, seed_pair, seed_plan, seed_policy
from replenish.config import settings
from replenish.core.exceptions import (
    ConcurrentRunError,
    EntityNotFoundException,
    InfrastructureError,
    InvalidStateTransitionException,
)
from replenish.models import (
    DemandForecast,
    Plan,
    PlanRun,
    PlanningException,
    PurchaseRecommendation,
    TrajectoryBucket,
)
from replenish.services.plan_run_service import PlanRunService, is_run_active_here, request_cancel
from replenish.services.plan_service import PlanService
from replenish.services.planning_inputs import DatabasePlanningInputs
from replenish.utils.events import PlanRunCompletedEvent, PlanStatusChangedEvent


def _current(db, model, plan_id):
    db.expire_all()
    return db.query(model).filter(model.plan_id == plan_id, model.is_current.is_(True)).all()


def _service(db, session_factory, **kwargs):
    return PlanRunService(db, session_factory=session_factory, **kwargs)


class TestRunAndPromote:

    def test_run_promotes_trajectory_exceptions_and_recommendations(self, db, session_factory, standard_pair):
        plan = seed_plan(db)

        result = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert result.status == "completed"
        assert result.plan_status == "active"
        assert result.pairs_total == 1
        assert result.pairs_processed == 1
        assert result.pairs_errored == 0
        assert result.trajectory_rows == 4
        assert result.exceptions_created == 3
        assert result.recommendations_created == 2

        rows = sorted(_current(db, TrajectoryBucket, plan.id), key=lambda r: r.bucket_index)
        assert [Decimal(str(r.projected_available)) for r in rows] == [
            Decimal("70"), Decimal("40"), Decimal("10"), Decimal("-10"),
        ]
        assert {r.run_id for r in rows} == {result.run_id}

        types = sorted(e.exception_type for e in _current(db, PlanningException, plan.id))
        assert types == ["below_safety_stock", "excess_inventory", "stockout"]

        recs = sorted(_current(db, PurchaseRecommendation, plan.id), key=lambda r: r.bucket_start)
        assert [Decimal(str(r.final_order_quantity)) for r in recs] == [Decimal("10"), Decimal("30")]
        assert all(r.approval_status == "pending" for r in recs)
        assert recs[0].supplier_name == "Acme Supply"

        plan = db.get(Plan, plan.id)
        assert plan.status == "active"
        assert plan.current_run_id == result.run_id
        assert plan.next_run_at is not None

        run = db.query(PlanRun).filter(PlanRun.run_id == result.run_id).one()
        assert run.previous_status == "draft"
        assert run.promoted_at is not None
        assert not is_run_active_here(result.run_id)

    def test_every_pair_has_one_row_per_bucket(self, db, session_factory, standard_pair):
        seed_pair(db, "P-200", "DC-1", on_hand=10, demand=[5, 5, 5, 5])
        seed_pair(db, "P-100", "DC-2", on_hand=0, demand=[1, 1, 1, 1])
        plan = seed_plan(db, parameters_json='{"max_workers": 2}')

        result = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert result.pairs_processed == 3
        rows = _current(db, TrajectoryBucket, plan.id)
        per_pair = {}
        for r in rows:
            per_pair.setdefault((r.product_id, r.location), set()).add(r.bucket_index)
        assert per_pair == {pair: {0, 1, 2, 3} for pair in per_pair}
        assert len(per_pair) == 3

    def test_scope_limits_the_working_set(self, db, session_factory, standard_pair):
        seed_pair(db, "P-200", "DC-1", on_hand=10, demand=[5, 5, 5, 5])
        plan = seed_plan(db)

        result = _service(db, session_factory).run(plan.id, scope={"product_ids": ["P-200"]}, as_of=AS_OF)

        assert result.pairs_total == 1
        assert {r.product_id for r in _current(db, TrajectoryBucket, plan.id)} == {"P-200"}

    def test_errored_pair_is_reported_and_others_complete(self, db, session_factory, standard_pair):
        seed_pair(db, "P-NO-FC", "DC-1", on_hand=10)
        seed_pair(db, "P-BAD", "DC-1", on_hand=10, demand=[1, 1, 1, 1])
        seed_policy(db, "P-BAD", "DC-1", min_order_qty=Decimal("50"), max_order_qty=Decimal("40"))
        plan = seed_plan(db)

        result = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert result.status == "completed"
        assert result.pairs_processed == 1
        assert result.pairs_errored == 2
        reasons = {e.product_id: e.reason for e in result.errored_pairs}
        assert reasons["P-NO-FC"] == "no demand data"
        assert "maximum order quantity" in reasons["P-BAD"]
        assert {r.product_id for r in _current(db, TrajectoryBucket, plan.id)} == {"P-100"}

    def test_inactive_policy_pair_is_not_planned(self, db, session_factory, standard_pair):
        seed_pair(db, "P-OFF", "DC-1", on_hand=0, demand=[5, 5, 5, 5])
        seed_policy(db, "P-OFF", "DC-1", active=False)
        plan = seed_plan(db)

        result = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert result.pairs_total == 1
        assert result.pairs_errored == 0

    def test_rerun_replaces_current_rows(self, db, session_factory, standard_pair):
        plan = seed_plan(db)
        first = _service(db, session_factory).run(plan.id, as_of=AS_OF)
        second = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert second.status == "completed"
        current = _current(db, TrajectoryBucket, plan.id)
        assert len(current) == 4
        assert {r.run_id for r in current} == {second.run_id}
        assert len(_current(db, PurchaseRecommendation, plan.id)) == 2
        assert len(_current(db, PlanningException, plan.id)) == 3

        previous = db.query(TrajectoryBucket).filter(TrajectoryBucket.run_id == first.run_id).all()
        assert len(previous) == 4
        assert not any(r.is_current for r in previous)

        run = db.query(PlanRun).filter(PlanRun.run_id == second.run_id).one()
        assert run.previous_status == "active"

    def test_rerun_with_identical_inputs_produces_an_identical_trajectory(self, db, session_factory, standard_pair):
        seed_pair(db, "P-200", "DC-1", on_hand=10, demand=[5, 5, 5, 5])
        plan = seed_plan(db, parameters_json='{"max_workers": 2}')
        first = _service(db, session_factory).run(plan.id, as_of=AS_OF)
        second = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        skipped = {"id", "run_id", "is_current", "created_at"}
        columns = [c.name for c in TrajectoryBucket.__table__.columns if c.name not in skipped]

        def snapshot(run_id):
            rows = (
                db.query(TrajectoryBucket)
                .filter(TrajectoryBucket.run_id == run_id)
                .order_by(TrajectoryBucket.product_id, TrajectoryBucket.location, TrajectoryBucket.bucket_index)
                .all()
            )
            return [tuple(getattr(r, name) for name in columns) for r in rows]

        assert len(snapshot(first.run_id)) == 8
        assert snapshot(first.run_id) == snapshot(second.run_id)

    def test_errored_pair_keeps_its_previous_current_rows(self, db, session_factory, standard_pair):
        seed_pair(db, "P-200", "DC-1", on_hand=10, demand=[5, 5, 5, 5])
        plan = seed_plan(db)
        first = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        db.query(DemandForecast).filter(DemandForecast.product_id == "P-200").delete()
        db.commit()
        second = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert second.pairs_errored == 1
        runs_by_pair = {
            (r.product_id, r.location): r.run_id for r in _current(db, TrajectoryBucket, plan.id)
        }
        assert runs_by_pair[("P-200", "DC-1")] == first.run_id
        assert runs_by_pair[("P-100", "DC-1")] == second.run_id

    def test_past_due_recommendation_raises_order_urgency_when_enabled(
        self, db, session_factory, monkeypatch,
    ):
        monkeypatch.setattr(settings, "PAST_DUE_RAISES_EXCEPTION", True)
        # receipt in bucket 1 with a 14-day lead time -> order date one week before AS_OF
        seed_pair(db, "P-300", "DC-1", on_hand=10, demand=[0, 20, 0, 0])
        seed_policy(db, "P-300", "DC-1", lead_time_days=14, unit_cost=Decimal("1"))
        plan = seed_plan(db)

        result = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        assert result.past_due_recommendations == 1
        types = [e.exception_type for e in _current(db, PlanningException, plan.id)]
        assert "order_urgency" in types
        assert "stockout" in types

    def test_threshold_from_plan_parameters(self, db, session_factory, standard_pair):
        plan = seed_plan(db, parameters_json='{"approval_threshold": 100}')

        _service(db, session_factory).run(plan.id, as_of=AS_OF)

        recs = sorted(_current(db, PurchaseRecommendation, plan.id), key=lambda r: r.bucket_start)
        # 10 x 5 and 30 x 5
        assert [r.threshold_exceeded for r in recs] == [False, True]
        assert {Decimal(str(r.approval_threshold)) for r in recs} == {Decimal("100")}

    def test_run_publishes_status_and_completion_events(self, db, session_factory, standard_pair, event_bus):
        seen = []
        event_bus.subscribe(PlanStatusChangedEvent, seen.append)
        event_bus.subscribe(PlanRunCompletedEvent, seen.append)
        plan = seed_plan(db)

        _service(db, session_factory).run(plan.id, as_of=AS_OF)

        statuses = [(e.old_status, e.new_status) for e in seen if isinstance(e, PlanStatusChangedEvent)]
        assert statuses == [("draft", "running"), ("running", "active")]
        assert [e.status for e in seen if isinstance(e, PlanRunCompletedEvent)] == ["completed"]


class TestRunGuards:

    def test_unknown_plan(self, db, session_factory):
        with pytest.raises(EntityNotFoundException):
            _service(db, session_factory).run(999, as_of=AS_OF)

    def test_running_plan_rejects_a_second_run(self, db, session_factory, standard_pair):
        plan = seed_plan(db)
        service = _service(db, session_factory)
        run = service.start(plan.id)

        with pytest.raises(ConcurrentRunError):
            _service(db, session_factory).start(plan.id)

        result = service.execute(run.run_id, as_of=AS_OF)
        assert result.status == "completed"

    def test_archived_plan_cannot_run(self, db, session_factory):
        plan = seed_plan(db, status="archived")
        with pytest.raises(InvalidStateTransitionException):
            _service(db, session_factory).run(plan.id, as_of=AS_OF)


class _FailingInputs(DatabasePlanningInputs):
    def pair_inputs(self, product_id, location, buckets):
        raise InfrastructureError("forecast store unreachable")


class TestRunFailures:

    def test_infrastructure_failure_restores_the_plan(self, db, session_factory, standard_pair):
        plan = seed_plan(db)

        with pytest.raises(InfrastructureError):
            _service(db, session_factory, inputs_factory=_FailingInputs).run(plan.id, as_of=AS_OF)

        db.expire_all()
        assert db.get(Plan, plan.id).status == "draft"
        run = db.query(PlanRun).filter(PlanRun.plan_id == plan.id).one()
        assert run.status == "failed"
        assert "unreachable" in run.error
        assert run.promoted_at is None
        assert _current(db, TrajectoryBucket, plan.id) == []

    def test_failure_keeps_previous_output_current(self, db, session_factory, standard_pair):
        plan = seed_plan(db)
        first = _service(db, session_factory).run(plan.id, as_of=AS_OF)

        with pytest.raises(InfrastructureError):
            _service(db, session_factory, inputs_factory=_FailingInputs).run(plan.id, as_of=AS_OF)

        db.expire_all()
        assert db.get(Plan, plan.id).status == "active"
        assert {r.run_id for r in _current(db, TrajectoryBucket, plan.id)} == {first.run_id}

    def test_rows_of_an_unpromoted_run_are_not_readable(self, db, session_factory, standard_pair):
        plan = seed_plan(db)
        with pytest.raises(InfrastructureError):
            _service(db, session_factory, inputs_factory=_FailingInputs).run(plan.id, as_of=AS_OF)
        run = db.query(PlanRun).filter(PlanRun.plan_id == plan.id).one()

        with pytest.raises(HTTPException) as exc:
            PlanService(db).get_trajectory(plan.id, run_id=run.run_id)
        assert exc.value.status_code == 404

    def test_pair_timeout_is_recorded_as_an_error(self, db, session_factory, standard_pair):
        seed_pair(db, "P-SLOW", "DC-1", on_hand=10, demand=[1, 1, 1, 1])
        plan = seed_plan(db, parameters_json='{"pair_timeout_seconds": 0.3, "max_workers": 2}')
        release = threading.Event()

        class SlowInputs(DatabasePlanningInputs):
            def pair_inputs(self, product_id, location, buckets):
                if product_id == "P-SLOW":
                    release.wait(5)
                return super().pair_inputs(product_id, location, buckets)

        try:
            result = _service(db, session_factory, inputs_factory=SlowInputs).run(plan.id, as_of=AS_OF)
        finally:
            release.set()

        assert result.status == "completed"
        assert result.pairs_processed == 1
        assert [(e.product_id, e.reason) for e in result.errored_pairs] == [("P-SLOW", "timed out after 0.3s")]
        assert {r.product_id for r in _current(db, TrajectoryBucket, plan.id)} == {"P-100"}

    def test_cancel_stops_dispatch_and_reverts_the_plan(self, db, session_factory, standard_pair):
        seed_pair(db, "P-200", "DC-1", on_hand=10, demand=[1, 1, 1, 1])
        seed_pair(db, "P-300", "DC-1", on_hand=10, demand=[1, 1, 1, 1])
        plan = seed_plan(db, parameters_json='{"max_workers": 1}')
        service = _service(db, session_factory)
        run = service.start(plan.id)

        class CancellingInputs(DatabasePlanningInputs):
            def pair_inputs(self, product_id, location, buckets):
                request_cancel(run.run_id)
                return super().pair_inputs(product_id, location, buckets)

        service._inputs_factory = CancellingInputs
        result = service.execute(run.run_id, as_of=AS_OF)

        assert result.status == "cancelled"
        assert result.plan_status == "draft"
        assert result.pairs_processed == 1
        db.expire_all()
        assert db.get(Plan, plan.id).status == "draft"
        assert _current(db, TrajectoryBucket, plan.id) == []

    def test_timed_out_pair_does_not_use_up_the_clock_of_queued_pairs(self, db, session_factory, standard_pair):
        # P-0SLOW sorts ahead of P-100, so with one worker P-100 queues behind it.
        seed_pair(db, "P-0SLOW", "DC-1", on_hand=10, demand=[1, 1, 1, 1])
        plan = seed_plan(db, parameters_json='{"pair_timeout_seconds": 0.3, "max_workers": 1}')

        class HangingInputs(DatabasePlanningInputs):
            def pair_inputs(self, product_id, location, buckets):
                if product_id == "P-0SLOW":
                    threading.Event().wait(1.5)
                return super().pair_inputs(product_id, location, buckets)

        result = _service(db, session_factory, inputs_factory=HangingInputs).run(plan.id, as_of=AS_OF)

        assert result.status == "completed"
        assert result.pairs_processed == 1
        assert [(e.product_id, e.reason) for e in result.errored_pairs] == [("P-0SLOW", "timed out after 0.3s")]
        assert {r.product_id for r in _current(db, TrajectoryBucket, plan.id)} == {"P-100"}

    def test_cancel_fails_the_run_when_the_plan_already_left_running(self, db, session_factory, standard_pair):
        plan = seed_plan(db, parameters_json='{"max_workers": 1}')
        service = _service(db, session_factory)
        run = service.start(plan.id)

        class InterferingInputs(DatabasePlanningInputs):
            def pair_inputs(self, product_id, location, buckets):
                other = session_factory()
                try:
                    other.query(Plan).filter(Plan.id == plan.id).update({Plan.status: "archived"})
                    other.commit()
                finally:
                    other.close()
                request_cancel(run.run_id)
                return super().pair_inputs(product_id, location, buckets)

        service._inputs_factory = InterferingInputs
        with pytest.raises(InfrastructureError):
            service.execute(run.run_id, as_of=AS_OF)

        db.expire_all()
        stored = db.query(PlanRun).filter(PlanRun.run_id == run.run_id).one()
        assert stored.status == "failed"
        assert db.get(Plan, plan.id).status == "archived"
