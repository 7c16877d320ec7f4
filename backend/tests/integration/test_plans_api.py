"""
Integration Tests — Plan Endpoints

Tests:
- Plan CRUD and archive
- Synchronous and background runs
- Run history and planning output reads
"""
import time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import AS_OF, seed_plan

RUN_BODY = {"as_of": AS_OF.isoformat()}


def _create_plan(client: TestClient, **overrides) -> dict:
    payload = {
        "name": "DC-1 weekly replenishment",
        "plan_type": "MRP",
        "horizon_buckets": 4,
        "bucket_granularity": "week",
    }
    payload.update(overrides)
    resp = client.post("/api/v1/plans", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestPlanCRUD:

    def test_create_plan_starts_in_draft(self, client: TestClient):
        plan = _create_plan(client, parameters={"approval_threshold": 500})
        assert plan["status"] == "draft"
        assert plan["code"].startswith("MRP-")
        assert plan["parameters"] == {"approval_threshold": 500}

    def test_create_plan_validates_granularity(self, client: TestClient):
        resp = client.post("/api/v1/plans", json={"name": "Bad", "bucket_granularity": "year"})
        assert resp.status_code == 422

    def test_list_and_filter_plans(self, client: TestClient):
        _create_plan(client)
        _create_plan(client, plan_type="DRP", name="DRP plan")

        resp = client.get("/api/v1/plans", params={"plan_type": "DRP"})
        assert resp.status_code == 200
        assert [p["plan_type"] for p in resp.json()] == ["DRP"]

        resp = client.get("/api/v1/plans", params={"status": "draft"})
        assert len(resp.json()) == 2

    def test_get_unknown_plan_returns_404(self, client: TestClient):
        assert client.get("/api/v1/plans/99999").status_code == 404

    def test_update_plan(self, client: TestClient):
        plan = _create_plan(client)
        resp = client.put(f"/api/v1/plans/{plan['id']}", json={"horizon_buckets": 8, "name": "Renamed"})
        assert resp.status_code == 200
        assert resp.json()["horizon_buckets"] == 8
        assert resp.json()["name"] == "Renamed"

    def test_running_plan_cannot_be_edited(self, client: TestClient, db):
        plan = seed_plan(db, status="running")
        resp = client.put(f"/api/v1/plans/{plan.id}", json={"name": "Nope"})
        assert resp.status_code == 422

    def test_archive_is_terminal(self, client: TestClient, standard_pair):
        plan = _create_plan(client)
        resp = client.post(f"/api/v1/plans/{plan['id']}/archive")
        assert resp.status_code == 200
        assert resp.json()["status"] == "archived"

        assert client.post(f"/api/v1/plans/{plan['id']}/archive").status_code == 409
        assert client.post(f"/api/v1/plans/{plan['id']}/run", json=RUN_BODY).status_code == 409


class TestPlanRuns:

    def test_run_plan_returns_counters(self, client: TestClient, standard_pair):
        plan = _create_plan(client)

        resp = client.post(f"/api/v1/plans/{plan['id']}/run", json=RUN_BODY)

        assert resp.status_code == 200, resp.text
        result = resp.json()
        assert result["status"] == "completed"
        assert result["plan_status"] == "active"
        assert result["pairs_processed"] == 1
        assert result["trajectory_rows"] == 4
        assert result["exceptions_created"] == 3
        assert result["recommendations_created"] == 2

        plan = client.get(f"/api/v1/plans/{plan['id']}").json()
        assert plan["status"] == "active"
        assert plan["current_run_id"] == result["run_id"]

    def test_run_without_body_uses_today(self, client: TestClient, standard_pair):
        plan = _create_plan(client)
        resp = client.post(f"/api/v1/plans/{plan['id']}/run")
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

    def test_run_on_a_running_plan_returns_409(self, client: TestClient, db):
        plan = seed_plan(db, status="running")
        resp = client.post(f"/api/v1/plans/{plan.id}/run", json=RUN_BODY)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONCURRENT_RUN"

    def test_run_unknown_plan_returns_404(self, client: TestClient):
        assert client.post("/api/v1/plans/99999/run", json=RUN_BODY).status_code == 404

    def test_rerun_keeps_one_current_row_per_bucket(self, client: TestClient, standard_pair):
        plan = _create_plan(client)
        client.post(f"/api/v1/plans/{plan['id']}/run", json=RUN_BODY)
        second = client.post(f"/api/v1/plans/{plan['id']}/run", json=RUN_BODY).json()

        rows = client.get(f"/api/v1/plans/{plan['id']}/trajectory").json()
        assert len(rows) == 4
        assert {r["run_id"] for r in rows} == {second["run_id"]}

        runs = client.get(f"/api/v1/plans/{plan['id']}/runs").json()
        assert len(runs) == 2
        assert runs[0]["run_id"] == second["run_id"]

    def test_background_run_completes(self, client: TestClient, standard_pair):
        plan = _create_plan(client)

        resp = client.post(f"/api/v1/plans/{plan['id']}/runs", json=RUN_BODY)
        assert resp.status_code == 202
        run_id = resp.json()["run_id"]
        assert resp.json()["trigger_source"] == "async"

        deadline = time.monotonic() + 10
        run = resp.json()
        while run["status"] == "running" and time.monotonic() < deadline:
            time.sleep(0.05)
            run = client.get(f"/api/v1/plan-runs/{run_id}").json()

        assert run["status"] == "completed"
        assert run["promoted_at"] is not None
        assert run["recommendations_created"] == 2

    def test_cancel_finished_run_returns_409(self, client: TestClient, standard_pair):
        plan = _create_plan(client)
        run_id = client.post(f"/api/v1/plans/{plan['id']}/run", json=RUN_BODY).json()["run_id"]

        assert client.post(f"/api/v1/plan-runs/{run_id}/cancel").status_code == 409

    def test_unknown_run_returns_404(self, client: TestClient):
        assert client.get("/api/v1/plan-runs/does-not-exist").status_code == 404
        assert client.post("/api/v1/plan-runs/does-not-exist/cancel").status_code == 404


class TestPlanningOutput:

    @pytest.fixture
    def run_result(self, client: TestClient, standard_pair):
        plan = _create_plan(client)
        result = client.post(f"/api/v1/plans/{plan['id']}/run", json=RUN_BODY).json()
        return plan, result

    def test_trajectory(self, client: TestClient, run_result):
        plan, _ = run_result
        rows = client.get(f"/api/v1/plans/{plan['id']}/trajectory", params={"product_id": "P-100"}).json()

        assert [r["bucket_index"] for r in rows] == [0, 1, 2, 3]
        assert [Decimal(str(r["projected_available"])) for r in rows] == [
            Decimal("70"), Decimal("40"), Decimal("10"), Decimal("-10"),
        ]
        assert [Decimal(str(r["planned_order_release"])) for r in rows] == [
            Decimal("0"), Decimal("10"), Decimal("30"), Decimal("0"),
        ]
        assert all(r["is_current"] for r in rows)

    def test_trajectory_by_promoted_run_id(self, client: TestClient, run_result):
        plan, result = run_result
        rows = client.get(f"/api/v1/plans/{plan['id']}/trajectory", params={"run_id": result["run_id"]}).json()
        assert len(rows) == 4

    def test_trajectory_of_unknown_run_returns_404(self, client: TestClient, run_result):
        plan, _ = run_result
        resp = client.get(f"/api/v1/plans/{plan['id']}/trajectory", params={"run_id": "nope"})
        assert resp.status_code == 404

    def test_exceptions_sorted_by_severity(self, client: TestClient, run_result):
        plan, _ = run_result
        rows = client.get(f"/api/v1/plans/{plan['id']}/exceptions").json()
        assert [r["severity"] for r in rows] == ["critical", "high", "low"]

        critical = client.get(f"/api/v1/plans/{plan['id']}/exceptions", params={"severity": "critical"}).json()
        assert [r["exception_type"] for r in critical] == ["stockout"]
        assert Decimal(str(critical[0]["shortage_quantity"])) == Decimal("10")

    def test_recommendations_filters(self, client: TestClient, run_result):
        plan, _ = run_result
        recs = client.get(f"/api/v1/plans/{plan['id']}/recommendations").json()
        assert len(recs) == 2
        assert all(r["approval_status"] == "pending" for r in recs)

        none_past_due = client.get(
            f"/api/v1/plans/{plan['id']}/recommendations", params={"past_due": True},
        ).json()
        assert none_past_due == []

        bad = client.get(f"/api/v1/plans/{plan['id']}/recommendations", params={"approval_status": "maybe"})
        assert bad.status_code == 422
