"""
Integration Tests — Recommendation, Planning Exception and Policy Endpoints
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import AS_OF, seed_plan, seed_policy


@pytest.fixture
def plan_id(client: TestClient, db, standard_pair):
    plan = seed_plan(db)
    resp = client.post(f"/api/v1/plans/{plan.id}/run", json={"as_of": AS_OF.isoformat()})
    assert resp.status_code == 200, resp.text
    return plan.id


def _recommendations(client, plan_id):
    return client.get(f"/api/v1/plans/{plan_id}/recommendations").json()


def _exceptions(client, plan_id, **params):
    return client.get(f"/api/v1/plans/{plan_id}/exceptions", params=params).json()


class TestRecommendationDecisions:

    def test_get_recommendation(self, client: TestClient, plan_id):
        rec = _recommendations(client, plan_id)[0]
        resp = client.get(f"/api/v1/recommendations/{rec['id']}")
        assert resp.status_code == 200
        assert resp.json()["code"].startswith("REC-")

    def test_approve_and_convert(self, client: TestClient, plan_id):
        rec = _recommendations(client, plan_id)[0]

        resp = client.post(f"/api/v1/recommendations/{rec['id']}/approve", json={"notes": "looks right"})
        assert resp.status_code == 200
        assert resp.json()["approval_status"] == "approved"

        resp = client.post(f"/api/v1/recommendations/{rec['id']}/convert", json={"order_reference": "PO-1001"})
        assert resp.status_code == 200
        assert resp.json()["approval_status"] == "converted"
        assert resp.json()["order_reference"] == "PO-1001"

        assert client.post(f"/api/v1/recommendations/{rec['id']}/approve").status_code == 409

    def test_reject(self, client: TestClient, plan_id):
        rec = _recommendations(client, plan_id)[1]
        resp = client.post(f"/api/v1/recommendations/{rec['id']}/reject")
        assert resp.status_code == 200
        assert resp.json()["approval_status"] == "rejected"

        rejected = client.get(
            f"/api/v1/plans/{plan_id}/recommendations", params={"approval_status": "rejected"},
        ).json()
        assert [r["id"] for r in rejected] == [rec["id"]]

    def test_modify(self, client: TestClient, plan_id):
        rec = _recommendations(client, plan_id)[0]
        resp = client.patch(
            f"/api/v1/recommendations/{rec['id']}",
            json={"final_order_quantity": 40, "notes": "round up to a pallet"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["approval_status"] == "modified"
        assert Decimal(str(body["final_order_quantity"])) == Decimal("40")
        assert Decimal(str(body["total_value"])) == Decimal("200")

    def test_modify_rejects_non_positive_quantity(self, client: TestClient, plan_id):
        rec = _recommendations(client, plan_id)[0]
        resp = client.patch(f"/api/v1/recommendations/{rec['id']}", json={"final_order_quantity": 0})
        assert resp.status_code == 422

    def test_unknown_recommendation_returns_404(self, client: TestClient):
        assert client.get("/api/v1/recommendations/424242").status_code == 404


class TestPlanningExceptionFollowUp:

    def test_update_and_resolve(self, client: TestClient, plan_id):
        ex = _exceptions(client, plan_id, exception_type="stockout")[0]

        resp = client.patch(
            f"/api/v1/planning-exceptions/{ex['id']}",
            json={"resolution_status": "in_progress", "resolution_notes": "chasing supplier"},
        )
        assert resp.status_code == 200
        assert resp.json()["resolution_status"] == "in_progress"

        resp = client.post(
            f"/api/v1/planning-exceptions/{ex['id']}/resolve",
            json={"resolution_notes": "expedited"},
        )
        assert resp.status_code == 200
        assert resp.json()["resolution_status"] == "resolved"
        assert resp.json()["resolved_at"] is not None

        assert client.post(f"/api/v1/planning-exceptions/{ex['id']}/resolve").status_code == 409
        open_only = _exceptions(client, plan_id, resolution_status="open")
        assert ex["id"] not in [e["id"] for e in open_only]

    def test_invalid_status_value_returns_422(self, client: TestClient, plan_id):
        ex = _exceptions(client, plan_id)[0]
        resp = client.patch(f"/api/v1/planning-exceptions/{ex['id']}", json={"resolution_status": "done"})
        assert resp.status_code == 422

    def test_unknown_exception_returns_404(self, client: TestClient):
        assert client.get("/api/v1/planning-exceptions/424242").status_code == 404


class TestPolicies:

    def test_list_policies(self, client: TestClient, db):
        seed_policy(db, "P-1", "DC-1")
        seed_policy(db, "P-2", "DC-1", active=False)

        resp = client.get("/api/v1/policies", params={"active": True})
        assert resp.status_code == 200
        assert [p["product_id"] for p in resp.json()] == ["P-1"]

    def test_get_policy(self, client: TestClient, db):
        seed_policy(db, "P-1", "DC-1", lead_time_days=12)
        resp = client.get("/api/v1/policies/P-1/DC-1")
        assert resp.status_code == 200
        assert resp.json()["lead_time_days"] == 12
        assert resp.json()["is_default"] is False

    def test_missing_policy(self, client: TestClient):
        assert client.get("/api/v1/policies/P-9/DC-9").status_code == 404

        resp = client.get("/api/v1/policies/P-9/DC-9", params={"include_default": True})
        assert resp.status_code == 200
        assert resp.json()["is_default"] is True
