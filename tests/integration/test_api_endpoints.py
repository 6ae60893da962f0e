"""API endpoint integration tests.

Tests the FastAPI endpoints on top of the SQL repositories.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

HR = {
    "X-Actor-Id": "emp-hr",
    "X-Actor-Name": "Huda HR",
    "X-Actor-Permissions": "approval.manage,approval.view,payroll.manage,attendance.import",
}
WORKER = {"X-Actor-Id": "emp-worker", "X-Actor-Name": "Ahmed Worker"}
SUPERVISOR = {
    "X-Actor-Id": "emp-super",
    "X-Actor-Name": "Sara Supervisor",
    "X-Actor-Permissions": "approval.view",
}

LEAVE = {
    "request_type": "leave",
    "employee_id": "emp-worker",
    "request_data": {"leave_type": "annual", "start_date": "2024-03-20", "days": 2},
}


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint reports the storage state."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "ok"
        assert data["open_requests"] == 0

    async def test_readiness_and_liveness(self, client: AsyncClient):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestActorHeaders:
    """Test identity and permission checks."""

    async def test_missing_actor_is_unauthorized(self, client: AsyncClient):
        response = await client.post("/api/v1/payroll/2024-03/generate")
        assert response.status_code == 401

    async def test_missing_permission_is_forbidden(self, client: AsyncClient):
        response = await client.post("/api/v1/payroll/2024-03/generate", headers=WORKER)
        assert response.status_code == 403
        assert "payroll.manage" in response.json()["detail"]

    async def test_malformed_month_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/payroll/March/generate", headers=HR)
        assert response.status_code == 422


class TestPayrollEndpoints:
    """Test the month lifecycle over HTTP."""

    async def test_generate_finalize_lock(self, client: AsyncClient):
        generated = await client.post("/api/v1/payroll/2024-03/generate", headers=HR)
        assert generated.status_code == 200
        body = generated.json()
        assert body["total_processed"] == 6
        assert Decimal(body["total_gross"]) == Decimal("43240.00")
        assert body["recalculated"] is False

        records = await client.get("/api/v1/payroll/2024-03/records", headers=HR)
        assert records.json()["total"] == 6

        finalized = await client.post("/api/v1/payroll/2024-03/finalize", headers=HR)
        assert finalized.status_code == 200
        assert finalized.json()["status"] == "finalized"
        assert finalized.json()["snapshot_version"]

        summaries = await client.get("/api/v1/payroll/2024-03/cost-summaries", headers=HR)
        assert len(summaries.json()) == 5

        locked = await client.post("/api/v1/payroll/2024-03/lock", headers=HR)
        assert locked.json()["status"] == "locked"
        assert locked.json()["locked_by"] == "emp-hr"

        trail = await client.get("/api/v1/payroll/2024-03/audit", headers=HR)
        assert [e["action"] for e in trail.json()] == ["lock", "finalize", "generate"]

    async def test_regenerate_after_finalize_conflicts(self, client: AsyncClient):
        await client.post("/api/v1/payroll/2024-03/generate", headers=HR)
        await client.post("/api/v1/payroll/2024-03/finalize", headers=HR)

        response = await client.post("/api/v1/payroll/2024-03/generate", headers=HR)

        assert response.status_code == 409
        assert response.headers["X-Error-Code"] == "month_finalized"

    async def test_unknown_month(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/2031-01", headers=HR)
        assert response.status_code == 404

        finalize = await client.post("/api/v1/payroll/2031-01/finalize", headers=HR)
        assert finalize.status_code == 404
        assert finalize.headers["X-Error-Code"] == "not_found"


class TestApprovalEndpoints:
    """Test filing and deciding requests over HTTP."""

    async def test_create_and_approve(self, client: AsyncClient):
        created = await client.post("/api/v1/approvals", json=LEAVE, headers=WORKER)
        assert created.status_code == 201
        request = created.json()
        assert [s["approver_employee_id"] for s in request["approval_chain"]] == [
            "emp-super",
            "emp-manager",
            "emp-hr",
        ]

        approved = await client.post(
            f"/api/v1/approvals/{request['request_id']}/approve",
            json={"notes": "ok"},
            headers=SUPERVISOR,
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "in_progress"
        assert approved.json()["current_step"] == 1

        pending = await client.get(
            "/api/v1/approvals/pending", headers={"X-Actor-Id": "emp-manager"}
        )
        assert [r["request_id"] for r in pending.json()["items"]] == [request["request_id"]]

    async def test_wrong_approver_forbidden(self, client: AsyncClient):
        created = await client.post("/api/v1/approvals", json=LEAVE, headers=WORKER)

        response = await client.post(
            f"/api/v1/approvals/{created.json()['request_id']}/approve", headers=WORKER
        )

        assert response.status_code == 403
        assert response.headers["X-Error-Code"] == "not_authorized"

    async def test_employee_sees_only_own_requests(self, client: AsyncClient):
        await client.post("/api/v1/approvals", json=LEAVE, headers=WORKER)
        await client.post(
            "/api/v1/approvals",
            json={**LEAVE, "request_type": "overtime", "employee_id": "emp-daily"},
            headers=HR,
        )

        own = await client.get("/api/v1/approvals", headers=WORKER)
        everything = await client.get("/api/v1/approvals", headers=HR)

        assert own.json()["total"] == 1
        assert everything.json()["total"] == 2

    async def test_unknown_request_type(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/approvals", json={**LEAVE, "request_type": "bonus"}, headers=WORKER
        )
        assert response.status_code == 422
        assert response.headers["X-Error-Code"] == "unknown_request_type"


class TestAttendanceAndConfigEndpoints:
    """Test device import and config module updates."""

    async def test_import_attendance(self, client: AsyncClient):
        payload = {
            "csv_text": "101,2024-03-04 08:20:00,D1\n101,2024-03-04 17:00:00,D1\n",
            "shift": {"start_time": "08:00", "end_time": "17:00", "break_minutes": 60},
        }

        response = await client.post("/api/v1/attendance/import", json=payload, headers=HR)

        assert response.status_code == 200
        body = response.json()
        assert body["valid_rows"] == 2
        assert body["records"] == 1
        assert body["unmatched_codes"] == []

    async def test_update_config_module(self, client: AsyncClient):
        response = await client.put(
            "/api/v1/config/modules/overtime",
            json={"changes": {"multiplier": 2.0}},
            headers=HR,
        )
        assert response.status_code == 200
        assert response.json()["config_version"] == 1

        unknown = await client.put(
            "/api/v1/config/modules/bonus", json={"changes": {}}, headers=HR
        )
        assert unknown.status_code == 422
        assert unknown.headers["X-Error-Code"] == "unknown_config_module"
