"""API endpoint tests.

Drives the FastAPI app over httpx against the in-memory database.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

from quincena_payroll import __version__

pytestmark = pytest.mark.asyncio


def headers(company, user_id) -> dict[str, str]:
    return {"X-Company-ID": str(company.company_id), "X-User-ID": str(user_id)}


async def _ensure_and_create_run(client, company, actor_id, half="FIRST") -> dict:
    response = await client.post(
        "/api/v1/payroll/periods/ensure-current",
        headers=headers(company, actor_id),
        json={"year": 2026, "month": 1},
    )
    assert response.status_code == 200, response.text

    response = await client.post(
        "/api/v1/payroll/runs",
        headers=headers(company, actor_id),
        json={"year": 2026, "month": 1, "half": half},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["version"] == __version__
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestHeaders:
    """Company and user come from headers."""

    async def test_company_header_required(self, client: AsyncClient, actor_id):
        response = await client.get("/api/v1/payroll/runs")
        assert response.status_code == 400
        assert "X-Company-ID" in response.json()["detail"]

    async def test_invalid_company_header(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/runs", headers={"X-Company-ID": "nope"})
        assert response.status_code == 400

    async def test_user_header_required(self, client: AsyncClient, company):
        response = await client.post(
            "/api/v1/payroll/periods/ensure-current",
            headers={"X-Company-ID": str(company.company_id)},
            json={"year": 2026, "month": 1},
        )
        assert response.status_code == 400
        assert "X-User-ID" in response.json()["detail"]


class TestPeriodsAndRuns:
    """Period and run endpoints."""

    async def test_ensure_current_periods(self, client: AsyncClient, company, actor_id):
        response = await client.post(
            "/api/v1/payroll/periods/ensure-current",
            headers=headers(company, actor_id),
            json={"year": 2026, "month": 2},
        )

        assert response.status_code == 200, response.text
        items = response.json()["items"]
        assert [(p["half"], p["date_from"], p["date_to"]) for p in items] == [
            ("FIRST", "2026-02-01", "2026-02-15"),
            ("SECOND", "2026-02-16", "2026-02-28"),
        ]

    async def test_ensure_rejects_bad_month(self, client: AsyncClient, company, actor_id):
        response = await client.post(
            "/api/v1/payroll/periods/ensure-current",
            headers=headers(company, actor_id),
            json={"year": 2026, "month": 13},
        )
        assert response.status_code == 422

    async def test_create_run(self, client: AsyncClient, company, employees, actor_id):
        run = await _ensure_and_create_run(client, company, actor_id)

        assert run["status"] == "DRAFT"
        assert run["version"] == 1
        assert run["company_id"] == str(company.company_id)

    async def test_create_run_needs_period_reference(
        self, client: AsyncClient, company, actor_id
    ):
        response = await client.post(
            "/api/v1/payroll/runs",
            headers=headers(company, actor_id),
            json={"year": 2026, "month": 1},
        )
        assert response.status_code == 422

    async def test_duplicate_run_conflicts(self, client: AsyncClient, company, employees, actor_id):
        await _ensure_and_create_run(client, company, actor_id)

        response = await client.post(
            "/api/v1/payroll/runs",
            headers=headers(company, actor_id),
            json={"year": 2026, "month": 1, "half": "FIRST"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    async def test_unknown_period(self, client: AsyncClient, company, actor_id):
        response = await client.post(
            "/api/v1/payroll/runs",
            headers=headers(company, actor_id),
            json={"period_id": str(uuid4())},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_unknown_run(self, client: AsyncClient, company, actor_id):
        response = await client.get(
            f"/api/v1/payroll/runs/{uuid4()}", headers=headers(company, actor_id)
        )

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_list_runs(self, client: AsyncClient, company, employees, actor_id):
        await _ensure_and_create_run(client, company, actor_id, "FIRST")
        await _ensure_and_create_run(client, company, actor_id, "SECOND")

        response = await client.get(
            "/api/v1/payroll/runs",
            headers=headers(company, actor_id),
            params={"year": 2026, "month": 1, "status": "DRAFT"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [i["period"]["half"] for i in data["items"]] == ["SECOND", "FIRST"]
        assert Decimal(data["items"][0]["totals"]["gross"]) == Decimal("37500.00")

    async def test_mark_paid_requires_approval(
        self, client: AsyncClient, company, employees, actor_id
    ):
        run = await _ensure_and_create_run(client, company, actor_id)

        response = await client.post(
            f"/api/v1/payroll/runs/{run['run_id']}/mark-paid",
            headers=headers(company, actor_id),
        )

        assert response.status_code == 409
        assert response.json()["code"] == "invalid_state"

    async def test_stale_expected_version(self, client: AsyncClient, company, employees, actor_id):
        run = await _ensure_and_create_run(client, company, actor_id)

        response = await client.post(
            f"/api/v1/payroll/runs/{run['run_id']}/approve",
            headers=headers(company, actor_id),
            json={"expected_version": 5},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"
        assert response.json()["context"]["expected_version"] == 5


class TestMovements:
    """Movement endpoints."""

    async def test_create_update_void(self, client: AsyncClient, company, employees, actor_id):
        response = await client.post(
            "/api/v1/payroll/movements",
            headers=headers(company, actor_id),
            json={
                "employee_id": str(employees["ana"].employee_id),
                "movement_type": "DEDUCTION",
                "source": "ADVANCE",
                "concept_code": "AVANCE",
                "concept_name": "Avance de salario",
                "amount": "1000",
                "effective_date": "2026-01-05",
            },
        )
        assert response.status_code == 201, response.text
        movement = response.json()
        assert movement["status"] == "PENDING"
        assert movement["period_id"] is None

        response = await client.put(
            f"/api/v1/payroll/movements/{movement['movement_id']}",
            headers=headers(company, actor_id),
            json={"amount": "750.25"},
        )
        assert response.status_code == 200, response.text
        assert Decimal(response.json()["amount"]) == Decimal("750.25")
        assert response.json()["concept_code"] == "AVANCE"

        response = await client.delete(
            f"/api/v1/payroll/movements/{movement['movement_id']}",
            headers=headers(company, actor_id),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "VOIDED"

        response = await client.get(
            "/api/v1/payroll/movements",
            headers=headers(company, actor_id),
            params={"status": "VOIDED", "employeeId": str(employees["ana"].employee_id)},
        )
        assert [m["movement_id"] for m in response.json()["items"]] == [movement["movement_id"]]

    async def test_rejects_non_positive_amount(
        self, client: AsyncClient, company, employees, actor_id
    ):
        response = await client.post(
            "/api/v1/payroll/movements",
            headers=headers(company, actor_id),
            json={
                "employee_id": str(employees["ana"].employee_id),
                "movement_type": "EARNING",
                "source": "MANUAL",
                "concept_code": "BONO",
                "concept_name": "Bono",
                "amount": "0",
                "effective_date": "2026-01-05",
            },
        )
        assert response.status_code == 422

    async def test_rejects_unknown_employee(self, client: AsyncClient, company, actor_id):
        response = await client.post(
            "/api/v1/payroll/movements",
            headers=headers(company, actor_id),
            json={
                "employee_id": str(uuid4()),
                "movement_type": "EARNING",
                "source": "MANUAL",
                "concept_code": "BONO",
                "concept_name": "Bono",
                "amount": "10",
                "effective_date": "2026-01-05",
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"


class TestFullFlow:
    """Create, import, recalculate, approve, pay, and read back as the employee."""

    async def test_quincena_flow(
        self, client: AsyncClient, company, employees, statutory_config, actor_id, storage
    ):
        admin = headers(company, actor_id)
        ana_id = employees["ana"].employee_id

        run = await _ensure_and_create_run(client, company, actor_id)
        run_id = run["run_id"]

        response = await client.post(
            "/api/v1/payroll/movements",
            headers=admin,
            json={
                "employee_id": str(ana_id),
                "movement_type": "EARNING",
                "source": "SALES_COMMISSION",
                "concept_code": "COMISION",
                "concept_name": "Comisión ventas",
                "amount": "2000",
                "effective_date": "2026-01-10",
            },
        )
        assert response.status_code == 201, response.text
        movement_id = response.json()["movement_id"]

        response = await client.post(
            f"/api/v1/payroll/runs/{run_id}/import-movements", headers=admin
        )
        assert response.status_code == 200, response.text
        assert response.json()["claimed"] == 1

        # Claimed movements are frozen
        response = await client.put(
            f"/api/v1/payroll/movements/{movement_id}", headers=admin, json={"amount": "1"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_state"

        response = await client.post(f"/api/v1/payroll/runs/{run_id}/recalculate", headers=admin)
        assert response.status_code == 200, response.text
        recalculated = response.json()
        assert recalculated["run"]["status"] == "REVIEW"
        assert recalculated["statutory_config_id"] == str(statutory_config.statutory_config_id)
        assert recalculated["needs_review_count"] == 1

        response = await client.get(f"/api/v1/payroll/runs/{run_id}", headers=admin)
        assert response.status_code == 200
        detail = response.json()
        ana = next(s for s in detail["summaries"] if s["employee_id"] == str(ana_id))
        assert Decimal(ana["gross_amount"]) == Decimal("17000.00")
        assert Decimal(ana["net_amount"]) == Decimal("15995.30")
        assert len(ana["line_items"]) == 5
        assert detail["totals"]["employee_count"] == 3

        response = await client.post(
            f"/api/v1/payroll/runs/{run_id}/approve",
            headers=admin,
            json={"expected_version": detail["run"]["version"]},
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "APPROVED"

        response = await client.post(f"/api/v1/payroll/runs/{run_id}/recalculate", headers=admin)
        assert response.status_code == 409

        response = await client.post(f"/api/v1/payroll/runs/{run_id}/mark-paid", headers=admin)
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "PAID"
        assert response.json()["paid_at"] is not None
        assert len(storage.files) == 3

        # Employee view
        employee = headers(company, ana_id)

        response = await client.get("/api/v1/my/payroll", headers=employee)
        assert response.status_code == 200
        items = response.json()["items"]
        assert [i["run_id"] for i in items] == [run_id]
        assert Decimal(items[0]["net_amount"]) == Decimal("15995.30")

        response = await client.get(f"/api/v1/my/payroll/{run_id}", headers=employee)
        assert response.status_code == 200, response.text
        payslip = response.json()["payslip"]
        assert payslip["pdf_url"] == f"/uploads/payroll/payslips/{run_id}/{ana_id}.pdf"
        assert payslip["snapshot"]["employee"]["name"] == "Ana Pérez"

        response = await client.get("/api/v1/my/payroll/notifications", headers=employee)
        assert response.status_code == 200
        notifications = response.json()["items"]
        assert len(notifications) == 1
        assert notifications[0]["run_id"] == run_id
        assert notifications[0]["pdf_url"] == payslip["pdf_url"]

        # Another employee cannot read ana's payslip
        response = await client.get(
            f"/api/v1/my/payroll/{run_id}", headers=headers(company, employees["pedro"].employee_id)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_document_failure_maps_to_bad_gateway(
        self, client: AsyncClient, company, employees, actor_id, renderer
    ):
        admin = headers(company, actor_id)
        run = await _ensure_and_create_run(client, company, actor_id)
        run_id = run["run_id"]

        response = await client.post(f"/api/v1/payroll/runs/{run_id}/approve", headers=admin)
        assert response.status_code == 200, response.text

        renderer.fail_for = {str(employees["luis"].employee_id)}
        response = await client.post(f"/api/v1/payroll/runs/{run_id}/mark-paid", headers=admin)

        assert response.status_code == 502
        assert response.json()["code"] == "document_error"

        response = await client.get(f"/api/v1/payroll/runs/{run_id}", headers=admin)
        assert response.json()["run"]["status"] == "APPROVED"
