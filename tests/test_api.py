"""
HRMS Payroll - API Integration Tests

Integration tests for REST API endpoints.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient


PAYROLL = "/api/v1/payroll"
TAX = "/api/v1/tax"


class TestHealthEndpoint:
    """Test health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["currency"] == "NGN"


class TestSalarySlipAPI:
    """Generation, lookup and lifecycle endpoints."""

    @pytest.mark.asyncio
    async def test_generate_salary_slip(self, client: AsyncClient, test_employee):
        response = await client.post(
            f"{PAYROLL}/components",
            json={
                "employee_id": str(test_employee.id),
                "kind": "benefit",
                "label": "Housing",
                "amount": "2000.00",
            },
        )
        assert response.status_code == 201

        response = await client.post(
            f"{PAYROLL}/salary-slips/generate",
            json={"employee_id": str(test_employee.id), "salary_period": "2026-01"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["slip_reference"].startswith("SLP-")
        assert data["status"] == "generated"
        assert Decimal(data["total_earnings"]) == Decimal("52000.00")
        assert Decimal(data["net_payable"]) == Decimal("52000.00")
        assert data["benefits"][0]["label"] == "Housing"

    @pytest.mark.asyncio
    async def test_duplicate_generation_returns_422(self, client: AsyncClient, test_employee):
        payload = {"employee_id": str(test_employee.id), "salary_period": "2026-01"}
        first = await client.post(f"{PAYROLL}/salary-slips/generate", json=payload)
        assert first.status_code == 201

        response = await client.post(f"{PAYROLL}/salary-slips/generate", json=payload)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "DUPLICATE_SLIP"
        assert detail["details"]["existing_slip_id"] == first.json()["id"]
        assert "timestamp" in detail

    @pytest.mark.asyncio
    async def test_unknown_employee_returns_404(self, client: AsyncClient):
        response = await client.post(
            f"{PAYROLL}/salary-slips/generate",
            json={"employee_id": str(uuid4()), "salary_period": "2026-01"},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "EMPLOYEE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_malformed_period_is_rejected(self, client: AsyncClient, test_employee):
        response = await client.post(
            f"{PAYROLL}/salary-slips/generate",
            json={"employee_id": str(test_employee.id), "salary_period": "2026-13"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_paid_slip_is_final(self, client: AsyncClient, test_employee):
        created = await client.post(
            f"{PAYROLL}/salary-slips/generate",
            json={"employee_id": str(test_employee.id), "salary_period": "2026-01"},
        )
        slip_id = created.json()["id"]

        paid = await client.post(
            f"{PAYROLL}/salary-slips/{slip_id}/mark-paid",
            json={"payment_method": "bank_transfer", "payment_reference": "TRF-42"},
        )
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"
        assert paid.json()["payment_method"] == "bank_transfer"

        again = await client.post(f"{PAYROLL}/salary-slips/{slip_id}/mark-paid")
        assert again.status_code == 409
        assert again.json()["detail"]["code"] == "SLIP_ALREADY_PAID"

        deleted = await client.delete(f"{PAYROLL}/salary-slips/{slip_id}")
        assert deleted.status_code == 409

    @pytest.mark.asyncio
    async def test_lookup_by_reference_and_verify(self, client: AsyncClient, test_employee):
        created = (await client.post(
            f"{PAYROLL}/salary-slips/generate",
            json={"employee_id": str(test_employee.id), "salary_period": "2026-01"},
        )).json()

        by_reference = await client.get(f"{PAYROLL}/salary-slips/by-reference/{created['slip_reference']}")
        assert by_reference.status_code == 200
        assert by_reference.json()["id"] == created["id"]

        verify = await client.get(f"{PAYROLL}/salary-slips/{created['id']}/verify")
        assert verify.status_code == 200
        assert verify.json()["reconciles"] is True

    @pytest.mark.asyncio
    async def test_missing_slip_returns_404(self, client: AsyncClient):
        response = await client.get(f"{PAYROLL}/salary-slips/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SLIP_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_bulk_generate_list_and_summary(self, client: AsyncClient, employee_factory):
        for number in range(3):
            await employee_factory(f"EMP-30{number}", Decimal("25000.00"))

        response = await client.post(
            f"{PAYROLL}/salary-slips/bulk-generate",
            json={"salary_period": "2026-02"},
        )
        assert response.status_code == 200
        report = response.json()
        assert report["generated_count"] == 3
        assert report["errors"] == []

        listing = await client.get(
            f"{PAYROLL}/salary-slips",
            params={"salary_period": "2026-02", "status": "generated", "per_page": 2},
        )
        assert listing.status_code == 200
        data = listing.json()
        assert data["total"] == 3
        assert len(data["items"]) == 2
        assert data["pages"] == 2

        summary = await client.get(f"{PAYROLL}/salary-slips/summary", params={"salary_period": "2026-02"})
        assert summary.status_code == 200
        assert summary.json()["total_employees"] == 3
        assert Decimal(summary.json()["total_net_payable"]) == Decimal("75000.00")

    @pytest.mark.asyncio
    async def test_bulk_generate_rejects_empty_subset(self, client: AsyncClient):
        response = await client.post(
            f"{PAYROLL}/salary-slips/bulk-generate",
            json={"salary_period": "2026-02", "employee_ids": []},
        )

        assert response.status_code == 422


class TestComponentAPI:
    """Pay component maintenance endpoints."""

    @pytest.mark.asyncio
    async def test_incentive_needs_a_window(self, client: AsyncClient, test_employee):
        response = await client.post(
            f"{PAYROLL}/components",
            json={
                "employee_id": str(test_employee.id),
                "kind": "incentive",
                "label": "Quarterly target",
                "calculation_type": "percentage",
                "amount": "5",
            },
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_percentage_over_100_is_rejected(self, client: AsyncClient, test_employee):
        response = await client.post(
            f"{PAYROLL}/components",
            json={
                "employee_id": str(test_employee.id),
                "kind": "benefit",
                "label": "Too generous",
                "calculation_type": "percentage",
                "amount": "150",
            },
        )

        assert response.status_code == 422


class TestAdvanceAPI:
    """Salary advance endpoints."""

    @pytest.mark.asyncio
    async def test_paid_slip_posts_installment(self, client: AsyncClient, test_employee):
        created = await client.post(
            f"{PAYROLL}/advances",
            json={
                "employee_id": str(test_employee.id),
                "principal_amount": "9000.00",
                "monthly_deduction": "3000.00",
                "issue_date": "2025-12-15",
                "start_deduction_date": "2026-01-01",
            },
        )
        assert created.status_code == 201
        advance = created.json()
        assert advance["expected_completion_date"] == "2026-04-01"

        slip = (await client.post(
            f"{PAYROLL}/salary-slips/generate",
            json={"employee_id": str(test_employee.id), "salary_period": "2026-01"},
        )).json()
        assert Decimal(slip["total_deductions"]) == Decimal("3000.00")

        await client.post(f"{PAYROLL}/salary-slips/{slip['id']}/mark-paid")

        refreshed = await client.get(f"{PAYROLL}/advances/{advance['id']}")
        assert Decimal(refreshed.json()["remaining_balance"]) == Decimal("6000.00")

        ledger = await client.get(f"{PAYROLL}/advances/{advance['id']}/deductions")
        assert ledger.status_code == 200
        rows = ledger.json()
        assert len(rows) == 1
        assert rows[0]["salary_slip_id"] == slip["id"]
        assert Decimal(rows[0]["amount"]) == Decimal("3000.00")


class TestTaxAPI:
    """Tax configuration, audit and preview endpoints."""

    @pytest.mark.asyncio
    async def test_audit_reports_gap(self, client: AsyncClient, test_slabs):
        response = await client.post(
            f"{TAX}/slabs",
            json={
                "title": "Band D",
                "income_from": "600000.00",
                "income_to": "900000.00",
                "fixed_amount": "45000.00",
                "percentage": "20.00",
            },
        )
        assert response.status_code == 201

        audit = await client.get(f"{TAX}/slabs/audit")

        assert audit.status_code == 200
        data = audit.json()
        assert data["active_slab_count"] == 3
        assert data["is_contiguous"] is False
        assert len(data["gaps"]) == 1
        assert Decimal(data["gaps"][0]["from"]) == Decimal("500000.00")
        assert Decimal(data["gaps"][0]["to"]) == Decimal("600000.00")

    @pytest.mark.asyncio
    async def test_contiguous_slabs(self, client: AsyncClient, test_slabs):
        audit = await client.get(f"{TAX}/slabs/audit")

        data = audit.json()
        assert data["is_contiguous"] is True
        assert data["gaps"] == []
        assert data["overlaps"] == []

    @pytest.mark.asyncio
    async def test_calculate_preview(self, client: AsyncClient, test_slabs):
        response = await client.post(f"{TAX}/calculate", json={"gross_earnings": "200000.00"})

        assert response.status_code == 200
        data = response.json()
        assert data["taxable"] is True
        assert data["configuration_gap"] is False
        assert Decimal(data["tax_amount"]) == Decimal("15000.00")
        assert data["breakdown"]["slab_title"] == "Band B"

    @pytest.mark.asyncio
    async def test_calculate_below_minimum(self, client: AsyncClient, test_slabs, test_minimum_limit):
        response = await client.post(f"{TAX}/calculate", json={"gross_earnings": "50000.00"})

        data = response.json()
        assert data["taxable"] is False
        assert Decimal(data["tax_amount"]) == Decimal("0")
        assert data["breakdown"] is None
