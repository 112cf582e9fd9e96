"""
HRMS Payroll - Bulk Payroll Runner Tests

Per-employee failure isolation and re-runnable bulk generation.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.models.payroll import SalarySlip
from app.services.component_store import ComponentStore
from app.services.payroll_runner import PayrollRunner
from app.services.salary_slip_service import SalarySlipService


async def slip_employee_ids(db_session, salary_period):
    result = await db_session.execute(
        select(SalarySlip.employee_id).where(SalarySlip.salary_period == salary_period)
    )
    return set(result.scalars().all())


class TestBulkGenerate:
    """Bulk generation over the active population."""

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_run(self, db_session, employee_factory, monkeypatch):
        ids = []
        for staff_number in ["E1", "E2", "E3"]:
            employee = await employee_factory(staff_number, Decimal("40000.00"))
            ids.append(employee.id)
        e1, e2, e3 = ids

        original = ComponentStore.components_for

        async def flaky_components_for(self, employee_id, *args, **kwargs):
            if employee_id == e2:
                raise SQLAlchemyError("storage unavailable")
            return await original(self, employee_id, *args, **kwargs)

        monkeypatch.setattr(ComponentStore, "components_for", flaky_components_for)

        runner = PayrollRunner(db_session)
        report = await runner.bulk_generate("2026-01")

        assert report.generated_count == 2
        assert report.skipped_count == 0
        assert len(report.errors) == 1
        assert report.errors[0]["employee_id"] == str(e2)
        assert "storage unavailable" in report.errors[0]["error"]
        assert await slip_employee_ids(db_session, "2026-01") == {e1, e3}

    @pytest.mark.asyncio
    async def test_rerun_skips_existing_slips(self, db_session, employee_factory):
        for staff_number in ["E1", "E2"]:
            await employee_factory(staff_number, Decimal("40000.00"))
        runner = PayrollRunner(db_session)

        first = await runner.bulk_generate("2026-01")
        second = await runner.bulk_generate("2026-01")

        assert first.generated_count == 2
        assert second.generated_count == 0
        assert second.skipped_count == 2
        assert second.errors == []

    @pytest.mark.asyncio
    async def test_slip_created_concurrently_counts_as_skipped(self, db_session, employee_factory, monkeypatch):
        employee = await employee_factory("E1", Decimal("40000.00"))
        employee_id = employee.id
        existing = await SalarySlipService(db_session).generate(employee_id, "2026-01")
        existing_id = existing.id

        # The other worker commits between this run's existence check and its insert
        original_find_slip = SalarySlipService.find_slip
        calls = []

        async def late_find_slip(self, employee_id, salary_period):
            calls.append(employee_id)
            if len(calls) == 1:
                return None
            return await original_find_slip(self, employee_id, salary_period)

        async def no_precheck(self, employee_id, salary_period):
            return None

        monkeypatch.setattr(SalarySlipService, "find_slip", late_find_slip)
        monkeypatch.setattr(SalarySlipService, "_fast_path_duplicate_check", no_precheck)

        report = await PayrollRunner(db_session).bulk_generate("2026-01")

        assert report.generated_count == 0
        assert report.skipped_count == 1
        assert report.errors == []
        result = await db_session.execute(
            select(SalarySlip.id).where(SalarySlip.employee_id == employee_id)
        )
        assert result.scalars().all() == [existing_id]

    @pytest.mark.asyncio
    async def test_inactive_employees_are_not_in_the_default_population(self, db_session, employee_factory):
        active = await employee_factory("E1", Decimal("40000.00"))
        active_id = active.id
        await employee_factory("E2", Decimal("40000.00"), is_active=False)
        runner = PayrollRunner(db_session)

        report = await runner.bulk_generate("2026-01")

        assert report.generated_count == 1
        assert await slip_employee_ids(db_session, "2026-01") == {active_id}

    @pytest.mark.asyncio
    async def test_subset_reports_unknown_employees(self, db_session, employee_factory):
        employee = await employee_factory("E1", Decimal("40000.00"))
        employee_id = employee.id
        await employee_factory("E2", Decimal("40000.00"))
        missing = uuid4()
        runner = PayrollRunner(db_session)

        report = await runner.bulk_generate("2026-01", [employee_id, missing, employee_id])

        assert report.generated_count == 1
        assert report.errors == [{"employee_id": str(missing), "error": f"Employee with ID '{missing}' not found"}]
        assert await slip_employee_ids(db_session, "2026-01") == {employee_id}

    @pytest.mark.asyncio
    async def test_report_serializes(self, db_session, employee_factory):
        await employee_factory("E1", Decimal("40000.00"))
        runner = PayrollRunner(db_session)

        report = (await runner.bulk_generate("2026-01")).to_dict()

        assert report["salary_period"] == "2026-01"
        assert report["generated_count"] == 1
        assert len(report["generated_slip_ids"]) == 1
