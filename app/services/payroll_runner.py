"""
HRMS Payroll - Bulk Payroll Runner

Generates slips for a whole population in one call. Every employee is an
independent transaction: a failure is recorded in the report and the run
moves on. Employees who already have a slip for the period are skipped,
so a run can be repeated safely after a crash.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.employee_directory import EmployeeDirectory
from app.services.salary_slip_service import SalarySlipService
from app.utils.error_handling import (
    AppException,
    DuplicateSlipException,
    EmployeeNotFoundException,
    validate_salary_period,
)


logger = logging.getLogger(__name__)


@dataclass
class BulkGenerationReport:
    """Outcome of a bulk generation run."""
    salary_period: str
    generated_count: int = 0
    skipped_count: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    generated_slip_ids: List[uuid.UUID] = field(default_factory=list)

    def record_error(self, employee_id: uuid.UUID, error: Exception) -> None:
        message = error.message if isinstance(error, AppException) else str(error)
        self.errors.append({"employee_id": str(employee_id), "error": message})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "salary_period": self.salary_period,
            "generated_count": self.generated_count,
            "skipped_count": self.skipped_count,
            "errors": self.errors,
            "generated_slip_ids": self.generated_slip_ids,
        }


class PayrollRunner:
    """Sequential bulk slip generation with per-employee failure isolation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.directory = EmployeeDirectory(db)
        self.slips = SalarySlipService(db)

    async def resolve_population(
        self,
        employee_ids: Optional[List[uuid.UUID]],
        report: BulkGenerationReport,
    ) -> List[uuid.UUID]:
        """
        All active employees, or the supplied subset in the given order.

        Unknown IDs in a supplied subset become error entries.
        """
        if employee_ids is None:
            return await self.directory.list_active_employees()

        known = set(await self.directory.existing_ids(employee_ids))
        population = []
        seen = set()
        for employee_id in employee_ids:
            if employee_id in seen:
                continue
            seen.add(employee_id)
            if employee_id in known:
                population.append(employee_id)
            else:
                report.record_error(employee_id, EmployeeNotFoundException(employee_id))
        return population

    async def bulk_generate(
        self,
        salary_period: str,
        employee_ids: Optional[List[uuid.UUID]] = None,
    ) -> BulkGenerationReport:
        """Generate slips for the period; never raises for a single employee's failure."""
        validate_salary_period(salary_period)
        report = BulkGenerationReport(salary_period=salary_period)

        population = await self.resolve_population(employee_ids, report)
        logger.info(f"Bulk payroll for {salary_period}: {len(population)} employee(s)")

        for employee_id in population:
            try:
                if await self.slips.find_slip(employee_id, salary_period) is not None:
                    report.skipped_count += 1
                    continue

                slip = await self.slips.generate(employee_id, salary_period)
                report.generated_slip_ids.append(slip.id)
                report.generated_count += 1
            except DuplicateSlipException:
                # Another worker committed this slip after the existence check
                if self.db.in_transaction():
                    await self.db.rollback()
                logger.info(f"Salary slip for employee {employee_id} ({salary_period}) created concurrently; skipped")
                report.skipped_count += 1
            except Exception as e:
                # generate() has already rolled back its own transaction
                if self.db.in_transaction():
                    await self.db.rollback()
                logger.error(f"Salary slip generation failed for employee {employee_id} ({salary_period}): {e}")
                report.record_error(employee_id, e)

        logger.info(
            f"Bulk payroll for {salary_period} finished: generated {report.generated_count}, "
            f"skipped {report.skipped_count}, errors {len(report.errors)}"
        )
        return report
