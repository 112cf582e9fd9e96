"""
HRMS Payroll - Employee Directory

Read-only adapter over staff records owned by the HR platform. Payroll
depends on this contract, not on the employee table layout.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.employee import Employee


@dataclass(frozen=True)
class EmployeeRecord:
    """What payroll needs to know about a staff member."""
    id: uuid.UUID
    staff_number: str
    full_name: str
    base_salary: Decimal
    is_active: bool


class EmployeeDirectory:
    """Employee lookups used by slip generation and bulk runs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_employee(self, employee_id: uuid.UUID) -> Optional[EmployeeRecord]:
        """Get an employee by ID, or None if unknown."""
        result = await self.db.execute(
            select(Employee).where(Employee.id == employee_id)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            return None
        return EmployeeRecord(
            id=employee.id,
            staff_number=employee.staff_number,
            full_name=employee.full_name,
            base_salary=employee.base_salary,
            is_active=employee.is_active,
        )

    async def list_active_employees(self) -> List[uuid.UUID]:
        """IDs of all active employees, in staff number order."""
        result = await self.db.execute(
            select(Employee.id)
            .where(Employee.is_active == True)
            .order_by(Employee.staff_number)
        )
        return list(result.scalars().all())

    async def existing_ids(self, employee_ids: List[uuid.UUID]) -> List[uuid.UUID]:
        """Subset of employee_ids that exist, active or not."""
        if not employee_ids:
            return []
        result = await self.db.execute(
            select(Employee.id).where(Employee.id.in_(employee_ids))
        )
        return list(result.scalars().all())
