"""
HRMS Payroll - Employee Model

Minimal staff record consumed by the payroll engine. Employee records are
owned by the HR platform; payroll only reads them through
app.services.employee_directory.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Numeric, String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class EmploymentStatus(str, Enum):
    """Employment status."""
    ACTIVE = "active"
    ON_LEAVE = "on_leave"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"
    RESIGNED = "resigned"


class Employee(BaseModel):
    """Staff member with the base salary payroll is computed from."""

    __tablename__ = "employees"

    staff_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Internal staff number",
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    base_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
        comment="Monthly basic salary",
    )

    employment_status: Mapped[EmploymentStatus] = mapped_column(
        SQLEnum(EmploymentStatus, native_enum=False, length=20),
        default=EmploymentStatus.ACTIVE,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, staff_number={self.staff_number}, name={self.full_name})>"
