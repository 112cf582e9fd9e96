"""
HRMS Payroll - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin, AuditMixin
from app.models.employee import Employee, EmploymentStatus
from app.models.payroll import (
    ComponentKind,
    CalculationType,
    AdvanceType,
    AdvanceStatus,
    SlipStatus,
    PaymentMethod,
    PayComponent,
    OvertimeRecord,
    SalaryAdvance,
    AdvanceDeduction,
    SalarySlip,
)
from app.models.tax import TaxSlab, TaxExemption, MinimumTaxLimit

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "AuditMixin",
    # Employees
    "Employee",
    "EmploymentStatus",
    # Payroll
    "ComponentKind",
    "CalculationType",
    "AdvanceType",
    "AdvanceStatus",
    "SlipStatus",
    "PaymentMethod",
    "PayComponent",
    "OvertimeRecord",
    "SalaryAdvance",
    "AdvanceDeduction",
    "SalarySlip",
    # Tax
    "TaxSlab",
    "TaxExemption",
    "MinimumTaxLimit",
]
