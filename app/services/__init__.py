"""
HRMS Payroll - Services Package

Business logic services.
"""

from app.services.employee_directory import EmployeeDirectory, EmployeeRecord
from app.services.component_store import ComponentStore, ComponentLines
from app.services.advance_ledger import AdvanceLedger
from app.services.salary_slip_service import SalarySlipService
from app.services.payroll_runner import PayrollRunner, BulkGenerationReport
from app.services.compensation_service import CompensationService
from app.services.tax_config_service import TaxConfigService
from app.services.tax_calculators import SlabTaxService, SlabTaxCalculator, TaxResult

__all__ = [
    "EmployeeDirectory",
    "EmployeeRecord",
    "ComponentStore",
    "ComponentLines",
    "AdvanceLedger",
    "SalarySlipService",
    "PayrollRunner",
    "BulkGenerationReport",
    "CompensationService",
    "TaxConfigService",
    "SlabTaxService",
    "SlabTaxCalculator",
    "TaxResult",
]
