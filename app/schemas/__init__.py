"""
HRMS Payroll - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.payroll import (
    # Pay components
    PayComponentCreate,
    PayComponentUpdate,
    PayComponentResponse,
    # Overtime
    OvertimeCreate,
    OvertimeResponse,
    # Salary advances
    SalaryAdvanceCreate,
    SalaryAdvanceUpdate,
    SalaryAdvanceResponse,
    AdvanceDeductionResponse,
    # Salary slips
    SalarySlipGenerateRequest,
    BulkGenerateRequest,
    BulkGenerateResponse,
    MarkPaidRequest,
    BulkPayRequest,
    BulkPayResponse,
    SalarySlipResponse,
    SalarySlipSummary,
    SalarySlipListResponse,
    SlipVerificationResponse,
    PeriodSummaryResponse,
    MessageResponse,
)
from app.schemas.tax import (
    TaxSlabCreate,
    TaxSlabUpdate,
    TaxSlabResponse,
    TaxExemptionCreate,
    TaxExemptionUpdate,
    TaxExemptionResponse,
    MinimumTaxLimitCreate,
    MinimumTaxLimitUpdate,
    MinimumTaxLimitResponse,
    SlabAuditResponse,
    TaxCalculationRequest,
    TaxCalculationResponse,
)
