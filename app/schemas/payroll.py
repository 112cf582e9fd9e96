"""
HRMS Payroll - Payroll Schemas

Pydantic schemas for payroll requests and responses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.payroll import (
    AdvanceStatus, AdvanceType, CalculationType, ComponentKind, PaymentMethod, SlipStatus
)


SALARY_PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# ===========================================
# PAY COMPONENT SCHEMAS
# ===========================================

class PayComponentBase(BaseModel):
    """Base pay component schema."""
    kind: ComponentKind
    label: str = Field(..., min_length=1, max_length=255)
    calculation_type: CalculationType = CalculationType.FIXED
    amount: Decimal = Field(..., ge=0)
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    is_active: bool = True
    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_window(self):
        if self.effective_from and self.effective_until and self.effective_until < self.effective_from:
            raise ValueError("effective_until must not be before effective_from")
        if self.calculation_type == CalculationType.PERCENTAGE and self.amount > 100:
            raise ValueError("Percentage amount must be between 0 and 100")
        return self


class PayComponentCreate(PayComponentBase):
    """Create pay component request."""
    employee_id: UUID


class PayComponentUpdate(BaseModel):
    """Update pay component request."""
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    calculation_type: Optional[CalculationType] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class PayComponentResponse(PayComponentBase):
    """Pay component response."""
    id: UUID
    employee_id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ===========================================
# OVERTIME SCHEMAS
# ===========================================

class OvertimeBase(BaseModel):
    """Base overtime schema."""
    title: str = Field(..., min_length=1, max_length=255)
    days_count: Decimal = Field(..., ge=0)
    hours_per_day: Decimal = Field(..., ge=0, le=24)
    hourly_rate: Decimal = Field(..., ge=0)
    period_start: date
    period_end: date
    is_active: bool = True

    @model_validator(mode='after')
    def validate_dates(self):
        if self.period_end < self.period_start:
            raise ValueError("Period end must be on or after period start")
        return self


class OvertimeCreate(OvertimeBase):
    """Create overtime request."""
    employee_id: UUID


class OvertimeResponse(OvertimeBase):
    """Overtime response."""
    id: UUID
    employee_id: UUID
    amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# SALARY ADVANCE SCHEMAS
# ===========================================

class SalaryAdvanceBase(BaseModel):
    """Base salary advance schema."""
    advance_type: AdvanceType = AdvanceType.SALARY_ADVANCE
    description: Optional[str] = Field(None, max_length=500)
    principal_amount: Decimal = Field(..., gt=0)
    monthly_deduction: Decimal = Field(..., gt=0)
    issue_date: date
    start_deduction_date: date
    notes: Optional[str] = None


class SalaryAdvanceCreate(SalaryAdvanceBase):
    """Create salary advance request."""
    employee_id: UUID

    @model_validator(mode='after')
    def validate_dates(self):
        if self.start_deduction_date < self.issue_date:
            raise ValueError("Deductions cannot start before the issue date")
        return self


class SalaryAdvanceUpdate(BaseModel):
    """Update salary advance request."""
    description: Optional[str] = Field(None, max_length=500)
    monthly_deduction: Optional[Decimal] = Field(None, gt=0)
    notes: Optional[str] = None


class SalaryAdvanceResponse(SalaryAdvanceBase):
    """Salary advance response."""
    id: UUID
    employee_id: UUID
    remaining_balance: Decimal
    expected_completion_date: date
    status: AdvanceStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdvanceDeductionResponse(BaseModel):
    """Installment posted against an advance."""
    id: UUID
    advance_id: UUID
    salary_slip_id: UUID
    requested_amount: Decimal
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    posted_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# SALARY SLIP SCHEMAS
# ===========================================

class SalarySlipGenerateRequest(BaseModel):
    """Generate one salary slip."""
    employee_id: UUID
    salary_period: str = Field(..., pattern=SALARY_PERIOD_PATTERN, examples=["2026-01"])
    notes: Optional[str] = None


class BulkGenerateRequest(BaseModel):
    """Generate slips for all active employees or a subset."""
    salary_period: str = Field(..., pattern=SALARY_PERIOD_PATTERN, examples=["2026-01"])
    employee_ids: Optional[List[UUID]] = None

    @field_validator('employee_ids')
    @classmethod
    def validate_employee_ids(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError("employee_ids must not be empty when provided")
        return v


class BulkGenerateError(BaseModel):
    employee_id: str
    error: str


class BulkGenerateResponse(BaseModel):
    """Bulk generation report."""
    salary_period: str
    generated_count: int
    skipped_count: int
    errors: List[BulkGenerateError]
    generated_slip_ids: List[UUID]


class MarkPaidRequest(BaseModel):
    """Payment details recorded on a paid slip."""
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class BulkPayRequest(MarkPaidRequest):
    """Pay several slips with the same payment details."""
    slip_ids: List[UUID] = Field(..., min_length=1)


class BulkPayError(BaseModel):
    slip_id: str
    error: str


class BulkPayResponse(BaseModel):
    paid_count: int
    errors: List[BulkPayError]


class SalarySlipResponse(BaseModel):
    """Salary slip with its full breakdown."""
    id: UUID
    employee_id: UUID
    slip_reference: str
    salary_period: str
    basic_salary: Decimal

    benefits: List[Dict[str, Any]]
    incentives: List[Dict[str, Any]]
    bonus: List[Dict[str, Any]]
    overtime: List[Dict[str, Any]]
    contributions: List[Dict[str, Any]]
    deductions: List[Dict[str, Any]]
    advances: List[Dict[str, Any]]
    tax_breakdown: Optional[Dict[str, Any]] = None

    total_earnings: Decimal
    total_deductions: Decimal
    tax_amount: Decimal
    net_payable: Decimal

    status: SlipStatus
    generated_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SalarySlipSummary(BaseModel):
    """Salary slip list item."""
    id: UUID
    employee_id: UUID
    slip_reference: str
    salary_period: str
    total_earnings: Decimal
    total_deductions: Decimal
    net_payable: Decimal
    status: SlipStatus
    generated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SalarySlipListResponse(BaseModel):
    """Paginated salary slips."""
    items: List[SalarySlipSummary]
    total: int
    page: int
    per_page: int
    pages: int


class SlipVerificationResponse(BaseModel):
    """Result of re-computing a slip's totals from its breakdown."""
    slip_id: UUID
    slip_reference: str
    reconciles: bool
    mismatches: List[str]
    recomputed: Dict[str, Decimal]
    stored: Dict[str, Decimal]


class PeriodSummaryResponse(BaseModel):
    """Totals of one salary period."""
    salary_period: str
    currency: str
    total_employees: int
    total_basic_salary: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    total_tax: Decimal
    total_net_payable: Decimal
    paid_count: int
    pending_count: int
    status_counts: Dict[str, int]


# ===========================================
# COMMON RESPONSES
# ===========================================

class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
    success: bool = True
