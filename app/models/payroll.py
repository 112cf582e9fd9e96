"""
HRMS Payroll - Payroll Models

Compensation sources, salary advances and salary slips:
- Pay components (benefits, incentives, bonuses, employer contributions,
  recurring deductions) in one tagged table
- Overtime records (days x hours x hourly rate)
- Salary advances amortized across pay runs, with a deduction ledger
- Salary slips with itemized JSON breakdowns per component family

All money columns are Numeric(15, 2). Breakdown amounts are stored as
decimal strings so a slip can be re-verified exactly.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid,
    Enum as SQLEnum, JSON, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, AuditMixin


# ===========================================
# ENUMS
# ===========================================

class ComponentKind(str, Enum):
    """Family a pay component belongs to."""
    BENEFIT = "benefit"
    INCENTIVE = "incentive"
    BONUS = "bonus"
    EMPLOYER_CONTRIBUTION = "employer_contribution"
    RECURRING_DEDUCTION = "recurring_deduction"


# Kinds whose effective window must be an explicit closed period
PERIOD_BOUND_KINDS = (ComponentKind.INCENTIVE, ComponentKind.BONUS)


class CalculationType(str, Enum):
    """How a component amount is interpreted."""
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class AdvanceType(str, Enum):
    """Type of salary advance."""
    SALARY_ADVANCE = "salary_advance"
    LOAN = "loan"
    EMERGENCY = "emergency"
    EQUIPMENT = "equipment"
    OTHER = "other"


class AdvanceStatus(str, Enum):
    """Salary advance status."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SlipStatus(str, Enum):
    """Salary slip lifecycle status."""
    DRAFT = "draft"
    GENERATED = "generated"
    SENT = "sent"
    PAID = "paid"


class PaymentMethod(str, Enum):
    """How a salary slip was paid."""
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CHEQUE = "cheque"
    MOBILE_MONEY = "mobile_money"
    OTHER = "other"


# ===========================================
# PAY COMPONENTS
# ===========================================

class PayComponent(BaseModel, AuditMixin):
    """
    One compensation or deduction source attached to an employee.

    A component contributes to a slip only while active and when its
    effective window overlaps the salary period. A null bound is open on
    that side; incentives and bonuses always carry both bounds.
    """

    __tablename__ = "pay_components"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    kind: Mapped[ComponentKind] = mapped_column(
        SQLEnum(ComponentKind, native_enum=False, length=30),
        nullable=False,
        index=True,
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)

    calculation_type: Mapped[CalculationType] = mapped_column(
        SQLEnum(CalculationType, native_enum=False, length=20),
        default=CalculationType.FIXED,
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        comment="Fixed amount, or percentage of base salary",
    )

    effective_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    effective_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint('amount >= 0', name='component_amount_non_negative'),
    )

    def __repr__(self) -> str:
        return f"<PayComponent(kind={self.kind}, label={self.label}, amount={self.amount})>"


class OvertimeRecord(BaseModel, AuditMixin):
    """Extra hours worked inside a date window."""

    __tablename__ = "overtime_records"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    days_count: Mapped[Decimal] = mapped_column(Numeric(precision=7, scale=2), nullable=False)
    hours_per_day: Mapped[Decimal] = mapped_column(Numeric(precision=7, scale=2), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def amount(self) -> Decimal:
        return self.days_count * self.hours_per_day * self.hourly_rate

    def __repr__(self) -> str:
        return f"<OvertimeRecord(title={self.title}, amount={self.amount})>"


# ===========================================
# SALARY ADVANCES
# ===========================================

class SalaryAdvance(BaseModel, AuditMixin):
    """
    Salary advance repaid in monthly installments through paid slips.

    remaining_balance never increases and never drops below zero. The
    advance completes exactly when the balance reaches zero.
    """

    __tablename__ = "salary_advances"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    advance_type: Mapped[AdvanceType] = mapped_column(
        SQLEnum(AdvanceType, native_enum=False, length=30),
        default=AdvanceType.SALARY_ADVANCE,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    principal_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
    )
    monthly_deduction: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
    )
    remaining_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_deduction_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_completion_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[AdvanceStatus] = mapped_column(
        SQLEnum(AdvanceStatus, native_enum=False, length=20),
        default=AdvanceStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint('remaining_balance >= 0', name='advance_balance_non_negative'),
        CheckConstraint('monthly_deduction > 0', name='advance_deduction_positive'),
    )

    def __repr__(self) -> str:
        return f"<SalaryAdvance(id={self.id}, principal={self.principal_amount}, remaining={self.remaining_balance})>"


class AdvanceDeduction(BaseModel):
    """
    Ledger row for one installment posted against an advance by a paid slip.
    """

    __tablename__ = "advance_deductions"

    advance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("salary_advances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    salary_slip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("salary_slips.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    requested_amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        comment="Amount actually applied to the balance",
    )
    balance_before: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint('advance_id', 'salary_slip_id', name='uq_advance_deduction_slip'),
    )

    def __repr__(self) -> str:
        return f"<AdvanceDeduction(advance_id={self.advance_id}, amount={self.amount})>"


# ===========================================
# SALARY SLIPS
# ===========================================

class SalarySlip(BaseModel):
    """
    Itemized payroll result for one employee and one salary period.

    Breakdown columns hold lists of
    {component_id, label, calculation_type, rate, computed_amount}; overtime
    and advance lines carry extra keys. Slips are never edited after
    generation apart from the sent/paid transitions.
    """

    __tablename__ = "salary_slips"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slip_reference: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        comment="e.g. SLP-20260131-A3F9",
    )
    salary_period: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        index=True,
        comment="YYYY-MM",
    )

    basic_salary: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        comment="Base salary snapshot at generation",
    )

    # Breakdowns
    benefits: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    incentives: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    bonus: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    overtime: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    contributions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    deductions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    advances: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    tax_breakdown: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Totals
    total_earnings: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    net_payable: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    status: Mapped[SlipStatus] = mapped_column(
        SQLEnum(SlipStatus, native_enum=False, length=20),
        default=SlipStatus.DRAFT,
        nullable=False,
        index=True,
    )
    generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Payment
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        SQLEnum(PaymentMethod, native_enum=False, length=20),
        nullable=True,
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('employee_id', 'salary_period', name='uq_salary_slip_employee_period'),
    )

    @property
    def is_paid(self) -> bool:
        return self.status == SlipStatus.PAID

    def __repr__(self) -> str:
        return f"<SalarySlip(ref={self.slip_reference}, period={self.salary_period}, net={self.net_payable})>"
