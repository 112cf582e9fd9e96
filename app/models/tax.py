"""
HRMS Payroll - Tax Models

Progressive income tax configuration:
- Tax slabs (income band -> fixed amount + percentage of the excess)
- Tax exemptions (amounts subtracted from gross before slab lookup)
- Minimum tax limit (gross at or below the threshold pays no tax)
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Numeric, String, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, AuditMixin


class TaxSlab(BaseModel, AuditMixin):
    """
    Income band of the progressive tax table.

    tax = fixed_amount + (taxable_income - income_from) * percentage / 100
    """

    __tablename__ = "tax_slabs"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    income_from: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    income_to: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    fixed_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    percentage: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint('income_to >= income_from', name='slab_range_ordered'),
    )

    def __repr__(self) -> str:
        return f"<TaxSlab(title={self.title}, from={self.income_from}, to={self.income_to})>"


class TaxExemption(BaseModel, AuditMixin):
    """Amount subtracted from gross earnings before the slab lookup."""

    __tablename__ = "tax_exemptions"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    exemption_amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class MinimumTaxLimit(BaseModel, AuditMixin):
    """
    Gross earnings at or below threshold_amount are not taxed.
    Only the most recently created active limit is consulted.
    """

    __tablename__ = "minimum_tax_limits"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    threshold_amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
