"""
HRMS Payroll - Tax Schemas

Pydantic schemas for tax configuration and tax previews.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


# ===========================================
# TAX SLAB SCHEMAS
# ===========================================

class TaxSlabBase(BaseModel):
    """Base tax slab schema."""
    title: str = Field(..., min_length=1, max_length=255)
    income_from: Decimal = Field(..., ge=0)
    income_to: Decimal = Field(..., ge=0)
    fixed_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    percentage: Decimal = Field(default=Decimal("0.00"), ge=0, le=100)
    is_active: bool = True


class TaxSlabCreate(TaxSlabBase):
    """Create tax slab request."""

    @model_validator(mode='after')
    def validate_range(self):
        if self.income_to < self.income_from:
            raise ValueError("income_to must not be below income_from")
        return self


class TaxSlabUpdate(BaseModel):
    """Update tax slab request."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    income_from: Optional[Decimal] = Field(None, ge=0)
    income_to: Optional[Decimal] = Field(None, ge=0)
    fixed_amount: Optional[Decimal] = Field(None, ge=0)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class TaxSlabResponse(TaxSlabBase):
    """Tax slab response."""
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# EXEMPTION SCHEMAS
# ===========================================

class TaxExemptionBase(BaseModel):
    """Base tax exemption schema."""
    title: str = Field(..., min_length=1, max_length=255)
    exemption_amount: Decimal = Field(..., ge=0)
    is_active: bool = True
    notes: Optional[str] = None


class TaxExemptionCreate(TaxExemptionBase):
    pass


class TaxExemptionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    exemption_amount: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class TaxExemptionResponse(TaxExemptionBase):
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# MINIMUM TAX LIMIT SCHEMAS
# ===========================================

class MinimumTaxLimitBase(BaseModel):
    """Base minimum tax limit schema."""
    title: str = Field(..., min_length=1, max_length=255)
    threshold_amount: Decimal = Field(..., ge=0)
    is_active: bool = True
    notes: Optional[str] = None


class MinimumTaxLimitCreate(MinimumTaxLimitBase):
    pass


class MinimumTaxLimitUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    threshold_amount: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class MinimumTaxLimitResponse(MinimumTaxLimitBase):
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# AUDIT & PREVIEW
# ===========================================

class SlabGap(BaseModel):
    to: Decimal
    after_slab_id: UUID
    before_slab_id: UUID
    from_: Decimal = Field(..., alias="from")

    class Config:
        populate_by_name = True


class SlabOverlap(BaseModel):
    to: Decimal
    slab_ids: List[UUID]
    from_: Decimal = Field(..., alias="from")

    class Config:
        populate_by_name = True


class SlabAuditResponse(BaseModel):
    """Coverage report of the active slab table."""
    active_slab_count: int
    lowest_income_from: Optional[Decimal] = None
    highest_income_to: Optional[Decimal] = None
    starts_at_zero: bool
    gaps: List[SlabGap]
    overlaps: List[SlabOverlap]
    is_contiguous: bool


class TaxCalculationRequest(BaseModel):
    """Tax preview request."""
    gross_earnings: Decimal = Field(..., ge=0)


class TaxCalculationResponse(BaseModel):
    """Tax preview result."""
    gross_earnings: Decimal
    tax_amount: Decimal
    taxable: bool
    configuration_gap: bool
    breakdown: Optional[Dict[str, Any]] = None
