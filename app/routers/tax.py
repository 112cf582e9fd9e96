"""
HRMS Payroll - Tax Router

API endpoints for tax configuration (slabs, exemptions, minimum limits),
the slab coverage audit and tax previews.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.models.tax import MinimumTaxLimit, TaxExemption, TaxSlab
from app.services.calculation_policy import round_currency
from app.services.tax_config_service import TaxConfigService
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


router = APIRouter()


# ===========================================
# TAX SLABS
# ===========================================

@router.post(
    "/slabs",
    response_model=TaxSlabResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create tax slab",
)
async def create_slab(
    data: TaxSlabCreate,
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.create_record(TaxSlab, data.model_dump())


@router.get(
    "/slabs",
    response_model=List[TaxSlabResponse],
    summary="List tax slabs",
)
async def list_slabs(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.list_records(TaxSlab, active_only=active_only)


@router.get(
    "/slabs/audit",
    response_model=SlabAuditResponse,
    summary="Audit slab coverage",
    description="Report gaps and overlaps in the active slab table. "
                "Income that falls in a gap is taxed at zero.",
)
async def audit_slabs(
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.audit_slabs()


@router.get("/slabs/{slab_id}", response_model=TaxSlabResponse, summary="Get tax slab")
async def get_slab(
    slab_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.get_record(TaxSlab, slab_id)


@router.patch("/slabs/{slab_id}", response_model=TaxSlabResponse, summary="Update tax slab")
async def update_slab(
    data: TaxSlabUpdate,
    slab_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.update_record(TaxSlab, slab_id, data.model_dump(exclude_unset=True))


@router.delete("/slabs/{slab_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete tax slab")
async def delete_slab(
    slab_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    await service.delete_record(TaxSlab, slab_id)


# ===========================================
# TAX EXEMPTIONS
# ===========================================

@router.post(
    "/exemptions",
    response_model=TaxExemptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create tax exemption",
)
async def create_exemption(
    data: TaxExemptionCreate,
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.create_record(TaxExemption, data.model_dump())


@router.get("/exemptions", response_model=List[TaxExemptionResponse], summary="List tax exemptions")
async def list_exemptions(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.list_records(TaxExemption, active_only=active_only)


@router.get("/exemptions/{exemption_id}", response_model=TaxExemptionResponse, summary="Get tax exemption")
async def get_exemption(
    exemption_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.get_record(TaxExemption, exemption_id)


@router.patch("/exemptions/{exemption_id}", response_model=TaxExemptionResponse, summary="Update tax exemption")
async def update_exemption(
    data: TaxExemptionUpdate,
    exemption_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.update_record(TaxExemption, exemption_id, data.model_dump(exclude_unset=True))


@router.delete("/exemptions/{exemption_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete tax exemption")
async def delete_exemption(
    exemption_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    await service.delete_record(TaxExemption, exemption_id)


# ===========================================
# MINIMUM TAX LIMITS
# ===========================================

@router.post(
    "/minimum-limits",
    response_model=MinimumTaxLimitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create minimum tax limit",
    description="Only the most recently created active limit is applied.",
)
async def create_minimum_limit(
    data: MinimumTaxLimitCreate,
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.create_record(MinimumTaxLimit, data.model_dump())


@router.get("/minimum-limits", response_model=List[MinimumTaxLimitResponse], summary="List minimum tax limits")
async def list_minimum_limits(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.list_records(MinimumTaxLimit, active_only=active_only)


@router.get("/minimum-limits/{limit_id}", response_model=MinimumTaxLimitResponse, summary="Get minimum tax limit")
async def get_minimum_limit(
    limit_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.get_record(MinimumTaxLimit, limit_id)


@router.patch("/minimum-limits/{limit_id}", response_model=MinimumTaxLimitResponse, summary="Update minimum tax limit")
async def update_minimum_limit(
    data: MinimumTaxLimitUpdate,
    limit_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    return await service.update_record(MinimumTaxLimit, limit_id, data.model_dump(exclude_unset=True))


@router.delete("/minimum-limits/{limit_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete minimum tax limit")
async def delete_minimum_limit(
    limit_id: UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    await service.delete_record(MinimumTaxLimit, limit_id)


# ===========================================
# TAX PREVIEW
# ===========================================

@router.post(
    "/calculate",
    response_model=TaxCalculationResponse,
    summary="Preview tax",
    description="Compute the tax owed on a gross amount under the current configuration. Nothing is stored.",
)
async def calculate_tax(
    data: TaxCalculationRequest,
    db: AsyncSession = Depends(get_async_session),
):
    service = TaxConfigService(db)
    result = await service.calculate(data.gross_earnings)
    return {
        "gross_earnings": round_currency(data.gross_earnings),
        "tax_amount": round_currency(result.tax_amount),
        "taxable": result.breakdown is not None,
        "configuration_gap": result.configuration_gap,
        "breakdown": result.breakdown,
    }
