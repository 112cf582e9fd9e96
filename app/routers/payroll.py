"""
HRMS Payroll - Payroll Router

API endpoints for salary slips, pay components, overtime and salary
advances.
"""

import uuid
from typing import Optional, List

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.models.payroll import AdvanceStatus, ComponentKind, SlipStatus
from app.services.advance_ledger import AdvanceLedger
from app.services.compensation_service import CompensationService
from app.services.payroll_runner import PayrollRunner
from app.services.salary_slip_service import SalarySlipService
from app.schemas.payroll import (
    # Salary slip schemas
    SalarySlipGenerateRequest,
    SalarySlipResponse,
    SalarySlipSummary,
    SalarySlipListResponse,
    SlipVerificationResponse,
    PeriodSummaryResponse,
    BulkGenerateRequest,
    BulkGenerateResponse,
    MarkPaidRequest,
    BulkPayRequest,
    BulkPayResponse,
    # Component schemas
    PayComponentCreate,
    PayComponentUpdate,
    PayComponentResponse,
    OvertimeCreate,
    OvertimeResponse,
    # Advance schemas
    SalaryAdvanceCreate,
    SalaryAdvanceUpdate,
    SalaryAdvanceResponse,
    AdvanceDeductionResponse,
    SALARY_PERIOD_PATTERN,
)


router = APIRouter()


# ===========================================
# SALARY SLIP ENDPOINTS
# ===========================================

@router.post(
    "/salary-slips/generate",
    response_model=SalarySlipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a salary slip",
    description="Generate the salary slip of one employee for a YYYY-MM period. "
                "Fails with 422 if the period already has a slip.",
    tags=["Salary Slips"],
)
async def generate_salary_slip(
    data: SalarySlipGenerateRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Generate a salary slip."""
    service = SalarySlipService(db)
    return await service.generate(
        employee_id=data.employee_id,
        salary_period=data.salary_period,
        notes=data.notes,
    )


@router.post(
    "/salary-slips/bulk-generate",
    response_model=BulkGenerateResponse,
    summary="Bulk generate salary slips",
    description="Generate slips for every active employee, or the given subset. "
                "Existing slips are skipped and failures are reported per employee.",
    tags=["Salary Slips"],
)
async def bulk_generate_salary_slips(
    data: BulkGenerateRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Bulk generate salary slips."""
    runner = PayrollRunner(db)
    report = await runner.bulk_generate(data.salary_period, data.employee_ids)
    return report.to_dict()


@router.post(
    "/salary-slips/bulk-pay",
    response_model=BulkPayResponse,
    summary="Bulk mark salary slips as paid",
    tags=["Salary Slips"],
)
async def bulk_pay_salary_slips(
    data: BulkPayRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Mark several slips paid; each one posts its advance installments."""
    service = SalarySlipService(db)
    return await service.bulk_mark_paid(
        data.slip_ids,
        payment_method=data.payment_method,
        payment_reference=data.payment_reference,
    )


@router.get(
    "/salary-slips",
    response_model=SalarySlipListResponse,
    summary="List salary slips",
    tags=["Salary Slips"],
)
async def list_salary_slips(
    employee_id: Optional[uuid.UUID] = Query(None, description="Employee filter"),
    salary_period: Optional[str] = Query(None, pattern=SALARY_PERIOD_PATTERN, description="YYYY-MM"),
    slip_status: Optional[SlipStatus] = Query(None, alias="status", description="Slip status filter"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
):
    """List salary slips with pagination and filters."""
    service = SalarySlipService(db)
    slips, total = await service.list_slips(
        employee_id=employee_id,
        salary_period=salary_period,
        status=slip_status,
        page=page,
        per_page=per_page,
    )

    return {
        "items": [SalarySlipSummary.model_validate(slip) for slip in slips],
        "total": total,
        "page": page,
        "per_page": per_page,
        "pages": (total + per_page - 1) // per_page,
    }


@router.get(
    "/salary-slips/summary",
    response_model=PeriodSummaryResponse,
    summary="Payroll summary for a period",
    tags=["Salary Slips"],
)
async def get_period_summary(
    salary_period: str = Query(..., pattern=SALARY_PERIOD_PATTERN, description="YYYY-MM"),
    db: AsyncSession = Depends(get_async_session),
):
    """Counts and totals of the slips of a period."""
    service = SalarySlipService(db)
    return await service.get_period_summary(salary_period)


@router.get(
    "/salary-slips/by-reference/{slip_reference}",
    response_model=SalarySlipResponse,
    summary="Get salary slip by reference",
    tags=["Salary Slips"],
)
async def get_salary_slip_by_reference(
    slip_reference: str = Path(..., description="Slip reference, e.g. SLP-20260131-A3F9"),
    db: AsyncSession = Depends(get_async_session),
):
    service = SalarySlipService(db)
    return await service.get_slip_by_reference(slip_reference)


@router.get(
    "/salary-slips/{slip_id}",
    response_model=SalarySlipResponse,
    summary="Get salary slip",
    tags=["Salary Slips"],
)
async def get_salary_slip(
    slip_id: uuid.UUID = Path(..., description="Salary slip ID"),
    db: AsyncSession = Depends(get_async_session),
):
    """Get a salary slip with its full breakdown."""
    service = SalarySlipService(db)
    return await service.get_slip(slip_id)


@router.get(
    "/salary-slips/{slip_id}/verify",
    response_model=SlipVerificationResponse,
    summary="Verify salary slip totals",
    description="Recompute the totals from the stored breakdown and compare them with the stored totals.",
    tags=["Salary Slips"],
)
async def verify_salary_slip(
    slip_id: uuid.UUID = Path(..., description="Salary slip ID"),
    db: AsyncSession = Depends(get_async_session),
):
    service = SalarySlipService(db)
    return await service.verify_slip(slip_id)


@router.post(
    "/salary-slips/{slip_id}/mark-sent",
    response_model=SalarySlipResponse,
    summary="Mark salary slip as sent",
    tags=["Salary Slips"],
)
async def mark_salary_slip_sent(
    slip_id: uuid.UUID = Path(..., description="Salary slip ID"),
    db: AsyncSession = Depends(get_async_session),
):
    service = SalarySlipService(db)
    return await service.mark_sent(slip_id)


@router.post(
    "/salary-slips/{slip_id}/mark-paid",
    response_model=SalarySlipResponse,
    summary="Mark salary slip as paid",
    description="Record payment and post one installment for every advance on the slip.",
    tags=["Salary Slips"],
)
async def mark_salary_slip_paid(
    data: Optional[MarkPaidRequest] = None,
    slip_id: uuid.UUID = Path(..., description="Salary slip ID"),
    db: AsyncSession = Depends(get_async_session),
):
    """Mark a salary slip as paid."""
    data = data or MarkPaidRequest()
    service = SalarySlipService(db)
    return await service.mark_paid(
        slip_id,
        payment_method=data.payment_method,
        payment_reference=data.payment_reference,
        notes=data.notes,
    )


@router.delete(
    "/salary-slips/{slip_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete salary slip",
    description="Delete an unpaid salary slip. Paid slips cannot be deleted.",
    tags=["Salary Slips"],
)
async def delete_salary_slip(
    slip_id: uuid.UUID = Path(..., description="Salary slip ID"),
    db: AsyncSession = Depends(get_async_session),
):
    service = SalarySlipService(db)
    await service.delete_slip(slip_id)


@router.get(
    "/employees/{employee_id}/salary-history",
    response_model=List[SalarySlipSummary],
    summary="Employee salary history",
    tags=["Salary Slips"],
)
async def get_employee_salary_history(
    employee_id: uuid.UUID = Path(..., description="Employee ID"),
    limit: int = Query(12, ge=1, le=120),
    db: AsyncSession = Depends(get_async_session),
):
    """Most recent slips of an employee, newest period first."""
    service = SalarySlipService(db)
    return await service.employee_history(employee_id, limit=limit)


# ===========================================
# PAY COMPONENT ENDPOINTS
# ===========================================

@router.post(
    "/components",
    response_model=PayComponentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create pay component",
    description="Attach a benefit, incentive, bonus, employer contribution or recurring deduction to an employee.",
    tags=["Pay Components"],
)
async def create_component(
    data: PayComponentCreate,
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    return await service.create_component(data.model_dump())


@router.get(
    "/components",
    response_model=List[PayComponentResponse],
    summary="List pay components",
    tags=["Pay Components"],
)
async def list_components(
    employee_id: Optional[uuid.UUID] = Query(None),
    kind: Optional[ComponentKind] = Query(None),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    return await service.list_components(employee_id=employee_id, kind=kind, active_only=active_only)


@router.get(
    "/components/{component_id}",
    response_model=PayComponentResponse,
    summary="Get pay component",
    tags=["Pay Components"],
)
async def get_component(
    component_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    return await service.get_component(component_id)


@router.patch(
    "/components/{component_id}",
    response_model=PayComponentResponse,
    summary="Update pay component",
    description="Existing salary slips keep the values they were generated with.",
    tags=["Pay Components"],
)
async def update_component(
    data: PayComponentUpdate,
    component_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    return await service.update_component(component_id, data.model_dump(exclude_unset=True))


@router.delete(
    "/components/{component_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete pay component",
    tags=["Pay Components"],
)
async def delete_component(
    component_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    await service.delete_component(component_id)


# ===========================================
# OVERTIME ENDPOINTS
# ===========================================

@router.post(
    "/overtime",
    response_model=OvertimeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record overtime",
    tags=["Overtime"],
)
async def create_overtime(
    data: OvertimeCreate,
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    return await service.create_overtime(data.model_dump())


@router.get(
    "/overtime",
    response_model=List[OvertimeResponse],
    summary="List overtime records",
    tags=["Overtime"],
)
async def list_overtime(
    employee_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    return await service.list_overtime(employee_id=employee_id)


@router.delete(
    "/overtime/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete overtime record",
    tags=["Overtime"],
)
async def delete_overtime(
    record_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    service = CompensationService(db)
    await service.delete_overtime(record_id)


# ===========================================
# SALARY ADVANCE ENDPOINTS
# ===========================================

@router.post(
    "/advances",
    response_model=SalaryAdvanceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue salary advance",
    tags=["Salary Advances"],
)
async def create_advance(
    data: SalaryAdvanceCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """Issue a salary advance; installments are deducted from paid slips."""
    ledger = AdvanceLedger(db)
    return await ledger.create_advance(**data.model_dump())


@router.get(
    "/advances",
    response_model=List[SalaryAdvanceResponse],
    summary="List salary advances",
    tags=["Salary Advances"],
)
async def list_advances(
    employee_id: Optional[uuid.UUID] = Query(None),
    advance_status: Optional[AdvanceStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
):
    ledger = AdvanceLedger(db)
    return await ledger.list_advances(employee_id=employee_id, status=advance_status)


@router.get(
    "/advances/{advance_id}",
    response_model=SalaryAdvanceResponse,
    summary="Get salary advance",
    tags=["Salary Advances"],
)
async def get_advance(
    advance_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    ledger = AdvanceLedger(db)
    return await ledger.get_advance(advance_id)


@router.patch(
    "/advances/{advance_id}",
    response_model=SalaryAdvanceResponse,
    summary="Update salary advance",
    description="Changing the monthly deduction recomputes the expected completion date.",
    tags=["Salary Advances"],
)
async def update_advance(
    data: SalaryAdvanceUpdate,
    advance_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    ledger = AdvanceLedger(db)
    return await ledger.update_advance(advance_id, **data.model_dump(exclude_unset=True))


@router.post(
    "/advances/{advance_id}/cancel",
    response_model=SalaryAdvanceResponse,
    summary="Cancel salary advance",
    tags=["Salary Advances"],
)
async def cancel_advance(
    advance_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    ledger = AdvanceLedger(db)
    return await ledger.cancel_advance(advance_id)


@router.get(
    "/advances/{advance_id}/deductions",
    response_model=List[AdvanceDeductionResponse],
    summary="Installments posted against an advance",
    tags=["Salary Advances"],
)
async def list_advance_deductions(
    advance_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
):
    ledger = AdvanceLedger(db)
    return await ledger.list_deductions(advance_id)
