"""
HRMS Payroll - Salary Slip Service

Generates salary slips and moves them through their lifecycle.

Generation (one employee, one YYYY-MM period):
1. Benefits, incentives, bonuses, employer contributions and overtime are
   resolved from the component store
2. gross = basic + benefits + incentives + bonus + overtime + contributions
3. Tax is resolved on gross from the slab configuration
4. Due advance installments are previewed (posted only when paid)
5. total_deductions = recurring deductions + advance installments + tax
6. net_payable = total_earnings - total_deductions

Each line is rounded once (2 places, ROUND_HALF_UP) and the totals are
sums of the rounded lines, so a stored slip always reconciles.

A slip is unique per (employee, period). The database constraint is the
authority; the pre-check only avoids needless work.
"""

import calendar
import logging
import secrets
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.payroll import PaymentMethod, SalarySlip, SlipStatus
from app.services.advance_ledger import AdvanceLedger
from app.services.calculation_policy import ZERO, round_currency, sum_rounded, to_decimal
from app.services.component_store import ComponentStore
from app.services.employee_directory import EmployeeDirectory, EmployeeRecord
from app.services.tax_calculators.slab_tax_service import SlabTaxService
from app.utils.error_handling import (
    BusinessRuleException,
    ConflictException,
    DuplicateSlipException,
    EmployeeNotFoundException,
    ErrorCode,
    PaidSlipImmutableException,
    SlipNotFoundException,
    validate_salary_period,
)


logger = logging.getLogger(__name__)


EARNING_FAMILIES = ("benefits", "incentives", "bonus", "overtime", "contributions")
DEDUCTION_FAMILIES = ("deductions", "advances")


def period_bounds(salary_period: str) -> Tuple[date, date]:
    """First and last calendar day of a YYYY-MM period."""
    validate_salary_period(salary_period)
    year, month = int(salary_period[:4]), int(salary_period[5:])
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def new_slip_reference(on: Optional[date] = None) -> str:
    """SLP-YYYYMMDD-XXXX with four random uppercase hex characters."""
    on = on or date.today()
    return f"{settings.slip_reference_prefix}-{on:%Y%m%d}-{secrets.token_hex(2).upper()}"


class SalarySlipService:
    """
    Salary slip generation, retrieval and the sent/paid transitions.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.directory = EmployeeDirectory(db)
        self.components = ComponentStore(db)
        self.ledger = AdvanceLedger(db)
        self.tax = SlabTaxService(db)

    # ===========================================
    # GENERATION
    # ===========================================

    async def generate(
        self,
        employee_id: uuid.UUID,
        salary_period: str,
        notes: Optional[str] = None,
    ) -> SalarySlip:
        """
        Generate and persist the slip for an employee and period.

        Raises EmployeeNotFoundException for an unknown employee and
        DuplicateSlipException when the period already has a slip. Nothing
        is persisted on failure.
        """
        validate_salary_period(salary_period)

        employee = await self.directory.get_employee(employee_id)
        if employee is None:
            raise EmployeeNotFoundException(employee_id)

        await self._fast_path_duplicate_check(employee_id, salary_period)

        try:
            values = await self.compute_slip_values(employee, salary_period)
        except Exception:
            await self.db.rollback()
            raise
        values["notes"] = notes

        attempts = max(1, settings.slip_reference_attempts)
        for attempt in range(1, attempts + 1):
            slip = SalarySlip(slip_reference=new_slip_reference(), **values)
            self.db.add(slip)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                existing = await self.find_slip(employee_id, salary_period)
                if existing is not None:
                    raise DuplicateSlipException(employee_id, salary_period, existing.id) from e
                if attempt == attempts:
                    raise
                logger.warning(
                    f"Slip reference collision for employee {employee_id} "
                    f"({salary_period}), retrying ({attempt}/{attempts})"
                )
                continue
            except Exception:
                await self.db.rollback()
                raise

            await self.db.refresh(slip)
            logger.info(
                f"Generated salary slip {slip.slip_reference} for employee {employee_id} "
                f"({salary_period}): earnings {slip.total_earnings}, "
                f"deductions {slip.total_deductions}, net {slip.net_payable}"
            )
            return slip

    async def _fast_path_duplicate_check(self, employee_id: uuid.UUID, salary_period: str) -> None:
        existing = await self.find_slip(employee_id, salary_period)
        if existing is not None:
            raise DuplicateSlipException(employee_id, salary_period, existing.id)

    async def compute_slip_values(self, employee: EmployeeRecord, salary_period: str) -> Dict[str, Any]:
        """Column values of a new slip; reads only."""
        period_start, period_end = period_bounds(salary_period)
        basic_salary = round_currency(employee.base_salary)

        lines = await self.components.components_for(
            employee.id, period_start, period_end, employee.base_salary
        )
        overtime = await self.components.overtime_for(employee.id, period_start, period_end)
        advances = await self.ledger.advances_ready_for_deduction(employee.id)

        total_earnings = (
            basic_salary
            + sum_rounded(lines.benefits)
            + sum_rounded(lines.incentives)
            + sum_rounded(lines.bonus)
            + sum_rounded(overtime)
            + sum_rounded(lines.contributions)
        )

        tax_result = await self.tax.compute_tax(total_earnings)
        tax_amount = round_currency(tax_result.tax_amount)

        total_deductions = sum_rounded(lines.deductions) + sum_rounded(advances) + tax_amount
        net_payable = total_earnings - total_deductions
        if net_payable < 0:
            logger.warning(
                f"Negative net payable {net_payable} for employee {employee.id} ({salary_period})"
            )

        return {
            "employee_id": employee.id,
            "salary_period": salary_period,
            "basic_salary": basic_salary,
            "benefits": [line.to_dict() for line in lines.benefits],
            "incentives": [line.to_dict() for line in lines.incentives],
            "bonus": [line.to_dict() for line in lines.bonus],
            "overtime": [line.to_dict() for line in overtime],
            "contributions": [line.to_dict() for line in lines.contributions],
            "deductions": [line.to_dict() for line in lines.deductions],
            "advances": [line.to_dict() for line in advances],
            "tax_breakdown": tax_result.breakdown,
            "total_earnings": total_earnings,
            "total_deductions": total_deductions,
            "tax_amount": tax_amount,
            "net_payable": net_payable,
            "status": SlipStatus.GENERATED,
            "generated_at": datetime.utcnow(),
        }

    # ===========================================
    # RETRIEVAL
    # ===========================================

    async def find_slip(self, employee_id: uuid.UUID, salary_period: str) -> Optional[SalarySlip]:
        """The slip for an employee and period, if one exists."""
        result = await self.db.execute(
            select(SalarySlip).where(
                and_(
                    SalarySlip.employee_id == employee_id,
                    SalarySlip.salary_period == salary_period,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_slip(self, slip_id: uuid.UUID) -> SalarySlip:
        """Get salary slip by ID."""
        result = await self.db.execute(
            select(SalarySlip).where(SalarySlip.id == slip_id)
        )
        slip = result.scalar_one_or_none()
        if slip is None:
            raise SlipNotFoundException(slip_id)
        return slip

    async def get_slip_by_reference(self, slip_reference: str) -> SalarySlip:
        """Get salary slip by its SLP-... reference."""
        result = await self.db.execute(
            select(SalarySlip).where(SalarySlip.slip_reference == slip_reference)
        )
        slip = result.scalar_one_or_none()
        if slip is None:
            raise SlipNotFoundException(reference=slip_reference)
        return slip

    async def list_slips(
        self,
        employee_id: Optional[uuid.UUID] = None,
        salary_period: Optional[str] = None,
        status: Optional[SlipStatus] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[SalarySlip], int]:
        """List salary slips with filters and pagination."""
        query = select(SalarySlip)

        if employee_id:
            query = query.where(SalarySlip.employee_id == employee_id)
        if salary_period:
            query = query.where(SalarySlip.salary_period == validate_salary_period(salary_period))
        if status:
            query = query.where(SalarySlip.status == status)

        # Count total
        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar()

        # Apply pagination
        query = query.order_by(SalarySlip.salary_period.desc(), SalarySlip.slip_reference)
        query = query.offset((page - 1) * per_page).limit(per_page)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def employee_history(self, employee_id: uuid.UUID, limit: int = 12) -> List[SalarySlip]:
        """An employee's most recent slips, newest period first."""
        result = await self.db.execute(
            select(SalarySlip)
            .where(SalarySlip.employee_id == employee_id)
            .order_by(SalarySlip.salary_period.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_period_summary(self, salary_period: str) -> Dict[str, Any]:
        """Counts and totals of the slips generated for a period."""
        validate_salary_period(salary_period)
        result = await self.db.execute(
            select(SalarySlip).where(SalarySlip.salary_period == salary_period)
        )
        slips = result.scalars().all()

        status_counts = {status.value: 0 for status in SlipStatus}
        for slip in slips:
            status_counts[slip.status.value] += 1

        return {
            "salary_period": salary_period,
            "currency": settings.currency_code,
            "total_employees": len(slips),
            "total_basic_salary": sum((s.basic_salary for s in slips), ZERO),
            "total_earnings": sum((s.total_earnings for s in slips), ZERO),
            "total_deductions": sum((s.total_deductions for s in slips), ZERO),
            "total_tax": sum((s.tax_amount for s in slips), ZERO),
            "total_net_payable": sum((s.net_payable for s in slips), ZERO),
            "paid_count": status_counts[SlipStatus.PAID.value],
            "pending_count": status_counts[SlipStatus.GENERATED.value] + status_counts[SlipStatus.SENT.value],
            "status_counts": status_counts,
        }

    async def verify_slip(self, slip_id: uuid.UUID) -> Dict[str, Any]:
        """
        Recompute totals from the stored breakdown and compare with the
        stored totals.
        """
        slip = await self.get_slip(slip_id)

        earnings = to_decimal(slip.basic_salary)
        for family in EARNING_FAMILIES:
            earnings += sum_rounded(getattr(slip, family) or [])

        tax_amount = to_decimal(slip.tax_amount)
        deductions = tax_amount
        for family in DEDUCTION_FAMILIES:
            deductions += sum_rounded(getattr(slip, family) or [])

        net = earnings - deductions

        checks = {
            "total_earnings": (earnings, to_decimal(slip.total_earnings)),
            "total_deductions": (deductions, to_decimal(slip.total_deductions)),
            "net_payable": (net, to_decimal(slip.net_payable)),
        }
        if slip.tax_breakdown is not None:
            checks["tax_amount"] = (to_decimal(slip.tax_breakdown.get("tax_amount")), tax_amount)

        mismatches = [
            name for name, (expected, stored) in checks.items()
            if round_currency(expected) != round_currency(stored)
        ]
        if mismatches:
            logger.warning(f"Salary slip {slip.slip_reference} does not reconcile: {mismatches}")

        return {
            "slip_id": slip.id,
            "slip_reference": slip.slip_reference,
            "reconciles": not mismatches,
            "mismatches": mismatches,
            "recomputed": {name: round_currency(expected) for name, (expected, _) in checks.items()},
            "stored": {name: round_currency(stored) for name, (_, stored) in checks.items()},
        }

    # ===========================================
    # LIFECYCLE
    # ===========================================

    async def mark_sent(self, slip_id: uuid.UUID) -> SalarySlip:
        """generated -> sent."""
        slip = await self.get_slip(slip_id)
        if slip.is_paid:
            raise PaidSlipImmutableException(slip_id, "marked as sent")
        if slip.status != SlipStatus.GENERATED:
            raise ConflictException(
                f"Salary slip is {slip.status.value}; only generated slips can be sent",
                resource_type="SalarySlip",
            )

        slip.status = SlipStatus.SENT
        slip.sent_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(slip)
        return slip

    async def mark_paid(
        self,
        slip_id: uuid.UUID,
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SalarySlip:
        """
        Mark a slip paid and post one installment per advance line.

        The slip row is locked for the duration; the status change and every
        ledger posting commit together or not at all.
        """
        result = await self.db.execute(
            select(SalarySlip)
            .where(SalarySlip.id == slip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        slip = result.scalar_one_or_none()
        if slip is None:
            raise SlipNotFoundException(slip_id)
        if slip.is_paid:
            raise PaidSlipImmutableException(slip_id, "paid again")
        if slip.status not in (SlipStatus.GENERATED, SlipStatus.SENT):
            raise BusinessRuleException(
                f"Salary slip is {slip.status.value}; only generated or sent slips can be paid",
                rule="SLIP_MUST_BE_GENERATED",
                code=ErrorCode.CANNOT_MODIFY,
            )

        try:
            for line in slip.advances or []:
                await self.ledger.post_deduction(
                    uuid.UUID(line["component_id"]),
                    slip.id,
                    to_decimal(line["due_amount"]),
                )

            slip.status = SlipStatus.PAID
            slip.paid_at = datetime.utcnow()
            slip.payment_method = payment_method
            slip.payment_reference = payment_reference
            if notes is not None:
                slip.notes = notes
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(slip)
        logger.info(
            f"Salary slip {slip.slip_reference} paid ({payment_method.value if payment_method else 'unspecified'}); "
            f"{len(slip.advances or [])} advance installment(s) posted"
        )
        return slip

    async def bulk_mark_paid(
        self,
        slip_ids: List[uuid.UUID],
        payment_method: Optional[PaymentMethod] = None,
        payment_reference: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Pay each slip in its own transaction; failures are reported, not raised."""
        paid_count = 0
        errors = []
        for slip_id in slip_ids:
            try:
                await self.mark_paid(slip_id, payment_method, payment_reference)
                paid_count += 1
            except Exception as e:
                logger.error(f"Failed to mark salary slip {slip_id} paid: {e}")
                errors.append({"slip_id": str(slip_id), "error": str(e)})

        return {"paid_count": paid_count, "errors": errors}

    async def delete_slip(self, slip_id: uuid.UUID) -> None:
        """Delete an unpaid slip."""
        slip = await self.get_slip(slip_id)
        if slip.is_paid:
            raise PaidSlipImmutableException(slip_id, "deleted")

        await self.db.delete(slip)
        await self.db.commit()
        logger.info(f"Deleted salary slip {slip.slip_reference} ({slip.salary_period})")
