"""
HRMS Payroll - Advance Amortization Ledger

Salary advances are repaid through paid salary slips. Each payment posts
one installment per advance and records a ledger row, so a slip can never
amortize the same advance twice.

Balance rules:
- remaining_balance starts at principal_amount and never increases
- a posting applies min(amount, remaining_balance); the balance floors at 0
- the advance completes exactly when the balance reaches 0
"""

import logging
import math
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll import (
    AdvanceDeduction,
    AdvanceStatus,
    AdvanceType,
    CalculationType,
    SalaryAdvance,
    SalarySlip,
    SlipStatus,
)
from app.services.calculation_policy import ZERO, ResolvedLine, to_decimal
from app.utils.error_handling import (
    AdvanceNotFoundException,
    AdvancePostingConflictException,
    BusinessRuleException,
    ConflictException,
    ErrorCode,
    InvalidAmountException,
    InvalidDateRangeException,
)


logger = logging.getLogger(__name__)


def installment_count(principal_amount: Decimal, monthly_deduction: Decimal) -> int:
    """Number of monthly installments needed to clear the principal."""
    return math.ceil(to_decimal(principal_amount) / to_decimal(monthly_deduction))


def expected_completion(start_deduction_date: date, principal_amount: Decimal, monthly_deduction: Decimal) -> date:
    """Start date plus one month per installment."""
    return start_deduction_date + relativedelta(
        months=installment_count(principal_amount, monthly_deduction)
    )


def due_amount(advance: SalaryAdvance, pending: Decimal = ZERO) -> Decimal:
    """
    Installment owed this period: never more than what is left once the
    installments already promised by unpaid slips are set aside.
    """
    available = max(ZERO, advance.remaining_balance - pending)
    return min(advance.monthly_deduction, available)


class AdvanceLedger:
    """
    Salary advance maintenance and installment posting.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # ADVANCE MAINTENANCE
    # ===========================================

    async def create_advance(
        self,
        employee_id: uuid.UUID,
        principal_amount: Decimal,
        monthly_deduction: Decimal,
        issue_date: date,
        start_deduction_date: date,
        advance_type: AdvanceType = AdvanceType.SALARY_ADVANCE,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SalaryAdvance:
        """Issue a new advance; the full principal is outstanding."""
        principal_amount = to_decimal(principal_amount)
        monthly_deduction = to_decimal(monthly_deduction)

        if principal_amount <= 0:
            raise InvalidAmountException(principal_amount, field="principal_amount")
        if monthly_deduction <= 0:
            raise InvalidAmountException(monthly_deduction, field="monthly_deduction")
        if start_deduction_date < issue_date:
            raise InvalidDateRangeException(
                str(issue_date),
                str(start_deduction_date),
                message="Deductions cannot start before the advance is issued",
            )

        advance = SalaryAdvance(
            employee_id=employee_id,
            advance_type=advance_type,
            description=description,
            principal_amount=principal_amount,
            monthly_deduction=monthly_deduction,
            remaining_balance=principal_amount,
            issue_date=issue_date,
            start_deduction_date=start_deduction_date,
            expected_completion_date=expected_completion(
                start_deduction_date, principal_amount, monthly_deduction
            ),
            status=AdvanceStatus.ACTIVE,
            notes=notes,
        )
        self.db.add(advance)
        await self.db.commit()
        await self.db.refresh(advance)

        logger.info(
            f"Advance {advance.id} issued to employee {employee_id}: "
            f"{principal_amount} over {installment_count(principal_amount, monthly_deduction)} installments"
        )
        return advance

    async def get_advance(self, advance_id: uuid.UUID) -> SalaryAdvance:
        """Get advance by ID."""
        result = await self.db.execute(
            select(SalaryAdvance).where(SalaryAdvance.id == advance_id)
        )
        advance = result.scalar_one_or_none()
        if advance is None:
            raise AdvanceNotFoundException(advance_id)
        return advance

    async def list_advances(
        self,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[AdvanceStatus] = None,
    ) -> List[SalaryAdvance]:
        """List advances with optional filters, newest issue first."""
        query = select(SalaryAdvance)
        if employee_id:
            query = query.where(SalaryAdvance.employee_id == employee_id)
        if status:
            query = query.where(SalaryAdvance.status == status)
        query = query.order_by(SalaryAdvance.issue_date.desc(), SalaryAdvance.id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_advance(
        self,
        advance_id: uuid.UUID,
        description: Optional[str] = None,
        monthly_deduction: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> SalaryAdvance:
        """
        Update descriptive fields or the installment size.

        Changing monthly_deduction is only allowed while the advance is active
        and recomputes the expected completion date.
        """
        advance = await self.get_advance(advance_id)

        if description is not None:
            advance.description = description
        if notes is not None:
            advance.notes = notes

        if monthly_deduction is not None:
            monthly_deduction = to_decimal(monthly_deduction)
            if monthly_deduction <= 0:
                raise InvalidAmountException(monthly_deduction, field="monthly_deduction")
            if advance.status != AdvanceStatus.ACTIVE:
                raise BusinessRuleException(
                    f"Cannot change the installment of a {advance.status.value} advance",
                    rule="ADVANCE_MUST_BE_ACTIVE",
                    code=ErrorCode.CANNOT_MODIFY,
                )
            advance.monthly_deduction = monthly_deduction
            advance.expected_completion_date = expected_completion(
                advance.start_deduction_date, advance.principal_amount, monthly_deduction
            )

        await self.db.commit()
        await self.db.refresh(advance)
        return advance

    async def cancel_advance(self, advance_id: uuid.UUID) -> SalaryAdvance:
        """Stop an active advance from being deducted. The balance is left as is."""
        advance = await self.get_advance(advance_id)
        if advance.status != AdvanceStatus.ACTIVE:
            raise ConflictException(
                f"Only active advances can be cancelled (current status: {advance.status.value})",
                resource_type="SalaryAdvance",
            )

        advance.status = AdvanceStatus.CANCELLED
        await self.db.commit()
        await self.db.refresh(advance)

        logger.info(f"Advance {advance_id} cancelled with {advance.remaining_balance} outstanding")
        return advance

    async def list_deductions(self, advance_id: uuid.UUID) -> List[AdvanceDeduction]:
        """Installments posted against an advance, oldest first."""
        await self.get_advance(advance_id)
        result = await self.db.execute(
            select(AdvanceDeduction)
            .where(AdvanceDeduction.advance_id == advance_id)
            .order_by(AdvanceDeduction.posted_at, AdvanceDeduction.balance_before.desc())
        )
        return list(result.scalars().all())

    # ===========================================
    # AMORTIZATION
    # ===========================================

    async def pending_installments(self, employee_id: uuid.UUID) -> Dict[str, Decimal]:
        """Installments listed on the employee's unpaid slips, keyed by advance ID."""
        result = await self.db.execute(
            select(SalarySlip.advances).where(
                and_(
                    SalarySlip.employee_id == employee_id,
                    SalarySlip.status.in_([SlipStatus.GENERATED, SlipStatus.SENT]),
                )
            )
        )
        pending: Dict[str, Decimal] = {}
        for lines in result.scalars().all():
            for line in lines or []:
                advance_id = line["component_id"]
                pending[advance_id] = pending.get(advance_id, ZERO) + to_decimal(line["due_amount"])
        return pending

    async def advances_ready_for_deduction(
        self,
        employee_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> List[ResolvedLine]:
        """
        Preview the installments due from an employee; nothing is posted.

        Due advances are active, already past their start deduction date and
        still carry a balance. Installments listed on unpaid slips count
        against the balance, so two open slips never promise the same money.
        """
        as_of = as_of or date.today()
        pending = await self.pending_installments(employee_id)
        result = await self.db.execute(
            select(SalaryAdvance)
            .where(
                and_(
                    SalaryAdvance.employee_id == employee_id,
                    SalaryAdvance.status == AdvanceStatus.ACTIVE,
                    SalaryAdvance.start_deduction_date <= as_of,
                    SalaryAdvance.remaining_balance > 0,
                )
            )
            .order_by(SalaryAdvance.start_deduction_date, SalaryAdvance.id)
        )

        lines = []
        for advance in result.scalars().all():
            reserved = pending.get(str(advance.id), ZERO)
            amount = due_amount(advance, reserved)
            if amount <= 0:
                continue
            lines.append(
                ResolvedLine(
                    component_id=advance.id,
                    label=advance.description or advance.advance_type.value.replace("_", " ").title(),
                    calculation_type=CalculationType.FIXED.value,
                    rate=advance.monthly_deduction,
                    computed_amount=amount,
                    extra={
                        "monthly_deduction": advance.monthly_deduction,
                        "remaining_before": advance.remaining_balance,
                        "pending_on_unpaid_slips": reserved,
                        "due_amount": amount,
                    },
                )
            )
        return lines

    async def post_deduction(
        self,
        advance_id: uuid.UUID,
        salary_slip_id: uuid.UUID,
        amount: Optional[Decimal] = None,
    ) -> AdvanceDeduction:
        """
        Apply one installment to an advance on behalf of a paid slip.

        The caller owns the transaction: changes are flushed, not committed.
        amount defaults to the advance's monthly deduction.
        """
        # Reload under the lock: the identity map may hold a balance another session has since changed
        result = await self.db.execute(
            select(SalaryAdvance)
            .where(SalaryAdvance.id == advance_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        advance = result.scalar_one_or_none()
        if advance is None:
            raise AdvanceNotFoundException(advance_id)

        if advance.status == AdvanceStatus.CANCELLED:
            raise AdvancePostingConflictException(
                advance_id,
                f"Advance {advance_id} is cancelled and cannot be deducted",
                salary_slip_id=salary_slip_id,
            )

        existing = await self.db.execute(
            select(AdvanceDeduction.id).where(
                and_(
                    AdvanceDeduction.advance_id == advance_id,
                    AdvanceDeduction.salary_slip_id == salary_slip_id,
                )
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise AdvancePostingConflictException(
                advance_id,
                f"Advance {advance_id} was already deducted by salary slip {salary_slip_id}",
                salary_slip_id=salary_slip_id,
            )

        requested = to_decimal(amount) if amount is not None else advance.monthly_deduction
        if requested < 0:
            raise InvalidAmountException(requested)

        balance_before = advance.remaining_balance
        if advance.status == AdvanceStatus.COMPLETED:
            logger.warning(
                f"Advance {advance_id} is already completed; slip {salary_slip_id} posts nothing"
            )
            applied = ZERO
        else:
            applied = min(requested, balance_before)
        if applied < requested:
            logger.warning(
                f"Advance {advance_id}: slip {salary_slip_id} requested {requested}, "
                f"only {applied} applied (balance {balance_before})"
            )

        balance_after = max(ZERO, balance_before - applied)
        advance.remaining_balance = balance_after
        if balance_after == 0:
            advance.status = AdvanceStatus.COMPLETED

        deduction = AdvanceDeduction(
            advance_id=advance_id,
            salary_slip_id=salary_slip_id,
            requested_amount=requested,
            amount=applied,
            balance_before=balance_before,
            balance_after=balance_after,
            posted_at=datetime.utcnow(),
        )
        self.db.add(deduction)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise AdvancePostingConflictException(
                advance_id,
                f"Advance {advance_id} was already deducted by salary slip {salary_slip_id}",
                salary_slip_id=salary_slip_id,
            ) from e

        logger.info(
            f"Advance {advance_id}: posted {applied} from slip {salary_slip_id}, "
            f"balance {balance_before} -> {balance_after}"
        )
        return deduction
