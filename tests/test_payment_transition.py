"""
HRMS Payroll - Payment Transition Tests

Marking slips paid amortizes advances; paid slips are final.
"""

import pytest
from decimal import Decimal

from app.models.payroll import AdvanceStatus, PaymentMethod, SlipStatus
from app.services.advance_ledger import AdvanceLedger
from app.services.salary_slip_service import SalarySlipService
from app.utils.error_handling import (
    AdvancePostingConflictException,
    BusinessRuleException,
    PaidSlipImmutableException,
)


class TestMarkPaid:
    """generated/sent -> paid."""

    @pytest.mark.asyncio
    async def test_three_payments_clear_the_advance(self, db_session, test_employee, advance_factory):
        employee_id = test_employee.id
        advance = await advance_factory(employee_id, Decimal("9000.00"), Decimal("3000.00"))
        advance_id = advance.id
        service = SalarySlipService(db_session)
        ledger = AdvanceLedger(db_session)

        balances = []
        for period in ["2026-01", "2026-02", "2026-03"]:
            slip = await service.generate(employee_id, period)
            assert [line["due_amount"] for line in slip.advances] == ["3000.00"]
            await service.mark_paid(slip.id, payment_method=PaymentMethod.BANK_TRANSFER)
            advance = await ledger.get_advance(advance_id)
            balances.append(advance.remaining_balance)

        assert balances == [Decimal("6000.00"), Decimal("3000.00"), Decimal("0")]
        assert advance.status == AdvanceStatus.COMPLETED

        # Nothing left to deduct next month
        april = await service.generate(employee_id, "2026-04")
        assert april.advances == []
        assert april.total_deductions == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_paid_slip_records_payment(self, db_session, test_employee):
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")

        paid = await service.mark_paid(
            slip.id,
            payment_method=PaymentMethod.BANK_TRANSFER,
            payment_reference="TRF-0001",
            notes="January run",
        )

        assert paid.status == SlipStatus.PAID
        assert paid.paid_at is not None
        assert paid.payment_method == PaymentMethod.BANK_TRANSFER
        assert paid.payment_reference == "TRF-0001"
        assert paid.notes == "January run"

    @pytest.mark.asyncio
    async def test_sent_slip_can_be_paid(self, db_session, test_employee):
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        await service.mark_sent(slip.id)

        paid = await service.mark_paid(slip.id)

        assert paid.status == SlipStatus.PAID

    @pytest.mark.asyncio
    async def test_double_payment_is_rejected(self, db_session, test_employee, advance_factory):
        advance = await advance_factory(test_employee.id, Decimal("9000.00"), Decimal("3000.00"))
        advance_id = advance.id
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        slip_id = slip.id
        await service.mark_paid(slip_id)

        with pytest.raises(PaidSlipImmutableException):
            await service.mark_paid(slip_id)

        advance = await service.ledger.get_advance(advance_id)
        assert advance.remaining_balance == Decimal("6000.00")

    @pytest.mark.asyncio
    async def test_payment_from_another_session_is_seen(self, db_session, session_factory, test_employee):
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        slip_id = slip.id

        async with session_factory() as other_session:
            await SalarySlipService(other_session).mark_paid(slip_id, payment_method=PaymentMethod.CASH)

        with pytest.raises(PaidSlipImmutableException):
            await service.mark_paid(slip_id, payment_method=PaymentMethod.BANK_TRANSFER)

        slip = await service.get_slip(slip_id)
        assert slip.payment_method == PaymentMethod.CASH

    @pytest.mark.asyncio
    async def test_paid_slip_cannot_be_sent(self, db_session, test_employee):
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        await service.mark_paid(slip.id)

        with pytest.raises(PaidSlipImmutableException):
            await service.mark_sent(slip.id)

    @pytest.mark.asyncio
    async def test_draft_slip_cannot_be_paid(self, db_session, test_employee):
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        slip.status = SlipStatus.DRAFT
        await db_session.commit()

        with pytest.raises(BusinessRuleException):
            await service.mark_paid(slip.id)

    @pytest.mark.asyncio
    async def test_cancelled_advance_rolls_back_payment(self, db_session, test_employee, advance_factory):
        advance = await advance_factory(test_employee.id, Decimal("9000.00"), Decimal("3000.00"))
        advance_id = advance.id
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        slip_id = slip.id
        await service.ledger.cancel_advance(advance_id)

        with pytest.raises(AdvancePostingConflictException):
            await service.mark_paid(slip_id)

        slip = await service.get_slip(slip_id)
        assert slip.status == SlipStatus.GENERATED
        assert slip.paid_at is None


class TestBulkMarkPaid:
    """Paying several slips at once."""

    @pytest.mark.asyncio
    async def test_failures_are_reported_per_slip(self, db_session, employee_factory):
        service = SalarySlipService(db_session)
        first = await employee_factory("E1", Decimal("40000.00"))
        second = await employee_factory("E2", Decimal("40000.00"))
        first_slip = await service.generate(first.id, "2026-01")
        second_slip = await service.generate(second.id, "2026-01")
        first_slip_id, second_slip_id = first_slip.id, second_slip.id
        await service.mark_paid(first_slip_id)

        result = await service.bulk_mark_paid([first_slip_id, second_slip_id], PaymentMethod.CASH)

        assert result["paid_count"] == 1
        assert [error["slip_id"] for error in result["errors"]] == [str(first_slip_id)]


class TestDeleteSlip:
    """Unpaid slips can be removed; paid slips cannot."""

    @pytest.mark.asyncio
    async def test_delete_unpaid_slip_allows_regeneration(self, db_session, test_employee):
        employee_id = test_employee.id
        service = SalarySlipService(db_session)
        slip = await service.generate(employee_id, "2026-01")
        slip_id = slip.id

        await service.delete_slip(slip_id)
        regenerated = await service.generate(employee_id, "2026-01")

        assert regenerated.id != slip_id

    @pytest.mark.asyncio
    async def test_paid_slip_cannot_be_deleted(self, db_session, test_employee):
        service = SalarySlipService(db_session)
        slip = await service.generate(test_employee.id, "2026-01")
        await service.mark_paid(slip.id)

        with pytest.raises(PaidSlipImmutableException):
            await service.delete_slip(slip.id)
