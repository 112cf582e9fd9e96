"""
HRMS Payroll - Tax Configuration Tests

Slab maintenance and the coverage audit.
"""

import pytest
from decimal import Decimal

from app.models.tax import TaxExemption, TaxSlab
from app.services.tax_config_service import TaxConfigService
from app.utils.error_handling import InvalidAmountException, ValidationException


def slab(title, income_from, income_to, fixed_amount="0.00", percentage="0.00", is_active=True):
    return {
        "title": title,
        "income_from": Decimal(income_from),
        "income_to": Decimal(income_to),
        "fixed_amount": Decimal(fixed_amount),
        "percentage": Decimal(percentage),
        "is_active": is_active,
    }


class TestSlabMaintenance:
    """Create and update validation."""

    @pytest.mark.asyncio
    async def test_reversed_range_is_rejected(self, db_session):
        service = TaxConfigService(db_session)

        with pytest.raises(ValidationException):
            await service.create_record(TaxSlab, slab("Broken", "5000.00", "1000.00"))

    @pytest.mark.asyncio
    async def test_update_validates_against_stored_bounds(self, db_session):
        service = TaxConfigService(db_session)
        record = await service.create_record(TaxSlab, slab("Band", "1000.00", "5000.00"))

        with pytest.raises(ValidationException):
            await service.update_record(TaxSlab, record.id, {"income_to": Decimal("500.00")})

    @pytest.mark.asyncio
    async def test_negative_exemption_is_rejected(self, db_session):
        service = TaxConfigService(db_session)

        with pytest.raises(InvalidAmountException):
            await service.create_record(
                TaxExemption,
                {"title": "Bad", "exemption_amount": Decimal("-1.00"), "is_active": True, "notes": None},
            )

    @pytest.mark.asyncio
    async def test_slabs_list_in_income_order(self, db_session):
        service = TaxConfigService(db_session)
        await service.create_record(TaxSlab, slab("High", "50000.01", "90000.00"))
        await service.create_record(TaxSlab, slab("Low", "0.00", "50000.00"))

        slabs = await service.list_records(TaxSlab)

        assert [s.title for s in slabs] == ["Low", "High"]


class TestSlabAudit:
    """Gaps and overlaps in the active slab table."""

    @pytest.mark.asyncio
    async def test_empty_table_is_not_contiguous(self, db_session):
        audit = await TaxConfigService(db_session).audit_slabs()

        assert audit["active_slab_count"] == 0
        assert audit["is_contiguous"] is False

    @pytest.mark.asyncio
    async def test_overlap_is_reported(self, db_session):
        service = TaxConfigService(db_session)
        low = await service.create_record(TaxSlab, slab("Low", "0.00", "50000.00"))
        mid = await service.create_record(TaxSlab, slab("Mid", "40000.00", "80000.00"))

        audit = await service.audit_slabs()

        assert audit["gaps"] == []
        assert len(audit["overlaps"]) == 1
        assert audit["overlaps"][0]["from"] == Decimal("40000.00")
        assert audit["overlaps"][0]["to"] == Decimal("50000.00")
        assert audit["overlaps"][0]["slab_ids"] == [low.id, mid.id]

    @pytest.mark.asyncio
    async def test_nested_slab_does_not_hide_a_gap(self, db_session):
        service = TaxConfigService(db_session)
        await service.create_record(TaxSlab, slab("Wide", "0.00", "100000.00"))
        await service.create_record(TaxSlab, slab("Nested", "10000.00", "20000.00"))
        await service.create_record(TaxSlab, slab("Top", "150000.00", "200000.00"))

        audit = await service.audit_slabs()

        assert len(audit["gaps"]) == 1
        assert audit["gaps"][0]["from"] == Decimal("100000.00")
        assert audit["gaps"][0]["to"] == Decimal("150000.00")

    @pytest.mark.asyncio
    async def test_inactive_slabs_are_ignored(self, db_session):
        service = TaxConfigService(db_session)
        await service.create_record(TaxSlab, slab("Low", "0.00", "50000.00"))
        await service.create_record(TaxSlab, slab("Retired", "50000.01", "90000.00", is_active=False))

        audit = await service.audit_slabs()

        assert audit["active_slab_count"] == 1
        assert audit["is_contiguous"] is True
        assert audit["highest_income_to"] == Decimal("50000.00")

    @pytest.mark.asyncio
    async def test_preview_rejects_negative_gross(self, db_session):
        with pytest.raises(InvalidAmountException):
            await TaxConfigService(db_session).calculate(Decimal("-5.00"))
