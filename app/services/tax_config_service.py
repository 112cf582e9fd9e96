"""
HRMS Payroll - Tax Configuration Service

CRUD for tax slabs, exemptions and minimum tax limits, a coverage audit
of the active slab table and a tax preview for arbitrary gross amounts.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tax import MinimumTaxLimit, TaxExemption, TaxSlab
from app.services.calculation_policy import to_decimal
from app.services.tax_calculators.slab_tax_service import SlabTaxService, TaxResult
from app.utils.error_handling import (
    InvalidAmountException,
    NotFoundException,
    ValidationException,
)


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", TaxSlab, TaxExemption, MinimumTaxLimit)

# Two consecutive slabs whose bounds differ by at most this are contiguous
SLAB_CONTIGUITY_STEP = Decimal("0.01")

MONEY_FIELDS = {
    TaxSlab: ("income_from", "income_to", "fixed_amount", "percentage"),
    TaxExemption: ("exemption_amount",),
    MinimumTaxLimit: ("threshold_amount",),
}


def _validate(model: Type[ModelT], values: Dict[str, Any]) -> None:
    for field_name in MONEY_FIELDS[model]:
        value = values.get(field_name)
        if value is not None and value < 0:
            raise InvalidAmountException(value, field=field_name)

    if model is TaxSlab:
        if values["income_to"] < values["income_from"]:
            raise ValidationException(
                f"income_to ({values['income_to']}) must not be below income_from ({values['income_from']})",
                field="income_to",
            )
        if values.get("percentage") is not None and values["percentage"] > 100:
            raise InvalidAmountException(values["percentage"], field="percentage", message="Percentage must be between 0 and 100")


class TaxConfigService:
    """
    Tax configuration maintenance.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # GENERIC CRUD
    # ===========================================

    async def create_record(
        self,
        model: Type[ModelT],
        data: Dict[str, Any],
        created_by_id: Optional[uuid.UUID] = None,
    ) -> ModelT:
        _validate(model, data)
        record = model(created_by_id=created_by_id, **data)
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info(f"Created {model.__name__} '{record.title}'")
        return record

    async def get_record(self, model: Type[ModelT], record_id: uuid.UUID) -> ModelT:
        result = await self.db.execute(select(model).where(model.id == record_id))
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundException(model.__name__, record_id)
        return record

    async def list_records(self, model: Type[ModelT], active_only: bool = False) -> List[ModelT]:
        query = select(model)
        if active_only:
            query = query.where(model.is_active == True)
        if model is TaxSlab:
            query = query.order_by(TaxSlab.income_from, TaxSlab.id)
        else:
            query = query.order_by(model.created_at.desc(), model.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_record(
        self,
        model: Type[ModelT],
        record_id: uuid.UUID,
        data: Dict[str, Any],
        updated_by_id: Optional[uuid.UUID] = None,
    ) -> ModelT:
        record = await self.get_record(model, record_id)

        merged = {name: getattr(record, name) for name in MONEY_FIELDS[model]}
        merged.update({k: v for k, v in data.items() if v is not None})
        _validate(model, merged)

        for key, value in data.items():
            if value is not None and hasattr(record, key):
                setattr(record, key, value)
        record.updated_by_id = updated_by_id

        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def delete_record(self, model: Type[ModelT], record_id: uuid.UUID) -> None:
        record = await self.get_record(model, record_id)
        await self.db.delete(record)
        await self.db.commit()

    # ===========================================
    # SLAB AUDIT & PREVIEW
    # ===========================================

    async def audit_slabs(self) -> Dict[str, Any]:
        """
        Report gaps and overlaps in the active slab table.

        Incomes that fall in a gap are taxed at zero during generation, so
        gaps should be closed before a pay run.
        """
        slabs = await self.list_records(TaxSlab, active_only=True)
        gaps = []
        overlaps = []

        # reach: the slab extending furthest among those already visited
        reach = slabs[0] if slabs else None
        for current in slabs[1:]:
            if current.income_from > reach.income_to + SLAB_CONTIGUITY_STEP:
                gaps.append({
                    "from": reach.income_to,
                    "to": current.income_from,
                    "after_slab_id": reach.id,
                    "before_slab_id": current.id,
                })
            elif current.income_from <= reach.income_to:
                overlaps.append({
                    "from": current.income_from,
                    "to": min(reach.income_to, current.income_to),
                    "slab_ids": [reach.id, current.id],
                })
            if current.income_to > reach.income_to:
                reach = current

        lowest = slabs[0].income_from if slabs else None
        starts_at_zero = lowest is not None and lowest <= 0

        return {
            "active_slab_count": len(slabs),
            "lowest_income_from": lowest,
            "highest_income_to": max((s.income_to for s in slabs), default=None),
            "starts_at_zero": starts_at_zero,
            "gaps": gaps,
            "overlaps": overlaps,
            "is_contiguous": bool(slabs) and starts_at_zero and not gaps,
        }

    async def calculate(self, gross_earnings: Decimal) -> TaxResult:
        """Preview tax for a gross amount under the current configuration."""
        gross_earnings = to_decimal(gross_earnings)
        if gross_earnings < 0:
            raise InvalidAmountException(gross_earnings, field="gross_earnings")
        return await SlabTaxService(self.db).compute_tax(gross_earnings)
