"""
HRMS Payroll - Compensation Service

Maintenance of the pay components and overtime records that slip
generation reads through the component store.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll import (
    CalculationType, ComponentKind, OvertimeRecord, PayComponent, PERIOD_BOUND_KINDS
)
from app.services.employee_directory import EmployeeDirectory
from app.utils.error_handling import (
    EmployeeNotFoundException,
    InvalidAmountException,
    InvalidDateRangeException,
    NotFoundException,
    ValidationException,
)


logger = logging.getLogger(__name__)


def _check_window(
    kind: ComponentKind,
    effective_from: Optional[date],
    effective_until: Optional[date],
) -> None:
    if kind in PERIOD_BOUND_KINDS and (effective_from is None or effective_until is None):
        raise ValidationException(
            f"{kind.value.replace('_', ' ').title()} components need both effective_from and effective_until",
            field="effective_until" if effective_from else "effective_from",
        )
    if effective_from and effective_until and effective_from > effective_until:
        raise InvalidDateRangeException(str(effective_from), str(effective_until))


def _check_amount(calculation_type: CalculationType, amount: Decimal) -> None:
    if amount is None or amount < 0:
        raise InvalidAmountException(amount)
    if calculation_type == CalculationType.PERCENTAGE and amount > 100:
        raise InvalidAmountException(amount, message=f"Percentage {amount} must be between 0 and 100")


class CompensationService:
    """
    Pay component and overtime maintenance.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.directory = EmployeeDirectory(db)

    async def _require_employee(self, employee_id: uuid.UUID) -> None:
        if await self.directory.get_employee(employee_id) is None:
            raise EmployeeNotFoundException(employee_id)

    # ===========================================
    # PAY COMPONENTS
    # ===========================================

    async def create_component(
        self,
        data: Dict[str, Any],
        created_by_id: Optional[uuid.UUID] = None,
    ) -> PayComponent:
        """Attach a benefit, incentive, bonus, contribution or deduction to an employee."""
        await self._require_employee(data["employee_id"])

        kind = ComponentKind(data["kind"])
        calculation_type = CalculationType(data.get("calculation_type") or CalculationType.FIXED)
        _check_window(kind, data.get("effective_from"), data.get("effective_until"))
        _check_amount(calculation_type, data.get("amount"))

        component = PayComponent(created_by_id=created_by_id, **data)
        self.db.add(component)
        await self.db.commit()
        await self.db.refresh(component)

        logger.info(f"Created {kind.value} component '{component.label}' for employee {component.employee_id}")
        return component

    async def get_component(self, component_id: uuid.UUID) -> PayComponent:
        """Get pay component by ID."""
        result = await self.db.execute(
            select(PayComponent).where(PayComponent.id == component_id)
        )
        component = result.scalar_one_or_none()
        if component is None:
            raise NotFoundException("PayComponent", component_id)
        return component

    async def list_components(
        self,
        employee_id: Optional[uuid.UUID] = None,
        kind: Optional[ComponentKind] = None,
        active_only: bool = False,
    ) -> List[PayComponent]:
        """List pay components with filters."""
        query = select(PayComponent)
        if employee_id:
            query = query.where(PayComponent.employee_id == employee_id)
        if kind:
            query = query.where(PayComponent.kind == kind)
        if active_only:
            query = query.where(PayComponent.is_active == True)
        query = query.order_by(PayComponent.kind, PayComponent.label)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_component(
        self,
        component_id: uuid.UUID,
        data: Dict[str, Any],
        updated_by_id: Optional[uuid.UUID] = None,
    ) -> PayComponent:
        """
        Update a component. Existing slips keep the values they were
        generated with.
        """
        component = await self.get_component(component_id)

        calculation_type = CalculationType(data.get("calculation_type") or component.calculation_type)
        amount = data["amount"] if data.get("amount") is not None else component.amount
        effective_from = data.get("effective_from", component.effective_from)
        effective_until = data.get("effective_until", component.effective_until)
        _check_window(component.kind, effective_from, effective_until)
        _check_amount(calculation_type, amount)

        for key, value in data.items():
            if key in ("effective_from", "effective_until"):
                setattr(component, key, value)
            elif value is not None and hasattr(component, key):
                setattr(component, key, value)

        component.updated_by_id = updated_by_id

        await self.db.commit()
        await self.db.refresh(component)
        return component

    async def delete_component(self, component_id: uuid.UUID) -> None:
        component = await self.get_component(component_id)
        await self.db.delete(component)
        await self.db.commit()

    # ===========================================
    # OVERTIME
    # ===========================================

    async def create_overtime(
        self,
        data: Dict[str, Any],
        created_by_id: Optional[uuid.UUID] = None,
    ) -> OvertimeRecord:
        """Record overtime worked between period_start and period_end."""
        await self._require_employee(data["employee_id"])

        if data["period_start"] > data["period_end"]:
            raise InvalidDateRangeException(str(data["period_start"]), str(data["period_end"]))
        for field_name in ("days_count", "hours_per_day", "hourly_rate"):
            if data[field_name] is None or data[field_name] < 0:
                raise InvalidAmountException(data[field_name], field=field_name)

        record = OvertimeRecord(created_by_id=created_by_id, **data)
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def list_overtime(
        self,
        employee_id: Optional[uuid.UUID] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> List[OvertimeRecord]:
        """List overtime records, optionally limited to those overlapping a window."""
        query = select(OvertimeRecord)
        if employee_id:
            query = query.where(OvertimeRecord.employee_id == employee_id)
        if period_start and period_end:
            query = query.where(
                and_(
                    OvertimeRecord.period_start <= period_end,
                    OvertimeRecord.period_end >= period_start,
                )
            )
        query = query.order_by(OvertimeRecord.period_start.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete_overtime(self, record_id: uuid.UUID) -> None:
        result = await self.db.execute(
            select(OvertimeRecord).where(OvertimeRecord.id == record_id)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundException("OvertimeRecord", record_id)
        await self.db.delete(record)
        await self.db.commit()
