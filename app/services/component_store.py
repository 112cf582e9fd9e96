"""
HRMS Payroll - Component Store

Read side of compensation and deduction sources. For an employee and a
salary period it returns every active component whose effective window
overlaps the period, grouped by family and resolved through the
calculation policy, plus the overtime worked in the period.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payroll import ComponentKind, OvertimeRecord, PayComponent
from app.services.calculation_policy import ResolvedLine, resolve_amount


OVERTIME_CALCULATION_TYPE = "hourly"


@dataclass
class ComponentLines:
    """Resolved lines per component family, in display order."""
    benefits: List[ResolvedLine] = field(default_factory=list)
    incentives: List[ResolvedLine] = field(default_factory=list)
    bonus: List[ResolvedLine] = field(default_factory=list)
    contributions: List[ResolvedLine] = field(default_factory=list)
    deductions: List[ResolvedLine] = field(default_factory=list)

    def for_kind(self, kind: ComponentKind) -> List[ResolvedLine]:
        return getattr(self, KIND_TO_FAMILY[kind])


KIND_TO_FAMILY: Dict[ComponentKind, str] = {
    ComponentKind.BENEFIT: "benefits",
    ComponentKind.INCENTIVE: "incentives",
    ComponentKind.BONUS: "bonus",
    ComponentKind.EMPLOYER_CONTRIBUTION: "contributions",
    ComponentKind.RECURRING_DEDUCTION: "deductions",
}


def overlaps_period(column_from, column_until, period_start: date, period_end: date):
    """SQL condition: window [from, until] overlaps the period; null bounds are open."""
    return and_(
        or_(column_from.is_(None), column_from <= period_end),
        or_(column_until.is_(None), column_until >= period_start),
    )


class ComponentStore:
    """Pure reads of pay components and overtime for slip generation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def components_for(
        self,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
        base_salary: Decimal,
    ) -> ComponentLines:
        """Active components overlapping the period, resolved against base_salary."""
        result = await self.db.execute(
            select(PayComponent)
            .where(
                and_(
                    PayComponent.employee_id == employee_id,
                    PayComponent.is_active == True,
                    overlaps_period(
                        PayComponent.effective_from,
                        PayComponent.effective_until,
                        period_start,
                        period_end,
                    ),
                )
            )
            .order_by(PayComponent.label, PayComponent.id)
        )

        lines = ComponentLines()
        for component in result.scalars().all():
            lines.for_kind(component.kind).append(
                ResolvedLine(
                    component_id=component.id,
                    label=component.label,
                    calculation_type=component.calculation_type.value,
                    rate=component.amount,
                    computed_amount=resolve_amount(
                        component.calculation_type,
                        component.amount,
                        base_salary,
                    ),
                )
            )
        return lines

    async def overtime_for(
        self,
        employee_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> List[ResolvedLine]:
        """Overtime worked in the period: days x hours per day x hourly rate."""
        result = await self.db.execute(
            select(OvertimeRecord)
            .where(
                and_(
                    OvertimeRecord.employee_id == employee_id,
                    OvertimeRecord.is_active == True,
                    overlaps_period(
                        OvertimeRecord.period_start,
                        OvertimeRecord.period_end,
                        period_start,
                        period_end,
                    ),
                )
            )
            .order_by(OvertimeRecord.period_start, OvertimeRecord.id)
        )

        return [
            ResolvedLine(
                component_id=record.id,
                label=record.title,
                calculation_type=OVERTIME_CALCULATION_TYPE,
                rate=record.hourly_rate,
                computed_amount=record.days_count * record.hours_per_day * record.hourly_rate,
                extra={
                    "days_count": record.days_count,
                    "hours_per_day": record.hours_per_day,
                    "hourly_rate": record.hourly_rate,
                },
            )
            for record in result.scalars().all()
        ]
