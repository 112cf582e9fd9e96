"""
HRMS Payroll - Slab Tax Service

Progressive income tax resolved from configured slabs.

Resolution order:
1. Minimum tax limit - gross at or below the active threshold pays nothing
   and produces no breakdown
2. Exemptions - every active exemption is subtracted from gross
   (taxable income never goes below zero)
3. Slab lookup - the active slab with income_from <= taxable <= income_to;
   when slabs overlap the lowest income_from wins
4. tax = fixed_amount + (taxable - income_from) * percentage / 100

A taxable income no slab covers is a configuration gap: it is logged and
taxed at zero rather than failing the payroll run.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tax import MinimumTaxLimit, TaxExemption, TaxSlab
from app.services.calculation_policy import HUNDRED, ZERO, round_currency, to_decimal
from app.utils.error_handling import ConfigurationGapException


logger = logging.getLogger(__name__)


@dataclass
class TaxBracket:
    """Slab definition used by the calculator."""
    slab_id: Any
    title: str
    income_from: Decimal
    income_to: Decimal
    fixed_amount: Decimal
    percentage: Decimal

    def covers(self, taxable_income: Decimal) -> bool:
        return self.income_from <= taxable_income <= self.income_to

    def calculate_tax(self, taxable_income: Decimal) -> Decimal:
        """Fixed amount plus the percentage of income above the slab floor."""
        return self.fixed_amount + (taxable_income - self.income_from) * self.percentage / HUNDRED


@dataclass
class TaxResult:
    """Tax owed on a gross amount and how it was derived (None when untaxed)."""
    tax_amount: Decimal
    breakdown: Optional[Dict[str, Any]] = None

    @property
    def configuration_gap(self) -> bool:
        return bool(self.breakdown and self.breakdown.get("configuration_gap"))


class SlabTaxCalculator:
    """
    Pure slab arithmetic over an already loaded configuration.
    """

    def __init__(
        self,
        brackets: List[TaxBracket],
        total_exemptions: Decimal = ZERO,
        threshold: Optional[Decimal] = None,
    ):
        self.brackets = sorted(brackets, key=lambda b: b.income_from)
        self.total_exemptions = total_exemptions
        self.threshold = threshold

    def find_bracket(self, taxable_income: Decimal) -> Optional[TaxBracket]:
        """Lowest-floor bracket covering the income."""
        for bracket in self.brackets:
            if bracket.covers(taxable_income):
                return bracket
        return None

    def calculate(self, gross_earnings: Decimal) -> TaxResult:
        gross_earnings = to_decimal(gross_earnings)

        if self.threshold is not None and gross_earnings <= self.threshold:
            return TaxResult(tax_amount=ZERO, breakdown=None)

        taxable_income = max(ZERO, gross_earnings - self.total_exemptions)
        bracket = self.find_bracket(taxable_income)

        breakdown = {
            "gross_earnings": str(round_currency(gross_earnings)),
            "exemptions": str(round_currency(self.total_exemptions)),
            "taxable_income": str(round_currency(taxable_income)),
            "minimum_tax_threshold": str(round_currency(self.threshold)) if self.threshold is not None else None,
        }

        if bracket is None:
            gap = ConfigurationGapException(round_currency(taxable_income))
            logger.warning(f"Tax configuration gap: {gap.message}", extra={"details": gap.details})
            breakdown.update({
                "slab_id": None,
                "slab_title": None,
                "fixed_amount": "0.00",
                "percentage": "0.00",
                "tax_amount": "0.00",
                "configuration_gap": True,
            })
            return TaxResult(tax_amount=ZERO, breakdown=breakdown)

        tax_amount = bracket.calculate_tax(taxable_income)
        breakdown.update({
            "slab_id": str(bracket.slab_id) if bracket.slab_id is not None else None,
            "slab_title": bracket.title,
            "income_from": str(bracket.income_from),
            "income_to": str(bracket.income_to),
            "fixed_amount": str(bracket.fixed_amount),
            "percentage": str(bracket.percentage),
            "tax_amount": str(round_currency(tax_amount)),
            "configuration_gap": False,
        })
        return TaxResult(tax_amount=tax_amount, breakdown=breakdown)


class SlabTaxService:
    """
    Loads tax configuration and computes tax for salary slips.

    Configuration is read fresh on every call so edits apply to the next
    slip generated.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def active_brackets(self) -> List[TaxBracket]:
        result = await self.db.execute(
            select(TaxSlab)
            .where(TaxSlab.is_active == True)
            .order_by(TaxSlab.income_from, TaxSlab.id)
        )
        return [
            TaxBracket(
                slab_id=slab.id,
                title=slab.title,
                income_from=slab.income_from,
                income_to=slab.income_to,
                fixed_amount=slab.fixed_amount,
                percentage=slab.percentage,
            )
            for slab in result.scalars().all()
        ]

    async def total_exemptions(self) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(TaxExemption.exemption_amount), 0))
            .where(TaxExemption.is_active == True)
        )
        return to_decimal(result.scalar())

    async def minimum_threshold(self) -> Optional[Decimal]:
        """Threshold of the most recently created active limit, if any."""
        result = await self.db.execute(
            select(MinimumTaxLimit)
            .where(MinimumTaxLimit.is_active == True)
            .order_by(MinimumTaxLimit.created_at.desc(), MinimumTaxLimit.id.desc())
            .limit(1)
        )
        limit = result.scalar_one_or_none()
        return limit.threshold_amount if limit else None

    async def build_calculator(self) -> SlabTaxCalculator:
        return SlabTaxCalculator(
            brackets=await self.active_brackets(),
            total_exemptions=await self.total_exemptions(),
            threshold=await self.minimum_threshold(),
        )

    async def compute_tax(self, gross_earnings: Decimal) -> TaxResult:
        """Tax owed on gross earnings under the current configuration."""
        calculator = await self.build_calculator()
        return calculator.calculate(gross_earnings)
