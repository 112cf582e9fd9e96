"""
HRMS Payroll - Tax Calculators Package

Tax calculation services for salary slips.

Modules:
- slab_tax_service: progressive slab tax with exemptions and a minimum
  taxable threshold
"""

from decimal import Decimal

from app.services.tax_calculators.slab_tax_service import (
    SlabTaxCalculator,
    SlabTaxService,
    TaxBracket,
    TaxResult,
)


# ===========================================
# CONVENIENCE FUNCTIONS
# ===========================================

def calculate_slab_tax(gross_earnings: Decimal, brackets, total_exemptions: Decimal = Decimal("0"), threshold=None) -> Decimal:
    """
    Calculate tax for a gross amount against an in-memory slab table.

    Args:
        gross_earnings: Gross monthly earnings
        brackets: TaxBracket definitions
        total_exemptions: Sum of active exemptions
        threshold: Minimum taxable gross, if configured

    Returns:
        Tax amount (unrounded)
    """
    calculator = SlabTaxCalculator(brackets, total_exemptions=total_exemptions, threshold=threshold)
    return calculator.calculate(gross_earnings).tax_amount


__all__ = [
    "SlabTaxCalculator",
    "SlabTaxService",
    "TaxBracket",
    "TaxResult",
    "calculate_slab_tax",
]
