"""
HRMS Payroll - Calculation Policy

Turns a configured component amount into money. Every component family
(benefits, incentives, bonuses, contributions, deductions) goes through
resolve_amount so the fixed/percentage rule lives in one place.

Amounts keep full Decimal precision through the pipeline; round_currency
is applied once, when a slip is persisted.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Union

from app.models.payroll import CalculationType


CURRENCY_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """Coerce numeric input to Decimal without float artefacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def resolve_amount(
    calculation_type: Union[CalculationType, str],
    amount: Union[Decimal, int, float, str],
    base_salary: Union[Decimal, int, float, str],
) -> Decimal:
    """
    Resolve a component amount against the employee's base salary.

    percentage -> amount / 100 * base_salary
    fixed      -> amount
    """
    calculation_type = CalculationType(calculation_type)
    amount = to_decimal(amount)
    if calculation_type == CalculationType.PERCENTAGE:
        return amount / HUNDRED * to_decimal(base_salary)
    return amount


def round_currency(amount: Union[Decimal, int, float, str]) -> Decimal:
    """Quantize to 2 decimal places with ROUND_HALF_UP."""
    return to_decimal(amount).quantize(CURRENCY_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class ResolvedLine:
    """
    One breakdown line: the configured rate and the amount it resolved to.

    computed_amount is unrounded until the line is serialized.
    """
    component_id: Any
    label: str
    calculation_type: str
    rate: Decimal
    computed_amount: Decimal
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for a slip breakdown; money becomes rounded decimal strings."""
        line = {
            "component_id": str(self.component_id) if self.component_id is not None else None,
            "label": self.label,
            "calculation_type": self.calculation_type,
            "rate": str(self.rate),
            "computed_amount": str(round_currency(self.computed_amount)),
        }
        for key, value in self.extra.items():
            line[key] = str(value) if isinstance(value, Decimal) else value
        return line

    @property
    def rounded_amount(self) -> Decimal:
        return round_currency(self.computed_amount)


def sum_rounded(lines, key: Optional[str] = None) -> Decimal:
    """
    Sum the rounded amounts of breakdown lines.

    Accepts ResolvedLine objects or serialized dicts; for dicts the amount
    is read from key (computed_amount by default).
    """
    total = ZERO
    for line in lines:
        if isinstance(line, ResolvedLine):
            total += line.rounded_amount
        else:
            total += to_decimal(line[key or "computed_amount"])
    return total
