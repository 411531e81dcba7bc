"""
Progressive income and wealth tax estimate.

The figures are a simplified cantonal estimate, not a compliant computation:
income is taxed by marginal brackets, securities above an exemption threshold
at a flat rate, and the total is floored to a whole franc.
"""

import math
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class TaxBracket:
    """Income range [lower, upper) taxed at a marginal rate; upper None is open."""

    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal

    def taxable_portion(self, amount: Decimal) -> Decimal:
        """Part of amount that falls inside this bracket."""
        if amount <= self.lower:
            return ZERO
        if self.upper is None:
            return amount - self.lower
        return min(amount, self.upper) - self.lower


DEFAULT_BRACKETS = (
    TaxBracket(Decimal("0"), Decimal("20000"), Decimal("0.05")),
    TaxBracket(Decimal("20000"), Decimal("50000"), Decimal("0.10")),
    TaxBracket(Decimal("50000"), None, Decimal("0.15")),
)
WEALTH_EXEMPTION = Decimal("50000")
WEALTH_RATE = Decimal("0.001")


@dataclass
class TaxResult:
    """Tax estimate for one fiscal profile."""

    taxable_income: Decimal
    tax_on_income: Decimal
    taxable_wealth: Decimal
    tax_on_wealth: Decimal
    total_tax: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'taxable_income': float(self.taxable_income),
            'tax_on_income': float(self.tax_on_income),
            'taxable_wealth': float(self.taxable_wealth),
            'tax_on_wealth': float(self.tax_on_wealth),
            'total_tax': self.total_tax
        }


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


class ProgressiveTaxCalculator:
    """
    Calculator for the income and wealth tax estimate.

    The bracket table must start at 0, be ascending and gap-free, and end
    with an open bracket.
    """

    def __init__(
        self,
        brackets: Sequence[TaxBracket] = DEFAULT_BRACKETS,
        wealth_exemption: Decimal = WEALTH_EXEMPTION,
        wealth_rate: Decimal = WEALTH_RATE
    ):
        """
        Initialize the calculator.

        Args:
            brackets: Marginal income tax brackets
            wealth_exemption: Securities value exempt from wealth tax
            wealth_rate: Flat rate applied above the exemption
        """
        self._validate_brackets(brackets)
        self.brackets = tuple(brackets)
        self.wealth_exemption = _as_decimal(wealth_exemption)
        self.wealth_rate = _as_decimal(wealth_rate)

    @staticmethod
    def _validate_brackets(brackets: Sequence[TaxBracket]):
        if not brackets:
            raise ValueError("At least one tax bracket is required")
        if brackets[0].lower != 0:
            raise ValueError("The first tax bracket must start at 0")
        if brackets[-1].upper is not None:
            raise ValueError("The last tax bracket must be open-ended")

        for current, following in zip(brackets, brackets[1:]):
            if current.upper is None or current.upper != following.lower:
                raise ValueError(f"Tax brackets must be contiguous: {current} -> {following}")
            if current.upper <= current.lower:
                raise ValueError(f"Tax bracket is empty or descending: {current}")

    def taxable_income(self, profile: Any) -> Decimal:
        income = _as_decimal(profile.salary) + _as_decimal(profile.other_income)
        deductions = (
            _as_decimal(profile.professional_expenses)
            + _as_decimal(profile.insurance_premiums)
            + _as_decimal(profile.charitable_donations)
        )
        return max(ZERO, income - deductions)

    def income_tax(self, taxable_income: Decimal) -> Decimal:
        """Sum of each bracket's rate times the income falling inside it."""
        taxable_income = _as_decimal(taxable_income)
        return sum(
            (bracket.rate * bracket.taxable_portion(taxable_income) for bracket in self.brackets),
            ZERO
        )

    def taxable_wealth(self, securities_value: Decimal) -> Decimal:
        return max(ZERO, _as_decimal(securities_value) - self.wealth_exemption)

    def compute_tax(self, profile: Any) -> TaxResult:
        """
        Compute the tax estimate of a fiscal profile.

        Args:
            profile: FiscalProfile (or any object with the six total attributes)

        Returns:
            TaxResult with the total floored to a whole unit
        """
        taxable_income = self.taxable_income(profile)
        tax_on_income = self.income_tax(taxable_income)
        taxable_wealth = self.taxable_wealth(profile.securities_value)
        tax_on_wealth = taxable_wealth * self.wealth_rate

        total_tax = math.floor(tax_on_income + tax_on_wealth)

        logger.info(f"Taxable income {taxable_income}, taxable wealth {taxable_wealth}, estimated tax {total_tax}")
        return TaxResult(
            taxable_income=taxable_income,
            tax_on_income=tax_on_income,
            taxable_wealth=taxable_wealth,
            tax_on_wealth=tax_on_wealth,
            total_tax=total_tax
        )


_default_calculator = ProgressiveTaxCalculator()


def compute_tax(profile: Any) -> TaxResult:
    """Compute the tax estimate of a profile with the default brackets."""
    return _default_calculator.compute_tax(profile)
