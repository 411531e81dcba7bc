"""Progressive income and wealth tax estimate."""

from .tax_calculator import ProgressiveTaxCalculator, TaxBracket, TaxResult, compute_tax

__all__ = ["ProgressiveTaxCalculator", "TaxBracket", "TaxResult", "compute_tax"]
