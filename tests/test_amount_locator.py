"""
Tests for amount normalization and the keyword-anchored locators.
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from taxvaud.locators.amount_locator import (
    find_monetary_figures,
    locate_in_table,
    locate_in_text,
    normalize_amount,
)


class TestNormalizeAmount:
    """Test cases for normalize_amount."""

    def test_apostrophe_thousands(self):
        """Test apostrophe as thousands separator."""
        assert normalize_amount("10'000.50") == Decimal("10000.50")

    def test_right_single_quote_thousands(self):
        """Test typographic apostrophe as thousands separator."""
        assert normalize_amount("10’000.50") == Decimal("10000.50")

    def test_space_thousands_comma_decimal(self):
        """Test space grouping with a comma decimal separator."""
        assert normalize_amount("10 000,50") == Decimal("10000.50")

    def test_non_breaking_space_thousands(self):
        """Test non-breaking space grouping."""
        assert normalize_amount("1\u00a0250.00") == Decimal("1250.00")

    def test_empty_and_missing(self):
        """Test empty string and None give zero."""
        assert normalize_amount("") == 0
        assert normalize_amount(None) == 0

    def test_malformed(self):
        """Test text without a number gives zero."""
        assert normalize_amount("abc") == 0
        assert normalize_amount("-") == 0
        assert normalize_amount(".") == 0

    def test_leading_number_kept(self):
        """Test trailing text after the number is ignored."""
        assert normalize_amount("12.50 CHF") == Decimal("12.50")

    def test_numeric_input(self):
        """Test numbers are stringified before parsing."""
        assert normalize_amount(1200) == Decimal("1200")

    def test_result_is_decimal(self):
        """Test amounts are exact decimals."""
        assert isinstance(normalize_amount("0.10"), Decimal)

    def test_out_of_range_exponent(self):
        """Test amounts beyond float range give zero."""
        assert normalize_amount("1e1000000") == 0
        assert normalize_amount("1e400") == 0
        assert normalize_amount("1e3") == Decimal("1E+3")
        assert normalize_amount("0.10") + normalize_amount("0.20") == Decimal("0.30")


class TestLocateInText:
    """Test cases for locate_in_text."""

    PAYSLIP = "Décompte de salaire\nSalaire net: 5'432.10\nAVS 5.30 %"

    def test_keyword_followed_by_amount(self):
        """Test a figure right after the keyword is returned."""
        assert locate_in_text(self.PAYSLIP, ["salaire net"]) == Decimal("5432.10")

    def test_missing_keyword(self):
        """Test a keyword absent from the text gives zero."""
        assert locate_in_text(self.PAYSLIP, ["inexistant"]) == 0

    def test_line_fallback_takes_last_figure(self):
        """Test the last figure of the keyword line wins."""
        text = "Salaire brut 6000.00 Salaire net 5000.00"
        assert locate_in_text(text, ["salaire"]) == Decimal("5000.00")

    def test_keyword_order_wins_over_text_order(self):
        """Test the first keyword of the set is tried first."""
        text = "Total net 4000.00\nSalaire net 3900.00"
        assert locate_in_text(text, ["salaire net", "total net"]) == Decimal("3900.00")

    def test_next_keyword_when_first_missing(self):
        """Test the search moves on to the next keyword."""
        text = "Revenu net 7'250.00"
        assert locate_in_text(text, ["salaire net", "revenu net"]) == Decimal("7250.00")

    def test_amount_on_next_line(self):
        """Test a figure on the line after the keyword."""
        text = "Salaire net\n5'100.00"
        assert locate_in_text(text, ["salaire net"]) == Decimal("5100.00")

    def test_case_insensitive(self):
        """Test keyword matching ignores case."""
        assert locate_in_text("SALAIRE NET 1'000.00", ["salaire net"]) == Decimal("1000.00")

    def test_keyword_line_without_figure(self):
        """Test a keyword line without figures does not match."""
        text = "Revenu net\nAutre ligne 12.00"
        assert locate_in_text(text, ["revenu net"]) == 0

    def test_comma_decimals(self):
        """Test comma decimal separator in text."""
        assert locate_in_text("Frais de transport : 1 200,00", ["frais de transport"]) == Decimal("1200.00")


class TestFindMonetaryFigures:
    """Test cases for find_monetary_figures."""

    def test_figures_in_order(self):
        """Test every figure of a line is found, left to right."""
        assert find_monetary_figures("Brut 6'000.00 net 5 000.00") == ["6'000.00", "5 000.00"]

    def test_short_numbers_ignored(self):
        """Test one-digit numbers are not monetary figures."""
        assert find_monetary_figures("Page 1 de 2") == []


class TestLocateInTable:
    """Test cases for locate_in_table."""

    def test_value_two_cells_right(self):
        """Test a value at offset +2 after an empty cell."""
        rows = [["Libellé", "Montant"], ["Dividende", "", "1200.00"]]
        assert locate_in_table(rows, ["dividende"]) == Decimal("1200.00")

    def test_numeric_cell_returned(self):
        """Test numeric cells are returned directly."""
        rows = [["Solde du compte", 15000.5]]
        assert locate_in_table(rows, ["solde"]) == Decimal("15000.5")

    def test_continues_after_unusable_row(self):
        """Test the scan continues when a keyword row has no amount."""
        rows = [["Dividende", "n/a"], ["Dividende 2023", None, 300]]
        assert locate_in_table(rows, ["dividende"]) == Decimal("300")

    def test_zero_numeric_cell_skipped(self):
        """Test a zero cell is treated as empty."""
        rows = [["Gain", 0, 250]]
        assert locate_in_table(rows, ["gain"]) == Decimal("250")

    def test_only_three_adjacent_cells(self):
        """Test cells beyond offset +3 are ignored."""
        rows = [["Bonus", "", "", "", "500.00"]]
        assert locate_in_table(rows, ["bonus"]) == 0

    def test_keyword_not_found(self):
        """Test rows without any keyword give zero."""
        rows = [["Loyer", "1800.00"]]
        assert locate_in_table(rows, ["dividende", "bonus"]) == 0

    def test_case_insensitive_substring(self):
        """Test keywords match inside longer, upper-case labels."""
        rows = [["TOTAL DES TITRES", "", "84'500.00"]]
        assert locate_in_table(rows, ["titre"]) == Decimal("84500.00")

    def test_empty_rows(self):
        """Test an empty table gives zero."""
        assert locate_in_table([], ["dividende"]) == 0

    def test_non_finite_numeric_cell_skipped(self):
        """Test infinite numeric cells hold no amount."""
        rows = [["Solde", float("inf"), 700]]
        assert locate_in_table(rows, ["solde"]) == Decimal("700")
        assert locate_in_table([["Solde", float("-inf")]], ["solde"]) == 0

    def test_out_of_range_text_cell_skipped(self):
        """Test text cells beyond float range hold no amount."""
        rows = [["Dividende", "1e1000000"]]
        assert locate_in_table(rows, ["dividende"]) == 0
