"""Keyword-anchored amount location in text and spreadsheet rows."""

from .amount_locator import normalize_amount, locate_in_text, locate_in_table

__all__ = ["normalize_amount", "locate_in_text", "locate_in_table"]
