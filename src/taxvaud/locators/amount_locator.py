"""
Keyword-anchored amount locators for decoded financial documents.

This module implements the heuristics that find a monetary figure next to a
semantic keyword:
1. Swiss-formatted amount normalization (10'000.50, 10 000,50, ...)
2. Text search for PDF and OCR output
3. Row/column search for spreadsheet rows
"""

import math
import re
import logging
from decimal import Decimal, InvalidOperation
from numbers import Number
from typing import Any, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Apostrophe, right single quotation mark and any whitespace group thousands
_THOUSANDS_SEPARATORS = re.compile(r"['’\s]")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# A figure with two trailing decimals, e.g. 5'432.10 or 1 200,00.
# Spaces may group thousands but line breaks never do.
MONETARY_FIGURE = r"[0-9](?:['’]|[^\S\n]|[0-9])*[.,]?[0-9]{2}"
_MONETARY_FIGURE_RE = re.compile(MONETARY_FIGURE)

# Number of cells to the right of a keyword cell that may hold its value
ADJACENT_CELLS = 3


def _is_finite_amount(amount: Decimal) -> bool:
    """Whether an amount is finite and within the range of a float."""
    return amount.is_finite() and math.isfinite(float(amount))


def normalize_amount(raw: Any) -> Decimal:
    """
    Parse a Swiss-formatted amount string into a Decimal.

    Thousands separators are removed, the first comma becomes the decimal
    point and the longest leading numeric literal is kept, so "12.50 CHF"
    gives 12.50. Anything that is not a finite number within float range
    gives 0.

    Args:
        raw: Amount text (other values are stringified first)

    Returns:
        Parsed amount, or Decimal 0
    """
    if raw is None:
        return ZERO

    cleaned = _THOUSANDS_SEPARATORS.sub("", str(raw)).replace(",", ".", 1)
    match = _FLOAT_PREFIX.match(cleaned)
    if not match:
        return ZERO

    try:
        amount = Decimal(match.group())
    except InvalidOperation:
        return ZERO
    return amount if _is_finite_amount(amount) else ZERO


def find_monetary_figures(line: str) -> List[str]:
    """Return every monetary-shaped token of a line, left to right."""
    return _MONETARY_FIGURE_RE.findall(line)


def _anchored_pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(
        re.escape(keyword) + r"[^\w]*?(" + MONETARY_FIGURE + ")",
        re.IGNORECASE,
    )


def locate_in_text(text: str, keywords: Sequence[str]) -> Decimal:
    """
    Find the amount associated with the first matching keyword in free text.

    Each keyword is tried in order. A figure directly following the keyword
    (separated only by punctuation, spaces or line breaks) wins. Otherwise
    the first line containing the keyword contributes its last figure, since
    labels often precede a running total at the end of the line.

    Args:
        text: Decoded page or OCR text
        keywords: Ordered keyword phrases, most specific first

    Returns:
        Amount found, or Decimal 0 when no keyword matches
    """
    lines = text.split("\n")

    for keyword in keywords:
        match = _anchored_pattern(keyword).search(text)
        if match:
            logger.debug(f"Keyword '{keyword}' anchored figure {match.group(1)!r}")
            return normalize_amount(match.group(1))

        needle = keyword.lower()
        for line in lines:
            if needle not in line.lower():
                continue
            figures = find_monetary_figures(line)
            if figures:
                logger.debug(f"Keyword '{keyword}' matched line, last figure {figures[-1]!r}")
                return normalize_amount(figures[-1])

    return ZERO


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).lower()


def _is_empty_cell(cell: Any) -> bool:
    if cell is None or isinstance(cell, bool):
        return not cell
    if isinstance(cell, float) and math.isnan(cell):
        return True
    if isinstance(cell, Number):
        return cell == 0
    return cell == ""


def _cell_amount(cell: Any) -> Optional[Decimal]:
    """Amount held by a cell next to a keyword, or None if it holds none."""
    if _is_empty_cell(cell):
        return None
    if isinstance(cell, Number) and not isinstance(cell, bool):
        amount = cell if isinstance(cell, Decimal) else Decimal(str(cell))
        return amount if _is_finite_amount(amount) else None
    if isinstance(cell, str):
        parsed = normalize_amount(cell)
        if parsed > 0:
            return parsed
    return None


def locate_in_table(rows: Iterable[Sequence[Any]], keywords: Iterable[str]) -> Decimal:
    """
    Find the amount associated with any keyword in spreadsheet rows.

    In every row the first cell containing a keyword is located and the next
    three cells are inspected: a numeric cell is returned as is, a text cell
    is returned when it parses to a positive amount. Rows whose neighbours
    hold nothing usable are skipped and the scan goes on.

    Args:
        rows: Rows of heterogeneous cells (text, numbers or None)
        keywords: Keyword phrases, in any order

    Returns:
        Amount found, or Decimal 0 when every row is exhausted
    """
    needles = [keyword.lower() for keyword in keywords]

    for row_index, row in enumerate(rows):
        row = list(row)
        keyword_index = next(
            (
                index for index, cell in enumerate(row)
                if any(needle in _cell_text(cell) for needle in needles)
            ),
            None,
        )
        if keyword_index is None:
            continue

        for offset in range(1, ADJACENT_CELLS + 1):
            position = keyword_index + offset
            if position >= len(row):
                break
            amount = _cell_amount(row[position])
            if amount is not None:
                logger.debug(f"Row {row_index}: amount {amount} at column {position}")
                return amount

    return ZERO
