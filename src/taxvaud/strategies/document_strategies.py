"""
Per-kind extraction strategies for decoded documents.

Each document kind is trusted to populate exactly two fiscal fields. This
module holds that binding (field name plus the keyword set searched for it)
and dispatches a decoded document to the matching locator.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..locators.amount_locator import locate_in_table, locate_in_text

logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    """Kind of decoded content a document provides."""

    TEXT = "text"          # PDF page text
    TABULAR = "tabular"    # spreadsheet rows
    SCANNED = "scanned"    # OCR text of an image


# Fiscal fields, in declaration order
FISCAL_FIELDS = (
    "salary",
    "other_income",
    "professional_expenses",
    "insurance_premiums",
    "securities_value",
    "charitable_donations",
)

SALARY_KEYWORDS = ("salaire net", "net salaire", "salaire", "total net", "revenu net")
EXPENSE_KEYWORDS = ("frais de transport", "déduction", "frais professionnels", "repas", "transport")
OTHER_INCOME_KEYWORDS = ("dividende", "accessoire", "autre revenu", "bonus", "gain")
SECURITIES_KEYWORDS = ("titre", "fortune", "action", "compte", "solde", "valeur")
INSURANCE_KEYWORDS = ("prime", "assurances", "maladie", "lamal", "helsana", "swica", "groupe mutuel")
DONATION_KEYWORDS = ("don", "bienfaisance", "caritatif", "fondation", "attestation")


@dataclass(frozen=True)
class FieldStrategy:
    """A fiscal field and the ordered keyword set used to find it."""

    field_name: str
    keywords: Tuple[str, ...]


DEFAULT_STRATEGIES: Dict[DocumentKind, Tuple[FieldStrategy, FieldStrategy]] = {
    DocumentKind.TEXT: (
        FieldStrategy("salary", SALARY_KEYWORDS),
        FieldStrategy("professional_expenses", EXPENSE_KEYWORDS),
    ),
    DocumentKind.TABULAR: (
        FieldStrategy("other_income", OTHER_INCOME_KEYWORDS),
        FieldStrategy("securities_value", SECURITIES_KEYWORDS),
    ),
    DocumentKind.SCANNED: (
        FieldStrategy("insurance_premiums", INSURANCE_KEYWORDS),
        FieldStrategy("charitable_donations", DONATION_KEYWORDS),
    ),
}


class DocumentStrategyDispatcher:
    """
    Dispatcher from document kind to keyword searches.

    Text and scanned documents are searched with the text locator, tabular
    documents with the row locator. Kinds without a strategy produce no
    fields at all.
    """

    def __init__(self, strategies: Optional[Mapping[Any, Sequence[FieldStrategy]]] = None):
        """
        Initialize the dispatcher.

        Args:
            strategies: Mapping of document kind to its field strategies
                (defaults to DEFAULT_STRATEGIES)
        """
        self.strategies = self._validate_strategies(DEFAULT_STRATEGIES if strategies is None else strategies)

    @staticmethod
    def _validate_strategies(strategies: Mapping[Any, Sequence[FieldStrategy]]) -> Dict[DocumentKind, Tuple[FieldStrategy, ...]]:
        validated = {}
        for kind, field_strategies in strategies.items():
            kind = DocumentKind(kind)
            field_names = [strategy.field_name for strategy in field_strategies]

            unknown = [name for name in field_names if name not in FISCAL_FIELDS]
            if unknown:
                raise ValueError(f"Unknown fiscal fields for {kind.value}: {', '.join(unknown)}")
            if len(set(field_names)) != len(field_names):
                raise ValueError(f"Duplicate fiscal fields for {kind.value}")

            validated[kind] = tuple(field_strategies)

        # Every field may be populated by one kind only
        claimed = [s.field_name for kind_strategies in validated.values() for s in kind_strategies]
        if len(set(claimed)) != len(claimed):
            raise ValueError("A fiscal field is bound to more than one document kind")

        return validated

    @classmethod
    def load_strategies(cls, path: Union[str, Path]) -> "DocumentStrategyDispatcher":
        """
        Create a dispatcher from a JSON strategies file.

        The file maps each kind to an object of field name -> keyword list,
        e.g. {"text": {"salary": ["salaire net"], ...}, ...}.

        Args:
            path: Path to the JSON file

        Returns:
            DocumentStrategyDispatcher using the loaded strategies
        """
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)

        if not isinstance(raw, dict):
            raise ValueError(f"Expected a JSON object in {path}")

        strategies = {}
        for kind, fields in raw.items():
            if not isinstance(fields, dict):
                raise ValueError(f"Expected field mapping for kind '{kind}' in {path}")
            strategies[kind] = tuple(
                FieldStrategy(field_name, tuple(str(k) for k in keywords))
                for field_name, keywords in fields.items()
            )

        logger.info(f"Loaded extraction strategies from {path}")
        return cls(strategies)

    def fields_for(self, kind: Any) -> List[str]:
        """Field names a document kind populates (empty for unknown kinds)."""
        strategies = self._strategies_for(kind)
        return [strategy.field_name for strategy in strategies]

    def _strategies_for(self, kind: Any) -> Tuple[FieldStrategy, ...]:
        try:
            return self.strategies.get(DocumentKind(kind), ())
        except ValueError:
            return ()

    def extract_fields(self, kind: Any, content: Any) -> Dict[str, Decimal]:
        """
        Run the kind's keyword searches over decoded content.

        Args:
            kind: Document kind
            content: Page text for text/scanned kinds, rows for tabular

        Returns:
            Mapping of field name to amount (empty for unknown kinds)

        Raises:
            TypeError: If the content does not have the shape the kind needs
        """
        strategies = self._strategies_for(kind)
        if not strategies:
            logger.warning(f"No extraction strategy for document kind: {kind}")
            return {}

        kind = DocumentKind(kind)
        if kind is DocumentKind.TABULAR:
            if content is None or isinstance(content, (str, bytes)):
                raise TypeError("Tabular documents require decoded rows")
            rows = [list(row) for row in content]
            return {
                strategy.field_name: locate_in_table(rows, strategy.keywords)
                for strategy in strategies
            }

        if not isinstance(content, str):
            raise TypeError(f"{kind.value.capitalize()} documents require decoded text")
        return {
            strategy.field_name: locate_in_text(content, strategy.keywords)
            for strategy in strategies
        }
