"""
Fiscal aggregation of per-document extraction outcomes.

This module folds the outcomes of a batch into a single fiscal profile:
six running totals plus a source ledger recording, for every document, its
kind, whether anything was found and the error it raised, if any.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from ..strategies.document_strategies import FISCAL_FIELDS

logger = logging.getLogger(__name__)

DEFAULT_FIRST_NAME = "Déclarant"
DEFAULT_LAST_NAME = "Vaudois"


@dataclass(frozen=True)
class Identity:
    """Name of the declarant, supplied by the caller."""

    first_name: str = DEFAULT_FIRST_NAME
    last_name: str = DEFAULT_LAST_NAME

    @classmethod
    def from_email(cls, email: Optional[str]) -> "Identity":
        """Identity derived from a login e-mail: the local part becomes the first name."""
        local_part = (email or "").split("@")[0]
        return cls(first_name=local_part or DEFAULT_FIRST_NAME)


@dataclass
class SourceRecord:
    """Provenance of one document in the profile."""

    name: str
    kind: str
    found: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        record = {'name': self.name, 'kind': self.kind, 'found': self.found}
        if self.error is not None:
            record['error'] = self.error
        return record


@dataclass
class FiscalProfile:
    """Totals and source ledger of one extraction run."""

    salary: Decimal = Decimal("0")
    other_income: Decimal = Decimal("0")
    professional_expenses: Decimal = Decimal("0")
    insurance_premiums: Decimal = Decimal("0")
    securities_value: Decimal = Decimal("0")
    charitable_donations: Decimal = Decimal("0")
    first_name: str = DEFAULT_FIRST_NAME
    last_name: str = DEFAULT_LAST_NAME
    sources: List[SourceRecord] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """True when at least one document failed (partial extraction)."""
        return any(source.error is not None for source in self.sources)

    @property
    def total_income(self) -> Decimal:
        return self.salary + self.other_income

    @property
    def total_deductions(self) -> Decimal:
        return self.professional_expenses + self.insurance_premiums + self.charitable_donations

    def totals(self) -> Dict[str, Decimal]:
        return {name: getattr(self, name) for name in FISCAL_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation, amounts as floats, for JSON output or storage."""
        data: Dict[str, Any] = {name: float(amount) for name, amount in self.totals().items()}
        data['first_name'] = self.first_name
        data['last_name'] = self.last_name
        data['sources'] = [source.to_dict() for source in self.sources]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FiscalProfile":
        """Rebuild a profile from to_dict() output."""
        profile = cls(
            first_name=data.get('first_name', DEFAULT_FIRST_NAME),
            last_name=data.get('last_name', DEFAULT_LAST_NAME),
            sources=[
                SourceRecord(
                    name=source['name'],
                    kind=source.get('kind', 'unknown'),
                    found=bool(source.get('found', False)),
                    error=source.get('error')
                )
                for source in data.get('sources', [])
            ]
        )
        for name in FISCAL_FIELDS:
            setattr(profile, name, Decimal(str(data.get(name, 0) or 0)))
        return profile


def _kind_label(kind: Any) -> str:
    return getattr(kind, 'value', None) or str(kind)


def aggregate(outcomes: Iterable[Any], identity: Optional[Identity] = None) -> FiscalProfile:
    """
    Fold extraction outcomes into a fiscal profile.

    Failed documents add nothing to the totals but still get a ledger entry,
    so the ledger always has one record per outcome, in order.

    Args:
        outcomes: ExtractionSuccess / ExtractionFailure objects
        identity: Declarant identity (defaults to the placeholder identity)

    Returns:
        FiscalProfile
    """
    identity = identity or Identity()
    profile = FiscalProfile(first_name=identity.first_name, last_name=identity.last_name)

    for outcome in outcomes:
        kind = _kind_label(outcome.kind)

        if not outcome.succeeded:
            profile.sources.append(SourceRecord(
                name=outcome.source_name,
                kind=kind,
                found=False,
                error=outcome.error_message
            ))
            continue

        for field_name, amount in outcome.fields.items():
            if field_name not in FISCAL_FIELDS:
                logger.warning(f"Ignoring unknown field '{field_name}' from {outcome.source_name}")
                continue
            if not isinstance(amount, Decimal):
                amount = Decimal(str(amount))
            setattr(profile, field_name, getattr(profile, field_name) + amount)

        profile.sources.append(SourceRecord(
            name=outcome.source_name,
            kind=kind,
            found=any(amount > 0 for amount in outcome.fields.values())
        ))

    if not profile.sources:
        logger.warning("No documents to aggregate, profile is empty")
    elif profile.has_errors:
        logger.warning("Partial extraction: some documents could not be read")

    return profile


def export_source_ledger(profile: FiscalProfile, output_path: Union[str, Path]) -> Path:
    """
    Save the source ledger of a profile as CSV.

    Args:
        profile: Aggregated profile
        output_path: Destination CSV file

    Returns:
        Path of the written file
    """
    output_path = Path(output_path)
    df = pd.DataFrame(
        [
            {'name': s.name, 'kind': s.kind, 'found': s.found, 'error': s.error or ''}
            for s in profile.sources
        ],
        columns=['name', 'kind', 'found', 'error']
    )
    df.to_csv(output_path, index=False)

    logger.info(f"Source ledger saved to {output_path}")
    return output_path
