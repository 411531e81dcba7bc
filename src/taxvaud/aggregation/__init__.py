"""Aggregation of extraction outcomes into a fiscal profile."""

from .fiscal_aggregator import FiscalProfile, Identity, SourceRecord, aggregate, export_source_ledger

__all__ = ["FiscalProfile", "Identity", "SourceRecord", "aggregate", "export_source_ledger"]
