"""
TaxVaud: document extraction and fiscal aggregation engine

Reads salary slips, bank and securities statements and scanned receipts,
locates the amounts a tax declaration needs, aggregates them across documents
and estimates the income and wealth tax due.
"""

__version__ = "1.0.0"
__author__ = "TaxVaud Team"

from .locators.amount_locator import normalize_amount, locate_in_text, locate_in_table
from .strategies.document_strategies import DocumentKind, DocumentStrategyDispatcher
from .pipeline.batch_extractor import BatchExtractionPipeline, DocumentInput, ExtractionFailure, ExtractionSuccess
from .aggregation.fiscal_aggregator import FiscalProfile, Identity, SourceRecord, aggregate
from .taxation.tax_calculator import ProgressiveTaxCalculator, TaxResult, compute_tax

__all__ = [
    "normalize_amount",
    "locate_in_text",
    "locate_in_table",
    "DocumentKind",
    "DocumentStrategyDispatcher",
    "BatchExtractionPipeline",
    "DocumentInput",
    "ExtractionFailure",
    "ExtractionSuccess",
    "FiscalProfile",
    "Identity",
    "SourceRecord",
    "aggregate",
    "ProgressiveTaxCalculator",
    "TaxResult",
    "compute_tax"
]
