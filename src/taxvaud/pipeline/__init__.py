"""Batch extraction pipeline over decoded documents."""

from .batch_extractor import (
    BatchExtractionPipeline,
    DocumentInput,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
)

__all__ = [
    "BatchExtractionPipeline",
    "DocumentInput",
    "ExtractionFailure",
    "ExtractionOutcome",
    "ExtractionSuccess",
]
