"""
Batch extraction pipeline.

This module runs the per-kind extraction strategies over an ordered list of
documents:
1. Decoding (through an injected decoder, when one is supplied)
2. Keyword-anchored field location
3. Conversion of any per-document fault into a failure outcome

Documents are processed one after the other; OCR and PDF decoding are heavy
enough that running them in parallel would exhaust a modest machine.
"""

import time
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from ..aggregation.fiscal_aggregator import FiscalProfile, Identity, aggregate
from ..strategies.document_strategies import DocumentKind, DocumentStrategyDispatcher

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class DocumentInput:
    """A document handed to the pipeline."""

    name: str
    kind: Union[DocumentKind, str]
    content: Any = None  # page text, or rows for spreadsheets
    path: Optional[str] = None


@dataclass
class ExtractionSuccess:
    """Fields extracted from one document."""

    source_name: str
    kind: Union[DocumentKind, str]
    fields: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return True


@dataclass
class ExtractionFailure:
    """A document whose decoding or extraction raised."""

    source_name: str
    kind: Union[DocumentKind, str]
    error_message: str

    @property
    def succeeded(self) -> bool:
        return False


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


class BatchExtractionPipeline:
    """
    Sequential extraction over a batch of documents.

    One outcome is produced per document, in input order. A document that
    fails never aborts the batch: its fault is recorded in an
    ExtractionFailure and the next document is processed.
    """

    def __init__(
        self,
        dispatcher: Optional[DocumentStrategyDispatcher] = None,
        decoder: Optional[Any] = None
    ):
        """
        Initialize the BatchExtractionPipeline.

        Args:
            dispatcher: Strategy dispatcher (defaults to the built-in keyword sets)
            decoder: Object with a decode(document) method turning a
                DocumentInput into text or rows. Without one, documents must
                carry already decoded content.
        """
        self.dispatcher = dispatcher or DocumentStrategyDispatcher()
        self.decoder = decoder

    def _decode(self, document: DocumentInput, decoder: Optional[Any]) -> Any:
        if decoder is None:
            return document.content
        return decoder.decode(document)

    def process_document(self, document: DocumentInput, decoder: Optional[Any] = None) -> ExtractionOutcome:
        """
        Decode and extract a single document.

        Args:
            document: Document to process
            decoder: Decoder for this call (defaults to the pipeline's decoder)

        Returns:
            ExtractionSuccess, or ExtractionFailure if anything raised
        """
        start_time = time.time()
        decoder = decoder if decoder is not None else self.decoder

        try:
            content = self._decode(document, decoder)
            fields = self.dispatcher.extract_fields(document.kind, content)
        except Exception as e:
            logger.error(f"Failed to extract {document.name}: {e}")
            return ExtractionFailure(
                source_name=document.name,
                kind=document.kind,
                error_message=str(e) or type(e).__name__
            )

        processing_time = time.time() - start_time
        logger.info(f"Extracted {len(fields)} fields from {document.name} in {processing_time:.2f} seconds")
        return ExtractionSuccess(source_name=document.name, kind=document.kind, fields=fields)

    def iter_outcomes(
        self,
        documents: Iterable[DocumentInput],
        progress_callback: Optional[ProgressCallback] = None,
        decoder: Optional[Any] = None
    ) -> Iterator[ExtractionOutcome]:
        """
        Yield one outcome per document, in input order.

        The next document is only decoded once the caller asks for its
        outcome, so a batch can be abandoned between documents.

        Args:
            documents: Documents to process
            progress_callback: Called with (index, total, name) before each document
            decoder: Decoder for this run (defaults to the pipeline's decoder)
        """
        documents = list(documents)
        total = len(documents)

        for i, document in enumerate(documents):
            logger.info(f"Processing document {i+1}/{total}: {document.name}")
            if progress_callback:
                progress_callback(i, total, document.name)
            yield self.process_document(document, decoder=decoder)

    def run(
        self,
        documents: Iterable[DocumentInput],
        progress_callback: Optional[ProgressCallback] = None,
        decoder: Optional[Any] = None
    ) -> List[ExtractionOutcome]:
        """
        Process every document of a batch.

        Args:
            documents: Documents to process
            progress_callback: Called with (index, total, name) before each document
            decoder: Decoder for this run (defaults to the pipeline's decoder)

        Returns:
            List of outcomes, one per document
        """
        outcomes = list(self.iter_outcomes(documents, progress_callback, decoder))

        failures = sum(1 for outcome in outcomes if not outcome.succeeded)
        if failures:
            logger.warning(f"{failures}/{len(outcomes)} documents could not be extracted")

        return outcomes

    def extract_profile(
        self,
        documents: Iterable[DocumentInput],
        identity: Optional[Identity] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> FiscalProfile:
        """
        Run the batch and aggregate its outcomes into a fiscal profile.

        Args:
            documents: Documents to process
            identity: Identity of the declarant
            progress_callback: Called with (index, total, name) before each document

        Returns:
            FiscalProfile
        """
        return aggregate(self.run(documents, progress_callback), identity)
