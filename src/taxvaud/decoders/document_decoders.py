"""
Decoders turning uploaded files into the content the extraction engine reads.

This module covers what happens before extraction:
1. Upload admission (supported type, size limit, readable image)
2. Document kind detection from the file extension
3. Decoding: PDF page text, spreadsheet rows, OCR text of images
"""

import os
import math
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import pdfplumber
from PIL import Image, UnidentifiedImageError

from ..pipeline.batch_extractor import DocumentInput
from ..strategies.document_strategies import DocumentKind
from .ocr_processors import BaseOCRProcessor, OCRProcessorFactory, preprocess_image

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB

# Legacy .xls workbooks need xlrd, openpyxl only reads OOXML
EXCEL_ENGINES: Dict[str, str] = {
    '.xlsx': 'openpyxl',
    '.xls': 'xlrd',
}

EXTENSION_KINDS: Dict[str, DocumentKind] = {
    '.pdf': DocumentKind.TEXT,
    '.xlsx': DocumentKind.TABULAR,
    '.xls': DocumentKind.TABULAR,
    '.jpg': DocumentKind.SCANNED,
    '.jpeg': DocumentKind.SCANNED,
    '.png': DocumentKind.SCANNED,
}


class DocumentAdmissionError(ValueError):
    """Raised when an uploaded file cannot be accepted for extraction."""


def detect_document_kind(path: Union[str, Path]) -> DocumentKind:
    """
    Document kind of a file, from its extension.

    Raises:
        DocumentAdmissionError: If the file type is not supported
    """
    extension = Path(path).suffix.lower()
    if extension not in EXTENSION_KINDS:
        raise DocumentAdmissionError(
            f"Unsupported file type '{extension or Path(path).name}'. Use PDF, JPG, PNG or Excel."
        )
    return EXTENSION_KINDS[extension]


def validate_upload(path: Union[str, Path], max_size: int = MAX_FILE_SIZE) -> DocumentKind:
    """
    Check that a file can be submitted for extraction.

    Args:
        path: Path to the uploaded file
        max_size: Maximum file size in bytes

    Returns:
        Detected document kind

    Raises:
        DocumentAdmissionError: If the file is missing, unsupported, too
            large, or an image that cannot be opened
    """
    path = Path(path)
    if not path.is_file():
        raise DocumentAdmissionError(f"File not found: {path}")

    kind = detect_document_kind(path)

    size = os.path.getsize(path)
    if size > max_size:
        raise DocumentAdmissionError(
            f"File too large: {size / (1024 * 1024):.1f} MB (max {max_size / (1024 * 1024):.0f} MB)"
        )

    if kind is DocumentKind.SCANNED:
        try:
            with Image.open(path) as image:
                image.verify()
        except (UnidentifiedImageError, OSError) as e:
            raise DocumentAdmissionError(f"Unreadable image {path.name}: {e}") from e

    return kind


def load_documents(
    paths: Sequence[Union[str, Path]],
    max_size: int = MAX_FILE_SIZE
) -> Tuple[List[DocumentInput], List[Tuple[str, str]]]:
    """
    Admit a list of files as pipeline documents.

    Rejected files are reported rather than raised, so one bad upload does
    not block the others.

    Args:
        paths: Uploaded file paths
        max_size: Maximum file size in bytes

    Returns:
        (documents, rejected) where rejected holds (file name, reason) pairs
    """
    documents = []
    rejected = []

    for path in paths:
        path = Path(path)
        try:
            kind = validate_upload(path, max_size=max_size)
        except DocumentAdmissionError as e:
            logger.warning(f"Rejected {path.name}: {e}")
            rejected.append((path.name, str(e)))
            continue
        documents.append(DocumentInput(name=path.name, kind=kind, path=str(path)))

    return documents, rejected


def extract_pdf_text(path: Union[str, Path]) -> str:
    """Text of every PDF page, pages separated by newlines."""
    with pdfplumber.open(path) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]

    text = "\n".join(pages)
    logger.info(f"Extracted {len(text)} characters from {len(pages)} PDF pages")
    return text


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def read_spreadsheet_rows(path: Union[str, Path]) -> List[List[Any]]:
    """
    Rows of the first sheet of a workbook.

    Empty cells become None and fully empty rows are dropped. Numbers stay
    numbers, so the row locator can tell them from text.
    """
    engine = EXCEL_ENGINES.get(Path(path).suffix.lower())
    df = pd.read_excel(path, sheet_name=0, header=None, dtype=object, engine=engine)
    df = df.dropna(how='all')

    rows = [[_clean_cell(value) for value in row] for row in df.itertuples(index=False, name=None)]
    logger.info(f"Read {len(rows)} rows from {Path(path).name}")
    return rows


class FileDocumentDecoder:
    """
    Decoder reading documents from their file path.

    Documents that already carry content are passed through untouched. The
    OCR engine is created lazily, on the first scanned document, and belongs
    to this decoder only.
    """

    def __init__(
        self,
        ocr_processor: Optional[BaseOCRProcessor] = None,
        nvidia_api_key: Optional[str] = None,
        preprocess: bool = False
    ):
        """
        Initialize the decoder.

        Args:
            ocr_processor: OCR engine for scanned documents
            nvidia_api_key: NVIDIA API key, used when no OCR engine is given
            preprocess: Whether to clean images with OpenCV before OCR
        """
        self._ocr = ocr_processor
        self.nvidia_api_key = nvidia_api_key
        self.preprocess = preprocess

    @property
    def ocr(self) -> BaseOCRProcessor:
        if self._ocr is None:
            self._ocr = OCRProcessorFactory.create_with_fallback(nvidia_api_key=self.nvidia_api_key)
            logger.info(f"Initialized OCR processor: {type(self._ocr).__name__}")
        return self._ocr

    def decode(self, document: DocumentInput) -> Any:
        """
        Decoded content of a document.

        Args:
            document: Document with content or a path

        Returns:
            Text for text/scanned documents, rows for tabular ones
        """
        if document.content is not None:
            return document.content

        try:
            kind = DocumentKind(document.kind)
        except ValueError:
            # Nothing to extract from an unknown kind
            return None

        if not document.path:
            raise ValueError(f"Document {document.name} has neither content nor path")

        if kind is DocumentKind.TEXT:
            return extract_pdf_text(document.path)
        if kind is DocumentKind.TABULAR:
            return read_spreadsheet_rows(document.path)
        return self._recognize(document.path)

    def _recognize(self, image_path: str) -> str:
        if self.preprocess:
            image_path = preprocess_image(image_path)

        lines = self.ocr.extract_text_with_confidence(image_path)
        text = '\n'.join(line['text'] for line in lines)
        ocr_confidence = float(np.mean([line['confidence'] for line in lines])) if lines else 0.0

        logger.info(f"Extracted {len(text)} characters with OCR confidence: {ocr_confidence:.3f}")
        return text
