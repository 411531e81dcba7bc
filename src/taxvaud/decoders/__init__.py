"""File admission and decoding of PDFs, spreadsheets and scanned images."""

from .document_decoders import (
    DocumentAdmissionError,
    FileDocumentDecoder,
    detect_document_kind,
    load_documents,
    validate_upload,
)
from .ocr_processors import BaseOCRProcessor, NVIDIAOCRProcessor, PaddleOCRProcessor

__all__ = [
    "DocumentAdmissionError",
    "FileDocumentDecoder",
    "detect_document_kind",
    "load_documents",
    "validate_upload",
    "BaseOCRProcessor",
    "NVIDIAOCRProcessor",
    "PaddleOCRProcessor",
]
