#!/usr/bin/env python3
"""
Command-line interface for TaxVaud.

This module provides a command-line interface to extract fiscal figures from
a set of documents and to estimate the tax of a saved profile.
"""

import argparse
import sys
import json
import logging

from .aggregation.fiscal_aggregator import FiscalProfile, Identity, export_source_ledger
from .decoders.document_decoders import MAX_FILE_SIZE, FileDocumentDecoder, load_documents
from .decoders.ocr_processors import OCRProcessorFactory
from .pipeline.batch_extractor import BatchExtractionPipeline
from .strategies.document_strategies import DocumentStrategyDispatcher
from .taxation.tax_calculator import compute_tax

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _write_output(payload, output_path):
    if output_path:
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        print(f"Results saved to {output_path}")
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))


def _build_identity(args) -> Identity:
    if args.first_name or args.last_name:
        default = Identity()
        return Identity(
            first_name=args.first_name or default.first_name,
            last_name=args.last_name or default.last_name
        )
    return Identity.from_email(args.email)


def _build_decoder(args) -> FileDocumentDecoder:
    ocr_processor = None
    if args.ocr == "nvidia":
        ocr_processor = OCRProcessorFactory.create_processor("nvidia", api_key=args.nvidia_api_key)
    elif args.ocr == "paddle":
        ocr_processor = OCRProcessorFactory.create_processor("paddle")

    return FileDocumentDecoder(
        ocr_processor=ocr_processor,
        nvidia_api_key=args.nvidia_api_key,
        preprocess=args.preprocess
    )


def extract_documents(args):
    """Extract, aggregate and estimate the tax of a set of documents."""
    documents, rejected = load_documents(args.paths, max_size=args.max_file_size)
    if not documents:
        logger.error("No document could be admitted for extraction")
        sys.exit(1)

    dispatcher = DocumentStrategyDispatcher.load_strategies(args.keywords) if args.keywords else None
    pipeline = BatchExtractionPipeline(dispatcher=dispatcher, decoder=_build_decoder(args))

    profile = pipeline.extract_profile(documents, identity=_build_identity(args))
    tax = compute_tax(profile)

    if profile.has_errors:
        logger.warning("Partial extraction: some files could not be read correctly")

    if args.ledger_csv:
        export_source_ledger(profile, args.ledger_csv)

    _write_output({
        'profile': profile.to_dict(),
        'tax': tax.to_dict(),
        'partial': profile.has_errors,
        'rejected': [{'name': name, 'error': error} for name, error in rejected]
    }, args.output)


def estimate_tax(args):
    """Estimate the tax of a profile saved by the extract command."""
    with open(args.profile, 'r', encoding='utf-8') as f:
        data = json.load(f)

    # Accept both a bare profile and the full extract output
    profile = FiscalProfile.from_dict(data.get('profile', data))
    _write_output(compute_tax(profile).to_dict(), args.output)


def main():
    parser = argparse.ArgumentParser(description="TaxVaud Command Line Interface")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Extract documents
    extract_parser = subparsers.add_parser('extract', help='Extract fiscal figures from documents')
    extract_parser.add_argument('paths', nargs='+', help='PDF, Excel and image files')
    extract_parser.add_argument('--output', '-o', help='Output file path')
    extract_parser.add_argument('--ledger_csv', help='Save the per-document source ledger as CSV')
    extract_parser.add_argument('--keywords', help='JSON file overriding the keyword strategies')
    extract_parser.add_argument('--first_name', help='First name of the declarant')
    extract_parser.add_argument('--last_name', help='Last name of the declarant')
    extract_parser.add_argument('--email', help='Login e-mail, used for the default first name')
    extract_parser.add_argument('--ocr', choices=['auto', 'paddle', 'nvidia'], default='auto', help='OCR engine for images')
    extract_parser.add_argument('--nvidia_api_key', help='NVIDIA API key for OCR')
    extract_parser.add_argument('--preprocess', action='store_true', help='Clean images before OCR')
    extract_parser.add_argument('--max_file_size', type=int, default=MAX_FILE_SIZE, help='Maximum file size in bytes')
    extract_parser.set_defaults(func=extract_documents)

    # Estimate tax
    tax_parser = subparsers.add_parser('tax', help='Estimate the tax of a saved profile')
    tax_parser.add_argument('profile', help='JSON profile file')
    tax_parser.add_argument('--output', '-o', help='Output file path')
    tax_parser.set_defaults(func=estimate_tax)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
