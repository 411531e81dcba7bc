#!/usr/bin/env python3
"""
Demo script for the TaxVaud engine.

This script runs the extraction pipeline over a few already decoded sample
documents, one of them broken, and prints the aggregated profile and the
estimated tax.
"""

import sys
import argparse
import logging
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from taxvaud import BatchExtractionPipeline, DocumentInput, DocumentKind, Identity, compute_tax

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_sample_documents():
    """Create decoded sample documents for demonstration."""
    return [
        DocumentInput(
            name="certificat_salaire.pdf",
            kind=DocumentKind.TEXT,
            content=(
                "Certificat de salaire 2024\n"
                "Salaire brut 92'400.00 Salaire net 80'000.00\n"
                "Frais de transport : 3'000.00"
            )
        ),
        DocumentInput(
            name="releve_titres.xlsx",
            kind=DocumentKind.TABULAR,
            content=[
                ["Libellé", "", "Montant"],
                ["Dividende Nestlé", "", "5'000.00"],
                ["Valeur fiscale des titres", "", 120000],
            ]
        ),
        DocumentInput(
            name="prime_lamal.jpg",
            kind=DocumentKind.SCANNED,
            content="Groupe Mutuel\nPrime annuelle LAMal 4'000.00\nAttestation de don 1'000.00"
        ),
        # Decoding failed upstream: no text at all
        DocumentInput(name="scan_illisible.jpg", kind=DocumentKind.SCANNED),
    ]


def demo_pipeline(email: str):
    """Demonstrate extraction, aggregation and tax estimation."""
    print("\n" + "="*50)
    print("EXTRACTION PIPELINE DEMO")
    print("="*50)

    pipeline = BatchExtractionPipeline()
    profile = pipeline.extract_profile(create_sample_documents(), identity=Identity.from_email(email))

    print(f"\nDeclarant: {profile.first_name} {profile.last_name}")
    print("\nSources:")
    for source in profile.sources:
        status = "found" if source.found else "nothing found"
        if source.error:
            status = f"error: {source.error}"
        print(f"  {source.name} ({source.kind}): {status}")

    print("\nTotals:")
    for field_name, amount in profile.totals().items():
        print(f"  {field_name}: CHF {amount:,.2f}")

    if profile.has_errors:
        print("\nPartial extraction: some files could not be read correctly.")

    tax = compute_tax(profile)
    print("\nTax estimate:")
    print(f"  Taxable income: CHF {tax.taxable_income:,.2f}")
    print(f"  Tax on income: CHF {tax.tax_on_income:,.2f}")
    print(f"  Taxable wealth: CHF {tax.taxable_wealth:,.2f}")
    print(f"  Tax on wealth: CHF {tax.tax_on_wealth:,.2f}")
    print(f"  Estimated total: CHF {tax.total_tax}")


def main():
    parser = argparse.ArgumentParser(description="TaxVaud Demo")
    parser.add_argument("--email", type=str, default="demo@example.ch", help="E-mail of the declarant")
    args = parser.parse_args()

    print("TaxVaud Demo")
    print("="*50)

    try:
        demo_pipeline(args.email)

        print("\n" + "="*50)
        print("DEMO COMPLETED SUCCESSFULLY!")
        print("="*50)

    except Exception as e:
        logger.error(f"Demo failed: {e}")
        print(f"Demo failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
