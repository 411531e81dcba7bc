"""
Tests for the batch extraction pipeline.
"""

import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

# Add src to path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from taxvaud.aggregation.fiscal_aggregator import Identity, aggregate
from taxvaud.pipeline.batch_extractor import (
    BatchExtractionPipeline,
    DocumentInput,
    ExtractionFailure,
    ExtractionSuccess,
)
from taxvaud.strategies.document_strategies import DocumentKind
from taxvaud.taxation.tax_calculator import compute_tax

PAYSLIP = "Salaire net: 6'500.00\nFrais de transport: 800.00"
STATEMENT = [["Dividende", "", "1200.00"], ["Solde du compte", 45000]]
RECEIPT = "Prime LAMal 4'200.00\nAttestation de don 300.00"


def _documents():
    return [
        DocumentInput(name="salaire.pdf", kind=DocumentKind.TEXT, path="salaire.pdf"),
        DocumentInput(name="releve.xlsx", kind=DocumentKind.TABULAR, path="releve.xlsx"),
        DocumentInput(name="prime.jpg", kind=DocumentKind.SCANNED, path="prime.jpg"),
    ]


class TestBatchExtractionPipeline:
    """Test cases for BatchExtractionPipeline."""

    def test_initialization(self):
        """Test pipeline initialization."""
        pipeline = BatchExtractionPipeline()
        assert pipeline.dispatcher is not None
        assert pipeline.decoder is None

    def test_decoded_content_used_without_decoder(self):
        """Test documents carrying content need no decoder."""
        pipeline = BatchExtractionPipeline()
        outcome = pipeline.process_document(DocumentInput(name="salaire.pdf", kind="text", content=PAYSLIP))

        assert isinstance(outcome, ExtractionSuccess)
        assert outcome.succeeded
        assert outcome.fields == {'salary': Decimal("6500.00"), 'professional_expenses': Decimal("800.00")}

    def test_run_preserves_order(self):
        """Test one outcome per document, in input order."""
        decoder = Mock()
        decoder.decode.side_effect = [PAYSLIP, STATEMENT, RECEIPT]
        pipeline = BatchExtractionPipeline(decoder=decoder)

        outcomes = pipeline.run(_documents())

        assert [o.source_name for o in outcomes] == ["salaire.pdf", "releve.xlsx", "prime.jpg"]
        assert all(o.succeeded for o in outcomes)
        assert outcomes[1].fields == {'other_income': Decimal("1200.00"), 'securities_value': Decimal("45000")}
        assert outcomes[2].fields == {'insurance_premiums': Decimal("4200.00"), 'charitable_donations': Decimal("300.00")}

    def test_failing_document_does_not_abort_batch(self):
        """Test a fault in one document becomes a failure outcome."""
        decoder = Mock()
        decoder.decode.side_effect = [PAYSLIP, RuntimeError("corrupted spreadsheet"), RECEIPT]
        pipeline = BatchExtractionPipeline(decoder=decoder)

        outcomes = pipeline.run(_documents())

        assert len(outcomes) == 3
        assert isinstance(outcomes[0], ExtractionSuccess)
        assert isinstance(outcomes[1], ExtractionFailure)
        assert isinstance(outcomes[2], ExtractionSuccess)
        assert outcomes[1].error_message == "corrupted spreadsheet"
        assert outcomes[1].kind == DocumentKind.TABULAR

    def test_partial_batch_aggregation(self):
        """Test totals of a partial batch come from the successful documents only."""
        decoder = Mock()
        decoder.decode.side_effect = [PAYSLIP, RuntimeError("corrupted spreadsheet"), RECEIPT]
        pipeline = BatchExtractionPipeline(decoder=decoder)

        profile = aggregate(pipeline.run(_documents()))

        assert profile.salary == Decimal("6500.00")
        assert profile.professional_expenses == Decimal("800.00")
        assert profile.insurance_premiums == Decimal("4200.00")
        assert profile.charitable_donations == Decimal("300.00")
        assert profile.other_income == 0
        assert profile.securities_value == 0
        assert len(profile.sources) == 3
        assert profile.sources[1].found is False
        assert profile.sources[1].error == "corrupted spreadsheet"
        assert profile.has_errors

    def test_exception_without_message(self):
        """Test faults without a message are named by their type."""
        decoder = Mock()
        decoder.decode.side_effect = KeyError()
        pipeline = BatchExtractionPipeline(decoder=decoder)

        outcome = pipeline.process_document(_documents()[0])

        assert outcome.error_message == "KeyError"

    def test_wrong_content_shape_is_failure(self):
        """Test a text document without text fails without raising."""
        pipeline = BatchExtractionPipeline()
        outcome = pipeline.process_document(DocumentInput(name="vide.pdf", kind="text"))

        assert not outcome.succeeded

    def test_unknown_kind_is_empty_success(self):
        """Test unknown kinds succeed with no fields."""
        pipeline = BatchExtractionPipeline()
        outcome = pipeline.process_document(DocumentInput(name="notes.docx", kind="word", content="Salaire 5000.00"))

        assert isinstance(outcome, ExtractionSuccess)
        assert outcome.fields == {}

    def test_progress_callback(self):
        """Test the progress callback receives index, total and name."""
        decoder = Mock()
        decoder.decode.side_effect = [PAYSLIP, STATEMENT, RECEIPT]
        callback = Mock()
        pipeline = BatchExtractionPipeline(decoder=decoder)

        pipeline.run(_documents(), progress_callback=callback)

        assert [c.args for c in callback.call_args_list] == [
            (0, 3, "salaire.pdf"),
            (1, 3, "releve.xlsx"),
            (2, 3, "prime.jpg"),
        ]

    def test_iter_outcomes_is_lazy(self):
        """Test documents are decoded only when their outcome is requested."""
        decoder = Mock()
        decoder.decode.side_effect = [PAYSLIP, STATEMENT, RECEIPT]
        pipeline = BatchExtractionPipeline(decoder=decoder)

        outcomes = pipeline.iter_outcomes(_documents())
        first = next(outcomes)

        assert first.source_name == "salaire.pdf"
        assert decoder.decode.call_count == 1

    def test_decoder_per_run(self):
        """Test a decoder passed to run overrides the pipeline's decoder."""
        default_decoder = Mock()
        run_decoder = Mock()
        run_decoder.decode.return_value = PAYSLIP
        pipeline = BatchExtractionPipeline(decoder=default_decoder)

        outcomes = pipeline.run(_documents()[:1], decoder=run_decoder)

        assert outcomes[0].fields['salary'] == Decimal("6500.00")
        default_decoder.decode.assert_not_called()

    def test_empty_batch(self):
        """Test an empty batch gives no outcomes and a zeroed profile."""
        pipeline = BatchExtractionPipeline()

        assert pipeline.run([]) == []
        profile = pipeline.extract_profile([])
        assert profile.salary == 0
        assert profile.sources == []

    def test_extract_profile(self):
        """Test running and aggregating in one call."""
        decoder = Mock()
        decoder.decode.side_effect = [PAYSLIP, STATEMENT, RECEIPT]
        pipeline = BatchExtractionPipeline(decoder=decoder)

        profile = pipeline.extract_profile(_documents(), identity=Identity("Anne", "Rochat"))

        assert profile.first_name == "Anne"
        assert profile.last_name == "Rochat"
        assert profile.securities_value == Decimal("45000")
        assert [s.found for s in profile.sources] == [True, True, True]
        assert not profile.has_errors

    def test_extreme_cells_reach_tax_estimate(self):
        """Test infinite or huge cells neither break aggregation nor the tax."""
        pipeline = BatchExtractionPipeline()
        documents = [
            DocumentInput(name="a.xlsx", kind=DocumentKind.TABULAR, content=[["Dividende", "1e1000000"]]),
            DocumentInput(name="b.xlsx", kind=DocumentKind.TABULAR, content=[["Solde", float("inf")]]),
        ]

        profile = pipeline.extract_profile(documents)
        tax = compute_tax(profile)

        assert profile.other_income == 0
        assert profile.securities_value == 0
        assert [s.found for s in profile.sources] == [False, False]
        assert tax.total_tax == 0
