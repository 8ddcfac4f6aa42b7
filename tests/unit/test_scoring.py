"""Unit tests for confidence scoring and price consistency."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from receipt_pipeline.config import PipelineSettings
from receipt_pipeline.models.enums import ConfidenceStatus, OverallStatus
from receipt_pipeline.models.receipt import ExtractedItem, ParsedReceipt
from receipt_pipeline.parser import ReceiptParser
from receipt_pipeline.scoring import (
    ConfidenceScorer,
    PriceSumChecker,
    blend_confidence,
    confidence_status,
    overall_status,
)


def _item(price: str, quantity: int = 1, index: int = 0, confidence: float = 0.9) -> ExtractedItem:
    return ExtractedItem(
        id=f"item_{index}",
        name=f"ITEM {index}",
        price=Decimal(price),
        quantity=quantity,
        confidence=confidence,
        source_line_index=index,
        raw_text=f"ITEM {index} {price}",
    )


class TestBlendConfidence:
    """Tests for the overall confidence formula."""

    def test_empty(self):
        assert blend_confidence([], 0, []) == 0.0

    def test_full_marks(self):
        assert blend_confidence([1.0] * 10, 5, [1.0] * 5) == pytest.approx(1.0)

    def test_item_count_capped(self):
        assert blend_confidence([1.0], 50, [1.0]) == pytest.approx(1.0)

    def test_lines_without_items(self):
        assert blend_confidence([0.8, 0.6], 0, []) == pytest.approx(0.28)


class TestStatusBands:

    @pytest.mark.parametrize("value,expected", [
        (0.95, ConfidenceStatus.HIGH),
        (0.85, ConfidenceStatus.HIGH),
        (0.7, ConfidenceStatus.MEDIUM),
        (0.5, ConfidenceStatus.LOW),
        (0.49, ConfidenceStatus.VERY_LOW),
    ])
    def test_confidence_status(self, value, expected):
        assert confidence_status(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (0.9, OverallStatus.EXCELLENT),
        (0.75, OverallStatus.GOOD),
        (0.6, OverallStatus.FAIR),
        (0.59, OverallStatus.POOR),
    ])
    def test_overall_status(self, value, expected):
        assert overall_status(value) == expected


class TestPriceSumChecker:
    """Tests for the item sum cross-check."""

    def test_matches_subtotal(self):
        receipt = ParsedReceipt(
            items=[_item("1.50", 2, 0), _item("2.00", 1, 1)],
            subtotal=Decimal("5.00"),
            total=Decimal("5.40"),
        )
        result = PriceSumChecker().check(receipt)

        assert result.items_total == Decimal("5.00")
        assert result.reference_field == "subtotal"
        assert result.difference == Decimal("0.00")
        assert result.within_tolerance
        assert result.confidence == 1.0

    def test_total_minus_tax(self):
        receipt = ParsedReceipt(items=[_item("10.00")], total=Decimal("10.80"), tax=Decimal("0.80"))
        result = PriceSumChecker().check(receipt)

        assert result.reference == Decimal("10.00")
        assert result.reference_field == "total_minus_tax"
        assert result.within_tolerance

    def test_total_only(self):
        receipt = ParsedReceipt(items=[_item("8.00")], total=Decimal("10.00"))
        result = PriceSumChecker().check(receipt)

        assert result.reference_field == "total"
        assert result.difference == Decimal("-2.00")
        assert not result.within_tolerance
        assert result.confidence == pytest.approx(0.8)

    def test_tolerance(self):
        receipt = ParsedReceipt(items=[_item("9.95")], subtotal=Decimal("10.00"))
        assert PriceSumChecker().check(receipt).within_tolerance
        assert not PriceSumChecker(tolerance="0.01").check(receipt).within_tolerance

    def test_confidence_floor(self):
        receipt = ParsedReceipt(items=[_item("50.00")], subtotal=Decimal("10.00"))
        assert PriceSumChecker().check(receipt).confidence == 0.0

    def test_nothing_to_compare(self):
        assert PriceSumChecker().check(ParsedReceipt(items=[_item("1.00")])) is None
        assert PriceSumChecker().check(ParsedReceipt(total=Decimal("5.00"))) is None


class TestConfidenceScorer:
    """Tests for ConfidenceScorer."""

    @pytest.fixture
    def parser(self):
        return ReceiptParser(settings=PipelineSettings())

    def test_good_receipt(self, parser, make_lines, grocery_lines):
        lines = make_lines(grocery_lines, confidence=0.95)
        scored = ConfidenceScorer().score(lines, parser.parse(lines))

        # 0.4 * 0.95 + 0.3 * 0.8 + 0.3 * 0.95
        assert scored.confidence == pytest.approx(0.905)
        assert scored.status == OverallStatus.EXCELLENT
        assert not scored.needs_review
        assert scored.recommendations == []
        assert scored.price_consistency.within_tolerance

    def test_field_confidences(self, parser, make_lines, grocery_lines):
        lines = make_lines(grocery_lines, confidence=0.95)
        scored = ConfidenceScorer().score(lines, parser.parse(lines))

        fields = [f.field for f in scored.field_confidences]
        assert fields == ["merchant", "date", "subtotal", "tax", "total", "items", "price_consistency"]
        total = scored.field_confidence("total")
        assert total.has_value
        assert total.confidence == 0.95
        assert total.status == ConfidenceStatus.HIGH

    def test_field_confidence_comes_from_source_line(self, parser):
        from receipt_pipeline.models.ocr import OcrLine

        lines = [
            OcrLine(text="MILK 3.49", confidence=0.95, line_index=0),
            OcrLine(text="TOTAL 3.49", confidence=0.55, line_index=1),
        ]
        scored = ConfidenceScorer().score(lines, parser.parse(lines))

        assert scored.field_confidence("total").confidence == 0.55
        assert scored.field_confidence("total").status == ConfidenceStatus.LOW

    def test_missing_fields(self, parser, make_lines):
        lines = make_lines(["MILK 3.49"])
        scored = ConfidenceScorer().score(lines, parser.parse(lines))

        date_field = scored.field_confidence("date")
        assert not date_field.has_value
        assert date_field.confidence == 0.0
        assert date_field.status == ConfidenceStatus.VERY_LOW
        assert scored.field_confidence("price_consistency") is None
        assert any("Total amount not found" in r for r in scored.recommendations)
        assert any("Purchase date not found" in r for r in scored.recommendations)

    def test_empty_receipt(self, parser):
        scored = ConfidenceScorer().score([], parser.parse([]))

        assert scored.confidence == 0.0
        assert scored.status == OverallStatus.POOR
        assert scored.needs_review
        assert any("No items were extracted" in r for r in scored.recommendations)
        assert "Retake the photo with better lighting." in scored.recommendations
        assert "Verify the extracted items manually." in scored.recommendations

    def test_low_ocr_confidence(self, parser, make_lines, grocery_lines):
        lines = make_lines(grocery_lines, confidence=0.5)
        scored = ConfidenceScorer().score(lines, parser.parse(lines))

        assert any("Low OCR confidence" in r for r in scored.recommendations)
        assert any("Many lines have low confidence" in r for r in scored.recommendations)

    def test_price_mismatch_recommendation(self, parser, make_lines):
        lines = make_lines(["SAFEWAY", "MILK 3.49", "BREAD 2.00", "SUBTOTAL 9.49"])
        scored = ConfidenceScorer().score(lines, parser.parse(lines))

        assert not scored.price_consistency.within_tolerance
        assert any("add up to 5.49" in r and "subtotal is 9.49" in r for r in scored.recommendations)

    def test_processing_metadata_copied(self, parser, make_lines):
        lines = make_lines(["MILK 3.49"])
        scored = ConfidenceScorer().score(
            lines, parser.parse(lines), processing_applied=["grayscale"]
        )
        assert scored.processing_applied == ["grayscale"]
        assert scored.quality_metrics is None

    def test_scored_receipt_is_immutable(self, parser, make_lines):
        lines = make_lines(["MILK 3.49"])
        scored = ConfidenceScorer().score(lines, parser.parse(lines))
        with pytest.raises(ValidationError):
            scored.total = Decimal("1.00")

    def test_scoring_keeps_parsed_data(self, parser, make_lines, grocery_lines):
        lines = make_lines(grocery_lines)
        parsed = parser.parse(lines)
        scored = ConfidenceScorer().score(lines, parsed)

        assert scored.items == parsed.items
        assert scored.total == parsed.total
        assert scored.field_sources == parsed.field_sources
