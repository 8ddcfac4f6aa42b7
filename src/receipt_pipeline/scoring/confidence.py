"""Confidence scoring for parsed receipts."""

from typing import Optional, Sequence

from .consistency import PriceSumChecker
from ..models.enums import ConfidenceStatus, OverallStatus
from ..models.image import ImageQualityMetrics
from ..models.ocr import OcrLine
from ..models.receipt import FieldConfidence, ParsedReceipt, PriceConsistency, ScoredReceipt


# Field confidence bands
HIGH_THRESHOLD = 0.85
MEDIUM_THRESHOLD = 0.70
LOW_THRESHOLD = 0.50

# Overall status bands
EXCELLENT_THRESHOLD = 0.9
GOOD_THRESHOLD = 0.75
FAIR_THRESHOLD = 0.6

# Blend weights
OCR_WEIGHT = 0.4
ITEM_COUNT_WEIGHT = 0.3
ITEM_CONFIDENCE_WEIGHT = 0.3
FULL_ITEM_COUNT = 5

LOW_LINE_RATIO = 0.3

SCALAR_FIELDS = ("merchant", "date", "subtotal", "tax", "total")

# Receipt attribute holding each scalar field's value
_FIELD_ATTRIBUTES = {
    "merchant": "merchant_name",
    "date": "date",
    "subtotal": "subtotal",
    "tax": "tax",
    "total": "total",
}


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def blend_confidence(
    line_confidences: Sequence[float],
    item_count: int,
    item_confidences: Sequence[float],
) -> float:
    """
    Overall receipt confidence.

    0.4 x mean line confidence + 0.3 x min(items / 5, 1) + 0.3 x mean item
    confidence, each term 0 for an empty list, clamped to [0, 1].
    """
    score = (
        OCR_WEIGHT * _mean(line_confidences)
        + ITEM_COUNT_WEIGHT * min(item_count / FULL_ITEM_COUNT, 1.0)
        + ITEM_CONFIDENCE_WEIGHT * _mean(item_confidences)
    )
    return min(1.0, max(0.0, score))


def confidence_status(confidence: float) -> ConfidenceStatus:
    if confidence >= HIGH_THRESHOLD:
        return ConfidenceStatus.HIGH
    if confidence >= MEDIUM_THRESHOLD:
        return ConfidenceStatus.MEDIUM
    if confidence >= LOW_THRESHOLD:
        return ConfidenceStatus.LOW
    return ConfidenceStatus.VERY_LOW


def overall_status(confidence: float) -> OverallStatus:
    if confidence >= EXCELLENT_THRESHOLD:
        return OverallStatus.EXCELLENT
    if confidence >= GOOD_THRESHOLD:
        return OverallStatus.GOOD
    if confidence >= FAIR_THRESHOLD:
        return OverallStatus.FAIR
    return OverallStatus.POOR


class ConfidenceScorer:
    """Attaches the confidence model to a parsed receipt.

    Scoring is advisory: it never raises and never removes data. Callers
    use ``status`` and ``recommendations`` to decide whether a person
    should review the receipt before it is stored.
    """

    def __init__(
        self,
        low_confidence_threshold: float = MEDIUM_THRESHOLD,
        price_checker: Optional[PriceSumChecker] = None,
    ):
        self.low_confidence_threshold = low_confidence_threshold
        self.price_checker = price_checker or PriceSumChecker()

    def score(
        self,
        lines: list[OcrLine],
        parsed: ParsedReceipt,
        processing_applied: Optional[list[str]] = None,
        quality_metrics: Optional[ImageQualityMetrics] = None,
    ) -> ScoredReceipt:
        """
        Score a parsed receipt.

        Args:
            lines: The OCR lines the receipt was parsed from.
            parsed: Parser output.
            processing_applied: Preprocessing steps, copied onto the result.
            quality_metrics: Image measurements, copied onto the result.

        Returns:
            Immutable ScoredReceipt.
        """
        line_confidences = [line.confidence for line in lines]
        item_confidences = [item.confidence for item in parsed.items]
        overall = blend_confidence(line_confidences, len(parsed.items), item_confidences)

        consistency = self.price_checker.check(parsed)
        fields = self.field_confidences(lines, parsed, consistency)
        recommendations = self.recommendations(lines, parsed, overall, consistency)

        data = dict(parsed)
        data.update(
            confidence=overall,
            status=overall_status(overall),
            field_confidences=fields,
            recommendations=recommendations,
            price_consistency=consistency,
            processing_applied=list(processing_applied or []),
            quality_metrics=quality_metrics,
        )
        return ScoredReceipt(**data)

    def field_confidences(
        self,
        lines: list[OcrLine],
        parsed: ParsedReceipt,
        consistency: Optional[PriceConsistency] = None,
    ) -> list[FieldConfidence]:
        """Per-field confidence from each field's source line."""
        by_index = {line.line_index: line for line in lines}
        records = []

        for name in SCALAR_FIELDS:
            has_value = getattr(parsed, _FIELD_ATTRIBUTES[name]) is not None
            confidence = 0.0
            source = parsed.field_sources.get(name)
            if has_value and source in by_index:
                confidence = by_index[source].confidence
            records.append(FieldConfidence(
                field=name,
                confidence=confidence,
                status=confidence_status(confidence),
                has_value=has_value,
            ))

        item_confidence = _mean([item.confidence for item in parsed.items])
        records.append(FieldConfidence(
            field="items",
            confidence=item_confidence,
            status=confidence_status(item_confidence),
            has_value=bool(parsed.items),
        ))

        if consistency is not None:
            records.append(FieldConfidence(
                field="price_consistency",
                confidence=consistency.confidence,
                status=confidence_status(consistency.confidence),
                has_value=True,
            ))

        return records

    def recommendations(
        self,
        lines: list[OcrLine],
        parsed: ParsedReceipt,
        overall: float,
        consistency: Optional[PriceConsistency] = None,
    ) -> list[str]:
        """Human-readable hints for improving the capture or the result."""
        hints = []

        mean_line = _mean([line.confidence for line in lines])
        if mean_line < MEDIUM_THRESHOLD:
            hints.append(
                "Low OCR confidence detected. Consider retaking the photo "
                "with better lighting and focus."
            )

        if lines:
            low_lines = sum(1 for line in lines if line.confidence < MEDIUM_THRESHOLD)
            if low_lines / len(lines) > LOW_LINE_RATIO:
                hints.append(
                    "Many lines have low confidence. Ensure the receipt is flat "
                    "and all text is clearly visible."
                )

        if not parsed.items:
            hints.append(
                "No items were extracted. Verify the receipt format and ensure "
                "item names and prices are visible."
            )

        if parsed.total is None:
            hints.append("Total amount not found. Make sure the total is clearly visible.")
        if parsed.date is None:
            hints.append("Purchase date not found. Include the date section of the receipt.")
        if parsed.merchant_name is None:
            hints.append("Merchant name not detected. Include the store header in the image.")

        if consistency is not None and not consistency.within_tolerance:
            hints.append(
                f"Item prices add up to {consistency.items_total} but the receipt "
                f"{consistency.reference_field.replace('_', ' ')} is "
                f"{consistency.reference}. Some items may be missing or misread."
            )

        if overall < self.low_confidence_threshold:
            hints.append("Retake the photo with better lighting.")
            hints.append("Verify the extracted items manually.")

        return hints
