"""Receipt parser that runs all extractors over a list of OCR lines."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional

from .config import get_settings, PipelineSettings
from .exceptions import NormalizationError
from .extractors.base import FieldMatch
from .extractors.date import DateExtractor
from .extractors.items import ItemExtractor
from .extractors.merchant import MerchantExtractor
from .extractors.totals import TotalsExtractor
from .logging import PipelineLogger
from .models.ocr import OcrLine
from .models.receipt import ParsedReceipt
from .scoring.confidence import blend_confidence


logger = PipelineLogger(__name__)


@dataclass
class ExtractionResult:
    """Result of a single extractor call."""
    field_name: str
    value: Any
    success: bool
    error_message: Optional[str] = None


class ReceiptParser:
    """
    Parses OCR lines of a grocery receipt into a ParsedReceipt.

    Items are read in one pass over the lines; totals, date and merchant
    each scan the full list. Parsing never fails: an extractor that errors
    out is logged and its field left empty.
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        min_item_confidence: Optional[float] = None,
        date_order: Optional[str] = None,
        item_extractor: Optional[ItemExtractor] = None,
    ):
        """
        Initialize parser.

        Args:
            settings: Optional PipelineSettings instance for Dependency Injection.
            min_item_confidence: Overrides the settings' item confidence gate.
            date_order: 'MDY' or 'DMY', overrides the settings.
            item_extractor: Custom item extractor, e.g. with other price matchers.
        """
        self._settings = settings or get_settings()

        self.min_item_confidence = (
            min_item_confidence if min_item_confidence is not None
            else self._settings.min_item_confidence
        )
        self.date_order = (date_order or self._settings.date_order).upper()

        self.item_extractor = item_extractor or ItemExtractor(
            min_confidence=self.min_item_confidence,
            max_price=self._settings.max_item_price,
        )
        self.totals_extractor = TotalsExtractor()
        self.date_extractor = DateExtractor(date_order=self.date_order)
        self.merchant_extractor = MerchantExtractor(
            min_confidence=self._settings.merchant_min_confidence,
            search_lines=self._settings.merchant_search_lines,
        )

    def _extract_field(
        self,
        field_name: str,
        extract: Callable[[list[OcrLine]], Any],
        lines: list[OcrLine],
    ) -> ExtractionResult:
        """
        Run one extractor with standardized error handling.

        Normalization and value errors are logged and turned into an
        empty result so one bad field never loses the rest of the receipt.
        """
        try:
            return ExtractionResult(field_name=field_name, value=extract(lines), success=True)
        except NormalizationError as e:
            logger.extraction_failed(field=field_name, error=str(e))
            return ExtractionResult(
                field_name=field_name,
                value=None,
                success=False,
                error_message=f"{field_name} parsing failed: {e.input_value}",
            )
        except (ValueError, TypeError, ArithmeticError) as e:
            logger.extraction_failed(field=field_name, error=str(e))
            return ExtractionResult(
                field_name=field_name,
                value=None,
                success=False,
                error_message=f"{field_name} extraction error: {e}",
            )

    def parse(self, lines: list[OcrLine]) -> ParsedReceipt:
        """
        Parse OCR lines to a structured receipt.

        Args:
            lines: OCR lines in top-to-bottom order. May be empty.

        Returns:
            ParsedReceipt with a preliminary confidence.
        """
        lines = list(lines)
        data: dict[str, Any] = {"raw_text": "\n".join(line.text for line in lines)}
        sources: dict[str, int] = {}

        items = self._extract_field("items", self.item_extractor.extract, lines).value or []
        data["items"] = items

        totals = self._extract_field("totals", self.totals_extractor.extract, lines).value or {}
        for name in ("subtotal", "tax", "total"):
            match: Optional[FieldMatch] = totals.get(name)
            if match is not None:
                data[name] = Decimal(match.value)
                sources[name] = match.line_index

        date_match = self._extract_field("date", self.date_extractor.extract, lines).value
        if date_match is not None:
            data["date"] = date_match.value
            sources["date"] = date_match.line_index

        merchant_match = self._extract_field("merchant", self.merchant_extractor.extract, lines).value
        if merchant_match is not None:
            data["merchant_name"] = merchant_match.value
            sources["merchant"] = merchant_match.line_index

        data["field_sources"] = sources
        data["confidence"] = blend_confidence(
            [line.confidence for line in lines],
            len(items),
            [item.confidence for item in items],
        )

        receipt = ParsedReceipt(**data)
        logger.receipt_parsed(
            item_count=len(receipt.items),
            has_total=receipt.total is not None,
            has_date=receipt.date is not None,
            has_merchant=receipt.merchant_name is not None,
        )
        return receipt
