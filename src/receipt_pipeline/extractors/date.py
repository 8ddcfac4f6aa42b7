"""Purchase date extractor."""

from typing import Literal, Optional

from .base import BaseExtractor, FieldMatch
from ..exceptions import DateParseError
from ..logging import get_logger
from ..models.ocr import OcrLine
from ..normalizers.datetime import DateNormalizer


logger = get_logger(__name__)


class DateExtractor(BaseExtractor):
    """Finds the first line holding a valid calendar date."""

    def __init__(self, min_confidence: float = 0.0, date_order: Literal["MDY", "DMY"] = "MDY"):
        super().__init__(min_confidence)
        self.date_order = date_order

    def extract(self, lines: list[OcrLine]) -> Optional[FieldMatch]:
        """
        Extract the purchase date.

        Lines whose date-shaped text is not a real date (e.g. '13/45/2024')
        are skipped and the scan continues.

        Returns:
            FieldMatch with a ``datetime.date`` value, or None.
        """
        for line in lines:
            if not self.is_confident(line):
                continue
            try:
                parsed = DateNormalizer.parse_date(line.text, self.date_order)
            except DateParseError as e:
                logger.debug("date_candidate_rejected", line_index=line.line_index, error=str(e))
                continue
            if parsed:
                return FieldMatch(value=parsed, confidence=line.confidence, line_index=line.line_index)
        return None
