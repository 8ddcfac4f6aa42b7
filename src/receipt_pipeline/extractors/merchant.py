"""Merchant name extractor."""

from typing import Optional

from .base import BaseExtractor, FieldMatch
from .prices import match_price
from ..models.ocr import OcrLine
from ..normalizers.text import TextNormalizer


class MerchantExtractor(BaseExtractor):
    """
    Takes the store name from the receipt header.

    The first of the top lines that is longer than three characters, has
    no price in it and was read with high confidence wins. Promotional
    banners printed above the store name will be picked up instead.
    """

    def __init__(self, min_confidence: float = 0.7, search_lines: int = 5):
        super().__init__(min_confidence)
        self.search_lines = search_lines

    def extract(self, lines: list[OcrLine]) -> Optional[FieldMatch]:
        for line in lines[:self.search_lines]:
            text = TextNormalizer.collapse_whitespace(line.text)
            if len(text) <= 3:
                continue
            if line.confidence <= self.min_confidence:
                continue
            if match_price(text) is not None:
                continue
            return FieldMatch(value=text, confidence=line.confidence, line_index=line.line_index)
        return None
