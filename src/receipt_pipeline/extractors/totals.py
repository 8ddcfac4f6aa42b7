"""Subtotal, tax and total extractor."""

import re
from decimal import Decimal
from typing import Optional, Dict, Pattern

from .base import BaseExtractor, FieldMatch
from .prices import match_price
from ..models.ocr import OcrLine


class TotalsExtractor(BaseExtractor):
    """
    Extracts the summary amounts printed below the items.

    Each field takes the first line, scanning top to bottom, that carries
    both its label and an amount. Missing fields are left as None.
    """

    SUBTOTAL_LABEL = re.compile(r"(?<![a-z])sub[\s\-]*total(?![a-z])", re.IGNORECASE)
    TAX_LABEL = re.compile(r"(?<![a-z])(?:sales\s+)?tax(?![a-z])", re.IGNORECASE)
    TOTAL_LABEL = re.compile(
        r"(?<![a-z])(?:grand\s*total|total|amount\s+due|balance\s+due)(?![a-z])",
        re.IGNORECASE,
    )
    TAX_RATE = re.compile(r"\d+(?:[.,]\d+)?\s*%")

    MAX_AMOUNT = Decimal("100000")

    def extract(self, lines: list[OcrLine]) -> Dict[str, Optional[FieldMatch]]:
        """
        Extract subtotal, tax and total.

        Returns:
            Dict with keys 'subtotal', 'tax' and 'total'.
        """
        return {
            "subtotal": self.extract_subtotal(lines),
            "tax": self.extract_tax(lines),
            "total": self.extract_total(lines),
        }

    def extract_subtotal(self, lines: list[OcrLine]) -> Optional[FieldMatch]:
        return self._first_amount(lines, self.SUBTOTAL_LABEL)

    def extract_tax(self, lines: list[OcrLine]) -> Optional[FieldMatch]:
        """Tax lines may print the rate first: 'TAX 8.25% 1.23'."""
        return self._first_amount(lines, self.TAX_LABEL, allow_zero=True, strip_rate=True)

    def extract_total(self, lines: list[OcrLine]) -> Optional[FieldMatch]:
        """Subtotal and tax lines never count as the total."""
        candidates = [
            line for line in lines
            if not self.SUBTOTAL_LABEL.search(line.text) and not self.TAX_LABEL.search(line.text)
        ]
        return self._first_amount(candidates, self.TOTAL_LABEL)

    def _first_amount(
        self,
        lines: list[OcrLine],
        label: Pattern,
        allow_zero: bool = False,
        strip_rate: bool = False,
    ) -> Optional[FieldMatch]:
        for line in lines:
            if not self.is_confident(line):
                continue
            m = label.search(line.text)
            if not m:
                continue
            amount = self.amount_after(line.text[m.end():], strip_rate=strip_rate)
            if amount is None:
                continue
            if amount < 0 or amount >= self.MAX_AMOUNT or (amount == 0 and not allow_zero):
                continue
            return FieldMatch(value=amount, confidence=line.confidence, line_index=line.line_index)
        return None

    def amount_after(self, text: str, strip_rate: bool = False) -> Optional[Decimal]:
        """Read the amount following a label."""
        if strip_rate:
            text = self.TAX_RATE.sub(" ", text)
        found = match_price(text.strip())
        return found.price if found else None
