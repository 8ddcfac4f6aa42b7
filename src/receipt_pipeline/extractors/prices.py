"""Price detection strategies for receipt lines.

Matchers run in a fixed order and the first one that matches wins. A
later matcher is never consulted once an earlier one has matched, even if
the amount it found turns out to be out of range.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from ..exceptions import PriceParseError
from ..normalizers.numbers import PriceNormalizer


@dataclass(frozen=True)
class PriceMatch:
    """An amount found in a line and the span it occupies."""

    price: Decimal
    start: int
    end: int
    matcher: str

    def remove_from(self, text: str) -> str:
        """Return ``text`` with the matched span replaced by a space."""
        return f"{text[:self.start]} {text[self.end:]}"


class PriceMatcher(ABC):
    """One way of spotting a price in a line of text."""

    name: str = "base"

    @abstractmethod
    def match(self, text: str) -> Optional[PriceMatch]:
        """Return the price found in ``text`` or None."""

    def _build(self, raw: str, start: int, end: int) -> Optional[PriceMatch]:
        try:
            price = PriceNormalizer.parse_price(raw)
        except PriceParseError:
            return None
        return PriceMatch(price=price, start=start, end=end, matcher=self.name)


# Plain amounts, with optional thousands separators
_AMOUNT = r"\d{1,3}(?:,\d{3})+\.\d{2}|\d+[.,]\d{1,2}"


class CurrencySymbolMatcher(PriceMatcher):
    """'$4.50', '€ 3,20', '£12.00'. The rightmost amount is used."""

    name = "currency_symbol"
    PATTERN = re.compile(r"[$€£]\s?(" + _AMOUNT + r")(?!\d)")

    def match(self, text: str) -> Optional[PriceMatch]:
        matches = list(self.PATTERN.finditer(text))
        if not matches:
            return None
        last = matches[-1]
        return self._build(last.group(1), last.start(), last.end())


class TrailingDecimalMatcher(PriceMatcher):
    """A bare amount ending the line, optionally followed by a flag.

    Thermal receipts print tax and department flags after the price:
    '1.33 N', '4.99 F', '2.00-' or '3.10*'.
    """

    name = "trailing_decimal"
    PATTERN = re.compile(
        r"(?<![\d.,\-])(\d{1,3}(?:,\d{3})+\.\d{2}|\d+\.\d{2})"
        r"(?:\s*(?:[A-Za-z]{1,2}|[-*]))?\s*$"
    )

    def match(self, text: str) -> Optional[PriceMatch]:
        m = self.PATTERN.search(text)
        if not m:
            return None
        return self._build(m.group(1), m.start(), m.end())


class OcrTolerantMatcher(PriceMatcher):
    """Amounts with common OCR glyph confusions anywhere in the line.

    'S4.50' (S read for $), '1.9O' (letter O for zero) and '1,99' (comma
    for point) are all accepted. The rightmost candidate is used.
    """

    name = "ocr_tolerant"
    PATTERN = re.compile(
        r"(?<![A-Za-z\d.,\-])(S?)(\d[\dOo]*[.,][\dOo]{1,2})(?![\dA-Za-z])"
    )

    def match(self, text: str) -> Optional[PriceMatch]:
        for m in reversed(list(self.PATTERN.finditer(text))):
            found = self._build(m.group(2), m.start(), m.end())
            if found:
                return found
        return None


DEFAULT_MATCHERS: tuple[PriceMatcher, ...] = (
    CurrencySymbolMatcher(),
    TrailingDecimalMatcher(),
    OcrTolerantMatcher(),
)


def match_price(
    text: str, matchers: Optional[Sequence[PriceMatcher]] = None
) -> Optional[PriceMatch]:
    """Run the matchers in order and return the first match."""
    for matcher in matchers or DEFAULT_MATCHERS:
        found = matcher.match(text)
        if found is not None:
            return found
    return None
