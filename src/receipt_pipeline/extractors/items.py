"""Line item extractor - turns priced lines into purchased items."""

import hashlib
import re
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from .base import BaseExtractor
from .prices import (
    DEFAULT_MATCHERS,
    PriceMatch,
    PriceMatcher,
    TrailingDecimalMatcher,
    match_price,
)
from ..models.ocr import OcrLine
from ..models.receipt import ExtractedItem
from ..normalizers.datetime import DateNormalizer
from ..normalizers.numbers import PriceNormalizer
from ..normalizers.text import TextNormalizer


# Whole-word match where word boundaries are letters only, so 'TOTAL45.00'
# is caught and 'DATES' or 'CASHEW' are not.
NON_ITEM_KEYWORDS = [
    "sub total",
    "subtotal",
    "total",
    "tax",
    "thank you",
    "date",
    "time",
    "cashier",
    "payment",
    "change",
    "card",
    "receipt",
    "balance",
    "amount due",
    "cash",
    "visa",
    "mastercard",
]

NON_ITEM_PATTERN = re.compile(
    r"(?<![a-z])(?:"
    + "|".join(r"\s+".join(map(re.escape, k.split())) for k in NON_ITEM_KEYWORDS)
    + r")(?![a-z])",
    re.IGNORECASE,
)


def is_non_item_line(text: str) -> bool:
    """True for empty lines, keyword lines and lines holding only a date."""
    stripped = text.strip()
    if not stripped:
        return True
    if NON_ITEM_PATTERN.search(stripped):
        return True
    return DateNormalizer.is_date_only(stripped)


def make_item_id(line_index: int, raw_text: str) -> str:
    """Stable id so parsing the same lines twice yields the same items."""
    digest = hashlib.sha1(f"{line_index}:{raw_text}".encode("utf-8")).hexdigest()
    return f"item_{digest[:12]}"


class ItemExtractor(BaseExtractor):
    """
    Extracts purchased items in a single pass over the lines.

    A line becomes an item when it is not a keyword line, a price matcher
    fires with an in-range amount and a usable name remains once the price
    and quantity marker are removed.
    """

    # '2 x COFFEE', '3X MILK'
    QUANTITY_PREFIX = re.compile(r"^\s*(\d{1,3})\s*[x×]\s+", re.IGNORECASE)
    # '3 @ 0.59', '2 @ $1.25'
    UNIT_PRICE = re.compile(
        r"(?<![\d.,])(\d{1,3})\s*@\s*(?:[$€£]\s?)?(\d+[.,]\d{2})?", re.IGNORECASE
    )
    # 'QTY 2', 'Qty: 3', 'QUANTITY 4'
    QTY_LABEL = re.compile(
        r"(?<![a-z])(?:qty|quantity)\s*[:.]?\s*(\d{1,3})(?!\d)", re.IGNORECASE
    )
    EXTENDED_TOTAL = TrailingDecimalMatcher()

    def __init__(
        self,
        min_confidence: float = 0.0,
        matchers: Optional[Sequence[PriceMatcher]] = None,
        max_price: Optional[Decimal] = None,
    ):
        super().__init__(min_confidence)
        self.matchers = tuple(matchers) if matchers else DEFAULT_MATCHERS
        limit = max_price if max_price is not None else ExtractedItem.MAX_PRICE
        self.max_price = min(limit, ExtractedItem.MAX_PRICE)

    def extract(self, lines: list[OcrLine]) -> list[ExtractedItem]:
        """Extract all items, in line order."""
        items = []
        for line in lines:
            item = self.parse_line(line)
            if item is not None:
                items.append(item)
        return items

    def parse_line(self, line: OcrLine) -> Optional[ExtractedItem]:
        """Build an item from one line, or None if it is not an item."""
        text = line.text.strip()
        if is_non_item_line(text) or not self.is_confident(line):
            return None

        found = match_price(text, self.matchers)
        if found is None or not PriceNormalizer.is_valid_item_price(found.price, self.max_price):
            return None

        quantity, price, remainder = self._split_quantity(text, found)

        name = TextNormalizer.clean_item_name(remainder)
        if not TextNormalizer.is_valid_name(name):
            return None

        return ExtractedItem(
            id=make_item_id(line.line_index, text),
            name=name,
            price=price,
            quantity=quantity,
            confidence=line.confidence,
            source_line_index=line.line_index,
            raw_text=text,
        )

    @staticmethod
    def _blank(text: str, *spans: Tuple[int, int]) -> str:
        """Replace every character inside ``spans`` with a space."""
        return "".join(
            " " if any(start <= i < end for start, end in spans) else ch
            for i, ch in enumerate(text)
        )

    def _split_quantity(self, text: str, found: PriceMatch) -> Tuple[int, Decimal, str]:
        """
        Find a quantity marker in the line and remove it with the price.

        Markers are searched in the original text. For 'N @ unit' lines the
        unit price replaces the detected price only when it is a different
        amount from the one the price matchers picked, since the amount at
        the end of such lines is the extended total.

        Returns:
            Tuple of (quantity, price, remaining_text).
        """
        price_span = (found.start, found.end)
        price = found.price

        m = self.QUANTITY_PREFIX.search(text)
        if m and m.end() <= found.start:
            return max(int(m.group(1)), 1), price, self._blank(text, (m.start(), m.end()), price_span)

        m = self.UNIT_PRICE.search(text)
        if m:
            quantity = max(int(m.group(1)), 1)
            if m.group(2) and not (m.start(2) < found.end and found.start < m.end(2)):
                unit = PriceNormalizer.try_parse_price(m.group(2))
                if unit is not None and PriceNormalizer.is_valid_item_price(unit, self.max_price):
                    price = unit
            remainder = self._blank(text, (m.start(), m.end()), price_span)
            # extended total printed after a currency-marked unit price
            extended = self.EXTENDED_TOTAL.match(remainder)
            if extended is not None and extended.start >= m.end():
                remainder = extended.remove_from(remainder)
            return quantity, price, remainder

        m = self.QTY_LABEL.search(text)
        if m:
            return max(int(m.group(1)), 1), price, self._blank(text, (m.start(), m.end()), price_span)

        return 1, price, found.remove_from(text)
