"""Price parsing and normalization."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..exceptions import PriceParseError


class PriceNormalizer:
    """Turns amount strings read by OCR into ``Decimal`` prices."""

    CURRENCY_PREFIX = re.compile(r"^\s*[$€£S]\s*")
    CENTS = Decimal("0.01")
    MAX_ITEM_PRICE = Decimal("10000")

    @classmethod
    def parse_price(cls, text: str) -> Decimal:
        """
        Parse an amount string to a Decimal rounded to cents.

        Uses string parsing only, never floats. Handles OCR misreads:
        - '$4.50' -> Decimal('4.50')
        - 'S4.50' -> Decimal('4.50') (S read for $)
        - '1.9O'  -> Decimal('1.90') (letter O read for zero)
        - '1,99'  -> Decimal('1.99') (comma as decimal separator)
        - '1,234.56' -> Decimal('1234.56')

        Raises:
            PriceParseError: If no amount can be read.
        """
        if not text or not text.strip():
            raise PriceParseError(text or "")

        cleaned = cls.CURRENCY_PREFIX.sub("", text).strip()
        cleaned = cleaned.replace("O", "0").replace("o", "0")

        if "," in cleaned and "." in cleaned:
            cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            if re.fullmatch(r"\d+,\d{1,2}", cleaned):
                cleaned = cleaned.replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")

        if not re.fullmatch(r"\d+(?:\.\d{1,2})?", cleaned):
            raise PriceParseError(text)

        try:
            return Decimal(cleaned).quantize(cls.CENTS)
        except InvalidOperation:
            raise PriceParseError(text)

    @classmethod
    def try_parse_price(cls, text: str) -> Optional[Decimal]:
        """Like ``parse_price`` but returns None instead of raising."""
        try:
            return cls.parse_price(text)
        except PriceParseError:
            return None

    @classmethod
    def is_valid_item_price(cls, price: Decimal, max_price: Optional[Decimal] = None) -> bool:
        """Item prices must satisfy 0 < price < max_price."""
        upper = max_price if max_price is not None else cls.MAX_ITEM_PRICE
        return Decimal("0") < price < upper
