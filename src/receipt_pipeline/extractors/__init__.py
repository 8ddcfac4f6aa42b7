"""Field extractors for receipt OCR lines."""

from .base import BaseExtractor, FieldMatch
from .prices import (
    PriceMatch,
    PriceMatcher,
    CurrencySymbolMatcher,
    TrailingDecimalMatcher,
    OcrTolerantMatcher,
    DEFAULT_MATCHERS,
    match_price,
)
from .items import ItemExtractor, is_non_item_line, make_item_id
from .totals import TotalsExtractor
from .date import DateExtractor
from .merchant import MerchantExtractor

__all__ = [
    "BaseExtractor",
    "FieldMatch",
    "PriceMatch",
    "PriceMatcher",
    "CurrencySymbolMatcher",
    "TrailingDecimalMatcher",
    "OcrTolerantMatcher",
    "DEFAULT_MATCHERS",
    "match_price",
    "ItemExtractor",
    "is_non_item_line",
    "make_item_id",
    "TotalsExtractor",
    "DateExtractor",
    "MerchantExtractor",
]
