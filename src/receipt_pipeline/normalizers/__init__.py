"""Normalization of OCR text fragments into typed values."""

from .text import TextNormalizer
from .numbers import PriceNormalizer
from .datetime import DateNormalizer

__all__ = ["TextNormalizer", "PriceNormalizer", "DateNormalizer"]
