"""Confidence scoring and price consistency checks."""

from .confidence import (
    ConfidenceScorer,
    blend_confidence,
    confidence_status,
    overall_status,
)
from .consistency import PriceSumChecker

__all__ = [
    "ConfidenceScorer",
    "PriceSumChecker",
    "blend_confidence",
    "confidence_status",
    "overall_status",
]
