"""Base class for field extractors."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..models.ocr import OcrLine


@dataclass(frozen=True)
class FieldMatch:
    """A field value and the OCR line it was read from."""

    value: Any
    confidence: float
    line_index: int


class BaseExtractor(ABC):
    """Abstract base class for field extractors."""

    def __init__(self, min_confidence: float = 0.0):
        """
        Initialize extractor.

        Args:
            min_confidence: Lines below this OCR confidence are ignored.
        """
        self.min_confidence = min_confidence

    @abstractmethod
    def extract(self, lines: list[OcrLine]) -> Any:
        """
        Extract field value(s) from OCR lines.

        Args:
            lines: OCR lines in top-to-bottom order.

        Returns:
            The extracted value(s). Missing fields are None, never an error.
        """
        pass

    def is_confident(self, line: OcrLine) -> bool:
        return line.confidence >= self.min_confidence
