"""OCR engine interface."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.ocr import OcrLine, OcrOptions


class OcrEngine(ABC):
    """Abstract base class for OCR engines.

    Engines may hold native resources (a subprocess, a model, a client
    session), so they are closed explicitly or used as context managers.
    An engine instance is used by one thread at a time; the pipeline's
    ``EnginePool`` enforces that.
    """

    name: str = "base"

    @abstractmethod
    def recognize(
        self,
        image_bytes: bytes,
        options: Optional[OcrOptions] = None,
        timeout_seconds: Optional[float] = None,
    ) -> list[OcrLine]:
        """
        Recognize the text lines of an image.

        Args:
            image_bytes: Encoded image.
            options: Page segmentation, engine mode and language.
            timeout_seconds: Hard limit for the engine call, if supported.

        Returns:
            Lines in top-to-bottom order, trimmed, without empty lines.

        Raises:
            InvalidImageError: If the bytes cannot be decoded.
            OcrFailureError: If the engine fails.
            OcrTimeoutError: If the engine exceeds ``timeout_seconds``.
        """
        pass

    def close(self) -> None:
        """Release engine resources."""

    def __enter__(self) -> "OcrEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def lines_from_text(text: str, confidence: float) -> list[OcrLine]:
    """
    Split plain text into OCR lines that all share one confidence.

    For engines that only report a document-level score. Every line gets
    the same confidence, so per-line weak spots are invisible to scoring.
    Scores above 1 are taken as percentages.
    """
    if confidence > 1.0:
        confidence = confidence / 100.0
    confidence = min(1.0, max(0.0, confidence))

    lines = []
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped:
            continue
        lines.append(OcrLine(text=stripped, confidence=confidence, line_index=len(lines)))
    return lines
