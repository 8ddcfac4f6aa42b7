"""In-memory OCR engine for tests and CI machines without tesseract."""

import time
from typing import Optional, Sequence

from .base import OcrEngine, lines_from_text
from ..models.ocr import OcrLine, OcrOptions


class FakeOcrEngine(OcrEngine):
    """Returns canned lines regardless of the image.

    Example:
        engine = FakeOcrEngine(text="WALMART\\nMILK 3.49\\nTOTAL 3.49", confidence=0.92)
    """

    name = "fake"

    def __init__(
        self,
        lines: Optional[Sequence[OcrLine]] = None,
        text: Optional[str] = None,
        confidence: float = 0.9,
        delay_seconds: float = 0.0,
        error: Optional[Exception] = None,
    ):
        """
        Args:
            lines: Lines to return. Takes precedence over ``text``.
            text: Plain text split into lines with a uniform confidence.
            confidence: Confidence for lines built from ``text``.
            delay_seconds: Artificial latency per call.
            error: Raised from every ``recognize`` call when set.
        """
        if lines is not None:
            self.lines = list(lines)
        else:
            self.lines = lines_from_text(text or "", confidence)
        self.delay_seconds = delay_seconds
        self.error = error
        self.calls = 0
        self.last_options: Optional[OcrOptions] = None
        self.closed = False

    def recognize(
        self,
        image_bytes: bytes,
        options: Optional[OcrOptions] = None,
        timeout_seconds: Optional[float] = None,
    ) -> list[OcrLine]:
        self.calls += 1
        self.last_options = options
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return list(self.lines)

    def close(self) -> None:
        self.closed = True
