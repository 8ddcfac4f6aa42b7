"""OCR engines."""

from .base import OcrEngine, lines_from_text
from .tesseract import TesseractEngine
from .fake import FakeOcrEngine
from .pool import EnginePool

__all__ = [
    "OcrEngine",
    "lines_from_text",
    "TesseractEngine",
    "FakeOcrEngine",
    "EnginePool",
]
