"""Pytest configuration and fixtures."""

import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from receipt_pipeline.config import reset_settings
from receipt_pipeline.models.ocr import OcrLine


@pytest.fixture(autouse=True)
def clean_settings():
    """Every test starts from default settings with no env overrides."""
    saved = {k: v for k, v in os.environ.items() if k.startswith("RECEIPT_PIPELINE_")}
    for key in saved:
        del os.environ[key]
    reset_settings()
    yield
    reset_settings()
    for key in [k for k in os.environ if k.startswith("RECEIPT_PIPELINE_")]:
        del os.environ[key]
    os.environ.update(saved)


@pytest.fixture
def make_lines():
    """Create OCR lines from plain strings."""

    def _create(texts: list[str], confidence: float = 0.95) -> list[OcrLine]:
        return [
            OcrLine(text=text, confidence=confidence, line_index=i)
            for i, text in enumerate(texts)
        ]

    return _create


def _pixels(width: int, height: int, pattern: str) -> np.ndarray:
    if pattern == "stripes":
        # 10px black and white bands, like lines of print
        rows = (np.arange(height) // 10) % 2
        column = np.where(rows == 0, 255, 0).astype(np.uint8)
        return np.repeat(column[:, None], width, axis=1)
    if pattern == "receipt":
        # White paper with a thin dark line every 10 rows
        arr = np.full((height, width), 255, dtype=np.uint8)
        arr[::10, :] = 0
        return arr
    if pattern == "dark":
        return np.full((height, width), 20, dtype=np.uint8)
    if pattern == "noise":
        rng = np.random.default_rng(0)
        return rng.integers(0, 256, size=(height, width), dtype=np.uint8)
    raise ValueError(f"unknown pattern: {pattern}")


@pytest.fixture
def make_image_bytes():
    """Encode a synthetic grayscale image."""

    def _create(width: int = 1000, height: int = 800, pattern: str = "stripes",
                fmt: str = "PNG") -> bytes:
        buf = io.BytesIO()
        Image.fromarray(_pixels(width, height, pattern)).save(buf, format=fmt)
        return buf.getvalue()

    return _create


@pytest.fixture
def grocery_lines():
    """A complete, internally consistent grocery receipt."""
    return [
        "WALMART SUPERCENTER",
        "123 MAIN ST",
        "01/15/2024 14:32",
        "GV 100 BRD 078742366900 F 1.33 N",
        "2 x COFFEE 4.50",
        "BANANAS 1.29",
        "APPLES 3 @ 0.59 1.77",
        "SUBTOTAL 13.39",
        "TAX 8.25% 0.94",
        "TOTAL 14.33",
        "VISA 14.33",
        "THANK YOU",
    ]
