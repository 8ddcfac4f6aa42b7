"""Pydantic models for OCR engine input options and output lines."""

from typing import Optional

from pydantic import BaseModel, Field

from .enums import PageSegmentationMode, EngineMode


class BoundingBox(BaseModel):
    """Pixel geometry of a recognized line."""

    left: int
    top: int
    right: int
    bottom: int

    model_config = {"frozen": True}

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Smallest box containing both boxes."""
        return BoundingBox(
            left=min(self.left, other.left),
            top=min(self.top, other.top),
            right=max(self.right, other.right),
            bottom=max(self.bottom, other.bottom),
        )


class OcrLine(BaseModel):
    """One line of recognized text, in top-to-bottom receipt order."""

    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    line_index: int = Field(ge=0)
    bounding_box: Optional[BoundingBox] = None

    model_config = {"frozen": True}


class OcrOptions(BaseModel):
    """Recognition options.

    The defaults suit narrow single-column thermal receipts. Multi-column
    warehouse receipts usually read better with ``AUTO`` or ``SPARSE``.
    """

    page_segmentation: PageSegmentationMode = PageSegmentationMode.SINGLE_BLOCK
    engine_mode: EngineMode = EngineMode.DEFAULT
    language: str = "eng"
    extra_config: str = ""

    def tesseract_config(self) -> str:
        """Command line flags for the tesseract binary."""
        config = f"--psm {int(self.page_segmentation)} --oem {int(self.engine_mode)}"
        if self.extra_config:
            config = f"{config} {self.extra_config}"
        return config
