"""Data models for OCR lines, images and parsed receipts."""

from .ocr import OcrLine, OcrOptions, BoundingBox
from .image import (
    ImageSize,
    ImageQualityMetrics,
    ValidationConstraints,
    ValidationIssue,
    ValidationResult,
    PreprocessingMetadata,
    PreprocessingResult,
)
from .receipt import (
    ExtractedItem,
    FieldConfidence,
    PriceConsistency,
    ParsedReceipt,
    ScoredReceipt,
)
from .enums import (
    PreprocessLevel,
    PageSegmentationMode,
    EngineMode,
    IssueKind,
    IssueSeverity,
    ConfidenceStatus,
    OverallStatus,
)

__all__ = [
    "OcrLine",
    "OcrOptions",
    "BoundingBox",
    "ImageSize",
    "ImageQualityMetrics",
    "ValidationConstraints",
    "ValidationIssue",
    "ValidationResult",
    "PreprocessingMetadata",
    "PreprocessingResult",
    "ExtractedItem",
    "FieldConfidence",
    "PriceConsistency",
    "ParsedReceipt",
    "ScoredReceipt",
    "PreprocessLevel",
    "PageSegmentationMode",
    "EngineMode",
    "IssueKind",
    "IssueSeverity",
    "ConfidenceStatus",
    "OverallStatus",
]
