"""Enumeration types shared across pipeline stages."""

from enum import Enum


class PreprocessLevel(str, Enum):
    """Preprocessing intensity. Each level extends the previous one."""

    NONE = "none"
    QUICK = "quick"
    STANDARD = "standard"
    FULL = "full"


class PageSegmentationMode(int, Enum):
    """Tesseract page segmentation modes usable for receipts."""

    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6
    SPARSE = 11

    @classmethod
    def from_name(cls, name: str) -> "PageSegmentationMode":
        """Look up a mode by name ('single_block') or number ('6')."""
        key = name.strip()
        if key.isdigit():
            return cls(int(key))
        return cls[key.upper().replace("-", "_")]


class EngineMode(int, Enum):
    """Tesseract OCR engine modes."""

    LEGACY = 0
    NEURAL = 1
    LEGACY_AND_NEURAL = 2
    DEFAULT = 3

    @classmethod
    def from_name(cls, name: str) -> "EngineMode":
        """Look up a mode by name ('neural') or number ('1')."""
        key = name.strip()
        if key.isdigit():
            return cls(int(key))
        return cls[key.upper().replace("-", "_")]


class IssueKind(str, Enum):
    """Image quality problems reported by the validator."""

    UNREADABLE = "unreadable"
    RESOLUTION_TOO_LOW = "resolution_too_low"
    RESOLUTION_MARGINAL = "resolution_marginal"
    TOO_DARK = "too_dark"
    OVEREXPOSED = "overexposed"
    LOW_CONTRAST = "low_contrast"
    BLURRY = "blurry"
    FILE_TOO_SMALL = "file_too_small"
    FILE_TOO_LARGE = "file_too_large"


class IssueSeverity(str, Enum):
    """Errors make an image invalid, warnings are informational."""

    ERROR = "error"
    WARNING = "warning"


class ConfidenceStatus(str, Enum):
    """Band of a single field's confidence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class OverallStatus(str, Enum):
    """Band of a whole receipt's confidence."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
