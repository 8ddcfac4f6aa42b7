"""Pydantic models for image validation and preprocessing results."""

from typing import Optional

from pydantic import BaseModel, Field

from .enums import IssueKind, IssueSeverity, PreprocessLevel


class ImageSize(BaseModel):
    """Pixel dimensions."""

    width: int = 0
    height: int = 0


class ValidationConstraints(BaseModel):
    """Quality gates applied by the image validator."""

    min_width: int = Field(default=600, ge=1)
    min_height: int = Field(default=400, ge=1)
    min_file_size_bytes: int = Field(default=50 * 1024, ge=0)
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    min_sharpness: float = Field(default=10.0, ge=0.0)
    min_contrast: float = Field(default=30.0, ge=0.0)
    min_brightness: float = Field(default=50.0, ge=0.0, le=255.0)
    max_brightness: float = Field(default=200.0, ge=0.0, le=255.0)


class ImageQualityMetrics(BaseModel):
    """Measurements taken from the decoded image.

    brightness is the mean luminance (0-255), contrast the luminance
    standard deviation, sharpness the variance of the Laplacian.
    """

    width: int
    height: int
    file_size_bytes: int
    format: Optional[str] = None
    brightness: float
    contrast: float
    sharpness: float


class ValidationIssue(BaseModel):
    """A single failed quality check and how to fix it."""

    kind: IssueKind
    severity: IssueSeverity = IssueSeverity.ERROR
    message: str
    remediation: str


class ValidationResult(BaseModel):
    """Outcome of image validation.

    ``valid`` is False as soon as one issue has error severity. Warnings
    alone never invalidate an image.
    """

    valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    metrics: Optional[ImageQualityMetrics] = None

    def kinds(self) -> set[IssueKind]:
        return {issue.kind for issue in self.issues}

    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.WARNING]


class PreprocessingMetadata(BaseModel):
    """Size bookkeeping for a preprocessing run."""

    original_size: ImageSize = Field(default_factory=ImageSize)
    processed_size: ImageSize = Field(default_factory=ImageSize)
    deskew_angle: Optional[float] = None


class PreprocessingResult(BaseModel):
    """Enhanced image bytes plus the exact list of operations applied.

    When preprocessing fails the original bytes are returned with an empty
    ``processing_applied`` list and ``fallback`` set.
    """

    processed_image: bytes
    processing_applied: list[str] = Field(default_factory=list)
    level: PreprocessLevel = PreprocessLevel.NONE
    metadata: PreprocessingMetadata = Field(default_factory=PreprocessingMetadata)
    fallback: bool = False
    error: Optional[str] = None
