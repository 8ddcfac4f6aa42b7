"""Custom exceptions for the receipt pipeline.

Every failure the pipeline reports to its caller is a subclass of
``PipelineError``. Parsing never raises: a receipt that could not be
understood comes back with a low confidence score instead.
"""

from typing import Optional, Any


class PipelineError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        details: Additional context for debugging
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# =============================================================================
# Image Errors
# =============================================================================

class InvalidImageError(PipelineError):
    """Raised when image bytes are empty or cannot be decoded."""

    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        details = details or {}
        details["reason"] = reason
        super().__init__(f"Image could not be decoded: {reason}", details)
        self.reason = reason


class ValidationFailedError(PipelineError):
    """Raised when an image decodes but fails the quality gates.

    The caller decides whether to ask for a new photo or to proceed anyway
    with ``validate=False``.
    """

    def __init__(self, issues: list):
        self.issues = list(issues)
        kinds = [issue.kind.value for issue in self.issues]
        super().__init__(
            f"Image failed quality validation: {', '.join(kinds)}",
            {"issues": kinds},
        )

    @property
    def remediations(self) -> list[str]:
        """Remediation hints for every failed check."""
        return [issue.remediation for issue in self.issues]


# =============================================================================
# OCR Errors
# =============================================================================

class OcrError(PipelineError):
    """Base class for recognition errors."""

    def __init__(self, message: str, engine: Optional[str] = None,
                 details: Optional[dict[str, Any]] = None):
        details = details or {}
        if engine:
            details["engine"] = engine
        super().__init__(message, details)
        self.engine = engine


class OcrFailureError(OcrError):
    """Raised when the OCR engine fails.

    Terminal for this attempt. Retrying with a different preprocessing
    level is the caller's decision.
    """

    def __init__(self, reason: str, engine: Optional[str] = None):
        super().__init__(f"OCR failed: {reason}", engine=engine)
        self.reason = reason


class OcrTimeoutError(OcrError):
    """Raised when recognition exceeds the caller's time budget."""

    def __init__(self, timeout_seconds: float, engine: Optional[str] = None):
        super().__init__(
            f"OCR did not finish within {timeout_seconds:g}s",
            engine=engine,
            details={"timeout_seconds": timeout_seconds},
        )
        self.timeout_seconds = timeout_seconds


class EnginePoolError(PipelineError):
    """Raised when no engine can be checked out of the pool."""

    def __init__(self, message: str, pool_size: Optional[int] = None):
        details = {}
        if pool_size is not None:
            details["pool_size"] = pool_size
        super().__init__(message, details)


# =============================================================================
# Normalization Errors
# =============================================================================

class NormalizationError(PipelineError):
    """Base class for normalization errors."""

    def __init__(self, input_value: str, message: str,
                 details: Optional[dict[str, Any]] = None):
        details = details or {}
        details["input_value"] = input_value
        super().__init__(message, details)
        self.input_value = input_value


class PriceParseError(NormalizationError):
    """Raised when an amount string cannot be turned into a price."""

    def __init__(self, input_value: str):
        super().__init__(
            input_value,
            f"Could not parse price from: '{input_value}'"
        )


class DateParseError(NormalizationError):
    """Raised when date parsing fails."""

    def __init__(self, input_value: str, supported_formats: Optional[list[str]] = None):
        details = {}
        if supported_formats:
            details["supported_formats"] = supported_formats
        super().__init__(
            input_value,
            f"Could not parse date from: '{input_value}'",
            details
        )


# =============================================================================
# Output Errors
# =============================================================================

class OutputError(PipelineError):
    """Base class for output-related errors."""
    pass


class FileWriteError(OutputError):
    """Raised when file writing fails."""

    def __init__(self, filepath: str, original_error: str):
        super().__init__(
            f"Failed to write file: {filepath}",
            {"filepath": filepath, "error": original_error}
        )
        self.filepath = filepath
