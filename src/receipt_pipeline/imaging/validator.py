"""Image quality gates run before OCR."""

from typing import Optional

import cv2
import numpy as np

from .decoding import decode_image, to_gray_array, downsample
from ..exceptions import InvalidImageError
from ..logging import get_logger
from ..models.enums import IssueKind, IssueSeverity
from ..models.image import (
    ImageQualityMetrics,
    ValidationConstraints,
    ValidationIssue,
    ValidationResult,
)


logger = get_logger(__name__)


REMEDIATIONS = {
    IssueKind.UNREADABLE: "Upload a JPEG, PNG or WebP photo of the receipt.",
    IssueKind.RESOLUTION_TOO_LOW: "Move the camera closer or use a higher resolution setting.",
    IssueKind.RESOLUTION_MARGINAL: "Move the camera closer so small print is legible.",
    IssueKind.TOO_DARK: "Take the photo in better lighting or turn on the flash.",
    IssueKind.OVEREXPOSED: "Avoid direct light and glare on the receipt.",
    IssueKind.LOW_CONTRAST: "Place the receipt on a dark, plain background.",
    IssueKind.BLURRY: "Hold the camera steady and tap to focus before taking the photo.",
    IssueKind.FILE_TOO_SMALL: "Upload the original photo instead of a compressed copy.",
    IssueKind.FILE_TOO_LARGE: "Reduce the photo size or crop to the receipt.",
}


class ImageValidator:
    """
    Checks that an image is worth sending to OCR.

    All checks run and their issues accumulate, so a caller can show every
    problem at once. Errors make the image invalid; warnings do not.
    Validation has no side effects besides debug logging.
    """

    # Metrics are computed on a copy no larger than this
    ANALYSIS_MAX_SIDE = 1024
    # Below this multiple of the minimum size a warning is raised
    MARGINAL_FACTOR = 1.5

    def __init__(self, constraints: Optional[ValidationConstraints] = None):
        self.constraints = constraints or ValidationConstraints()

    def measure(self, image_bytes: bytes) -> ImageQualityMetrics:
        """
        Decode the image and take its quality measurements.

        Raises:
            InvalidImageError: If the bytes cannot be decoded.
        """
        img, fmt = decode_image(image_bytes)
        try:
            width, height = img.size
            gray = downsample(to_gray_array(img), self.ANALYSIS_MAX_SIDE)
        finally:
            img.close()

        return ImageQualityMetrics(
            width=width,
            height=height,
            file_size_bytes=len(image_bytes),
            format=fmt,
            brightness=float(np.mean(gray)),
            contrast=float(np.std(gray)),
            sharpness=float(cv2.Laplacian(gray, cv2.CV_64F).var()),
        )

    def validate(
        self, image_bytes: bytes, constraints: Optional[ValidationConstraints] = None
    ) -> ValidationResult:
        """
        Validate image bytes against the quality constraints.

        Args:
            image_bytes: Encoded image.
            constraints: Overrides the validator's constraints for this call.

        Returns:
            ValidationResult. Undecodable input yields a single
            ``unreadable`` issue.
        """
        limits = constraints or self.constraints

        try:
            metrics = self.measure(image_bytes)
        except InvalidImageError as e:
            logger.debug("image_unreadable", reason=e.reason)
            return ValidationResult(
                valid=False,
                issues=[self._issue(IssueKind.UNREADABLE, f"Image could not be decoded: {e.reason}")],
            )

        issues = []
        issues.extend(self._check_resolution(metrics, limits))
        issues.extend(self._check_file_size(metrics, limits))
        issues.extend(self._check_exposure(metrics, limits))

        if metrics.contrast < limits.min_contrast:
            issues.append(self._issue(
                IssueKind.LOW_CONTRAST,
                f"Contrast {metrics.contrast:.1f} is below {limits.min_contrast:g}",
            ))

        if metrics.sharpness < limits.min_sharpness:
            issues.append(self._issue(
                IssueKind.BLURRY,
                f"Sharpness {metrics.sharpness:.1f} is below {limits.min_sharpness:g}",
            ))

        valid = not any(issue.severity == IssueSeverity.ERROR for issue in issues)
        logger.debug(
            "image_validated",
            valid=valid,
            issues=[issue.kind.value for issue in issues],
            width=metrics.width,
            height=metrics.height,
        )
        return ValidationResult(valid=valid, issues=issues, metrics=metrics)

    def _check_resolution(self, metrics: ImageQualityMetrics, limits: ValidationConstraints):
        if metrics.width < limits.min_width or metrics.height < limits.min_height:
            yield self._issue(
                IssueKind.RESOLUTION_TOO_LOW,
                f"Image is {metrics.width}x{metrics.height}, "
                f"minimum is {limits.min_width}x{limits.min_height}",
            )
        elif (metrics.width < limits.min_width * self.MARGINAL_FACTOR
              or metrics.height < limits.min_height * self.MARGINAL_FACTOR):
            yield self._issue(
                IssueKind.RESOLUTION_MARGINAL,
                f"Image is {metrics.width}x{metrics.height}, small print may be unreadable",
                IssueSeverity.WARNING,
            )

    def _check_file_size(self, metrics: ImageQualityMetrics, limits: ValidationConstraints):
        if metrics.file_size_bytes < limits.min_file_size_bytes:
            yield self._issue(
                IssueKind.FILE_TOO_SMALL,
                f"File is {metrics.file_size_bytes} bytes, "
                f"minimum is {limits.min_file_size_bytes}",
            )
        elif metrics.file_size_bytes > limits.max_file_size_bytes:
            yield self._issue(
                IssueKind.FILE_TOO_LARGE,
                f"File is {metrics.file_size_bytes} bytes, "
                f"maximum is {limits.max_file_size_bytes}",
            )

    def _check_exposure(self, metrics: ImageQualityMetrics, limits: ValidationConstraints):
        if metrics.brightness < limits.min_brightness:
            yield self._issue(
                IssueKind.TOO_DARK,
                f"Brightness {metrics.brightness:.1f} is below {limits.min_brightness:g}",
            )
        elif metrics.brightness > limits.max_brightness:
            yield self._issue(
                IssueKind.OVEREXPOSED,
                f"Brightness {metrics.brightness:.1f} is above {limits.max_brightness:g}",
                IssueSeverity.WARNING,
            )

    @staticmethod
    def _issue(
        kind: IssueKind, message: str, severity: IssueSeverity = IssueSeverity.ERROR
    ) -> ValidationIssue:
        return ValidationIssue(
            kind=kind,
            severity=severity,
            message=message,
            remediation=REMEDIATIONS[kind],
        )
