"""Image enhancement before OCR.

Levels build on each other:

    none      bytes passed through untouched
    quick     EXIF orientation, downscale of very wide images, grayscale,
              1st-99th percentile contrast stretch
    standard  quick + 3x3 median denoise + CLAHE
    full      standard + deskew + unsharp mask

Tesseract often reads clean phone photos better without enhancement, so
``none`` is the default level.
"""

import time
from typing import Optional, Union

import cv2
import numpy as np

from .decoding import apply_exif_orientation, decode_image, downsample, encode_png, to_gray_array
from ..exceptions import PipelineError
from ..logging import PipelineLogger
from ..models.enums import PreprocessLevel
from ..models.image import ImageSize, PreprocessingMetadata, PreprocessingResult


logger = PipelineLogger(__name__)


# Step names reported in ``processing_applied``
EXIF_ORIENTATION = "exif_orientation"
DOWNSCALE = "downscale"
GRAYSCALE = "grayscale"
CONTRAST_STRETCH = "contrast_stretch"
DENOISE = "denoise"
CLAHE = "clahe"
DESKEW = "deskew"
SHARPEN = "sharpen"

_LEVEL_ORDER = [
    PreprocessLevel.NONE,
    PreprocessLevel.QUICK,
    PreprocessLevel.STANDARD,
    PreprocessLevel.FULL,
]


def _at_least(level: PreprocessLevel, minimum: PreprocessLevel) -> bool:
    return _LEVEL_ORDER.index(level) >= _LEVEL_ORDER.index(minimum)


def stretch_contrast(gray: np.ndarray, low_pct: float = 1.0, high_pct: float = 99.0) -> np.ndarray:
    """Linearly map the [low_pct, high_pct] luminance percentiles to [0, 255]."""
    low, high = np.percentile(gray, (low_pct, high_pct))
    if high <= low:
        return gray
    scaled = (gray.astype(np.float32) - low) * (255.0 / (high - low))
    return np.clip(scaled, 0, 255).astype(np.uint8)


def unsharp_mask(gray: np.ndarray, amount: float = 0.8, radius: int = 2) -> np.ndarray:
    blur = cv2.GaussianBlur(gray, (0, 0), radius)
    return cv2.addWeighted(gray, 1 + amount, blur, -amount, 0)


def estimate_skew(
    gray: np.ndarray, max_angle: float = 10.0, step: float = 0.5, max_side: int = 800
) -> float:
    """
    Find the rotation that best aligns text rows with the image rows.

    Each candidate angle is applied to a binarized, downsampled copy and
    scored by how sharply the horizontal projection profile alternates
    between text rows and gaps. Ties go to the angle closest to zero.

    Returns:
        Angle in degrees to pass to ``rotate``; 0.0 for blank images.
    """
    small = downsample(gray, max_side)
    _, binary = cv2.threshold(small, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
    if not binary.any():
        return 0.0

    h, w = binary.shape
    center = (w / 2.0, h / 2.0)
    steps = int(round(max_angle / step))
    candidates = sorted((i * step for i in range(-steps, steps + 1)), key=abs)

    best_angle, best_score = 0.0, -1.0
    for angle in candidates:
        matrix = cv2.getRotationMatrix2D(center, angle, 1.0)
        rotated = cv2.warpAffine(binary, matrix, (w, h), flags=cv2.INTER_NEAREST, borderValue=0)
        profile = rotated.sum(axis=1, dtype=np.float64)
        score = float(np.sum(np.diff(profile) ** 2))
        if score > best_score:
            best_angle, best_score = angle, score
    return float(best_angle)


def rotate(gray: np.ndarray, angle: float) -> np.ndarray:
    h, w = gray.shape[:2]
    matrix = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle, 1.0)
    return cv2.warpAffine(
        gray, matrix, (w, h), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE
    )


class ImagePreprocessor:
    """
    Applies the enhancement steps of a preprocessing level.

    Failures never propagate: the original bytes come back with an empty
    ``processing_applied`` list and ``fallback`` set, and a warning is
    logged.
    """

    MIN_DESKEW_ANGLE = 0.5
    MAX_DESKEW_ANGLE = 10.0
    DESKEW_STEP = 0.5

    def __init__(self, downscale_above_width: int = 2000):
        """
        Args:
            downscale_above_width: Images wider than this are halved. 0 disables.
        """
        self.downscale_above_width = downscale_above_width

    def process(
        self, image_bytes: bytes, level: Union[PreprocessLevel, str] = PreprocessLevel.NONE
    ) -> PreprocessingResult:
        level = PreprocessLevel(level)
        if level == PreprocessLevel.NONE:
            return PreprocessingResult(processed_image=image_bytes, level=level)

        started = time.perf_counter()
        try:
            result = self._enhance(image_bytes, level)
        except (PipelineError, cv2.error, OSError, ValueError) as e:
            logger.preprocessing_failed(level=level.value, error=str(e))
            return PreprocessingResult(
                processed_image=image_bytes,
                level=level,
                fallback=True,
                error=str(e),
            )

        logger.preprocessing_applied(
            level=level.value,
            steps=result.processing_applied,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    def _enhance(self, image_bytes: bytes, level: PreprocessLevel) -> PreprocessingResult:
        applied: list[str] = []
        metadata = PreprocessingMetadata()

        img, _ = decode_image(image_bytes)
        try:
            img, rotated = apply_exif_orientation(img)
            if rotated:
                applied.append(EXIF_ORIENTATION)
            metadata.original_size = ImageSize(width=img.width, height=img.height)

            if self.downscale_above_width and img.width > self.downscale_above_width:
                resized = img.resize((max(1, img.width // 2), max(1, img.height // 2)))
                img.close()
                img = resized
                applied.append(DOWNSCALE)

            gray = to_gray_array(img)
        finally:
            img.close()
        applied.append(GRAYSCALE)

        gray = stretch_contrast(gray)
        applied.append(CONTRAST_STRETCH)

        if _at_least(level, PreprocessLevel.STANDARD):
            gray = cv2.medianBlur(gray, 3)
            applied.append(DENOISE)
            clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
            gray = clahe.apply(gray)
            applied.append(CLAHE)

        if _at_least(level, PreprocessLevel.FULL):
            angle = estimate_skew(gray, self.MAX_DESKEW_ANGLE, self.DESKEW_STEP)
            metadata.deskew_angle = angle
            if abs(angle) >= self.MIN_DESKEW_ANGLE:
                gray = rotate(gray, angle)
                applied.append(DESKEW)
            gray = unsharp_mask(gray)
            applied.append(SHARPEN)

        h, w = gray.shape[:2]
        metadata.processed_size = ImageSize(width=w, height=h)

        return PreprocessingResult(
            processed_image=encode_png(gray),
            processing_applied=applied,
            level=level,
            metadata=metadata,
        )
