"""Image decoding and conversion helpers shared by the imaging stages."""

import io
from typing import Tuple, Optional

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import InvalidImageError


_DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError)

EXIF_ORIENTATION_TAG = 0x0112
# 1 is upright, 2-8 mirror or rotate
ROTATING_ORIENTATIONS = frozenset(range(2, 9))


def decode_image(image_bytes: bytes) -> Tuple[Image.Image, Optional[str]]:
    """
    Decode image bytes into a fully loaded Pillow image.

    The source buffer is closed before returning, so the returned image
    does not hold on to ``image_bytes``.

    Args:
        image_bytes: Encoded JPEG/PNG/WebP/... data.

    Returns:
        Tuple of (image, format name such as 'JPEG').

    Raises:
        InvalidImageError: If the bytes are empty or not a decodable image.
    """
    if not image_bytes:
        raise InvalidImageError("empty input")

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            fmt = img.format
            decoded = img.copy()
    except _DECODE_ERRORS as e:
        raise InvalidImageError(str(e) or type(e).__name__, {"size_bytes": len(image_bytes)})

    return decoded, fmt


def apply_exif_orientation(img: Image.Image) -> Tuple[Image.Image, bool]:
    """
    Rotate pixels according to the EXIF Orientation tag.

    When the image is rotated the input image is closed and a new one is
    returned. Images without a rotating tag come back unchanged.

    Returns:
        Tuple of (image, whether it was rotated).
    """
    orientation = img.getexif().get(EXIF_ORIENTATION_TAG, 1)
    if orientation not in ROTATING_ORIENTATIONS:
        return img, False
    rotated = ImageOps.exif_transpose(img)
    img.close()
    return rotated, True


def to_gray_array(img: Image.Image) -> np.ndarray:
    """Convert a Pillow image of any mode to an 8-bit grayscale array."""
    arr = np.array(img.convert("RGB"))
    return cv2.cvtColor(arr, cv2.COLOR_RGB2GRAY)


def downsample(gray: np.ndarray, max_side: int) -> np.ndarray:
    """Shrink so the longer side is at most ``max_side`` pixels."""
    h, w = gray.shape[:2]
    longest = max(h, w)
    if longest <= max_side:
        return gray
    scale = max_side / float(longest)
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return cv2.resize(gray, size, interpolation=cv2.INTER_AREA)


def encode_png(gray: np.ndarray) -> bytes:
    """Encode a grayscale array as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(gray).save(buf, format="PNG")
    return buf.getvalue()
