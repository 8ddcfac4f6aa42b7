"""Image validation and preprocessing."""

from .validator import ImageValidator
from .preprocessor import ImagePreprocessor
from .decoding import decode_image

__all__ = ["ImageValidator", "ImagePreprocessor", "decode_image"]
