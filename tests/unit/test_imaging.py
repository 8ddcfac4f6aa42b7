"""Unit tests for image decoding, validation and preprocessing."""

import io

import numpy as np
import pytest
from PIL import Image

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from receipt_pipeline.exceptions import InvalidImageError
from receipt_pipeline.imaging import ImagePreprocessor, ImageValidator, decode_image
from receipt_pipeline.imaging import preprocessor as preprocessor_module
from receipt_pipeline.imaging import validator as validator_module
from receipt_pipeline.imaging.decoding import apply_exif_orientation, downsample, encode_png, to_gray_array
from receipt_pipeline.imaging.preprocessor import estimate_skew, rotate, stretch_contrast
from receipt_pipeline.models.enums import IssueKind, IssueSeverity, PreprocessLevel
from receipt_pipeline.models.image import ValidationConstraints


# Synthetic PNGs compress far below the default 50 KB floor
NO_SIZE_FLOOR = ValidationConstraints(min_file_size_bytes=0)


def _rotated_jpeg(width: int = 400, height: int = 300) -> bytes:
    img = Image.new("L", (width, height), 200)
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 CW
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    return buf.getvalue()


def _track_closes(monkeypatch, module) -> list:
    """Record every image returned by ``module.decode_image`` once it is closed."""
    closed = []
    real_decode = module.decode_image

    def decode(data):
        img, fmt = real_decode(data)
        real_close = img.close

        def close():
            closed.append(img)
            real_close()

        img.close = close
        return img, fmt

    monkeypatch.setattr(module, "decode_image", decode)
    return closed


def _boom(*args, **kwargs):
    raise ValueError("conversion failed")


class TestDecoding:
    """Tests for decode helpers."""

    def test_decode_png(self, make_image_bytes):
        img, fmt = decode_image(make_image_bytes(320, 200))
        assert fmt == "PNG"
        assert img.size == (320, 200)

    def test_decode_jpeg(self, make_image_bytes):
        _, fmt = decode_image(make_image_bytes(64, 64, fmt="JPEG"))
        assert fmt == "JPEG"

    def test_empty_bytes(self):
        with pytest.raises(InvalidImageError) as exc_info:
            decode_image(b"")
        assert exc_info.value.reason == "empty input"

    def test_garbage_bytes(self):
        with pytest.raises(InvalidImageError):
            decode_image(b"definitely not an image")

    def test_exif_orientation(self):
        img = Image.new("L", (40, 20), 255)
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW
        buf = io.BytesIO()
        img.save(buf, format="JPEG", exif=exif)

        plain, _ = decode_image(buf.getvalue())
        assert plain.size == (40, 20)

        fixed, rotated = apply_exif_orientation(plain)
        assert rotated
        assert fixed.size == (20, 40)

    def test_no_exif_orientation_is_untouched(self, make_image_bytes):
        img, _ = decode_image(make_image_bytes(40, 20))
        same, rotated = apply_exif_orientation(img)
        assert not rotated
        assert same is img

    def test_gray_array_and_png(self):
        rgb = Image.new("RGB", (10, 5), (255, 255, 255))
        gray = to_gray_array(rgb)
        assert gray.shape == (5, 10)
        assert gray.dtype == np.uint8
        _, fmt = decode_image(encode_png(gray))
        assert fmt == "PNG"

    def test_downsample(self):
        gray = np.zeros((400, 2000), dtype=np.uint8)
        assert downsample(gray, 1000).shape == (200, 1000)
        assert downsample(gray, 5000) is gray


class TestImageValidator:
    """Tests for ImageValidator."""

    def test_good_image(self, make_image_bytes):
        result = ImageValidator(NO_SIZE_FLOOR).validate(make_image_bytes(1000, 800, "stripes"))

        assert result.valid
        assert result.issues == []
        assert result.metrics.width == 1000
        assert result.metrics.format == "PNG"
        assert result.metrics.brightness == pytest.approx(127.5, abs=1)

    def test_small_dark_image(self, make_image_bytes):
        result = ImageValidator().validate(make_image_bytes(100, 100, "dark"))

        assert not result.valid
        kinds = result.kinds()
        assert IssueKind.RESOLUTION_TOO_LOW in kinds
        assert IssueKind.TOO_DARK in kinds
        assert IssueKind.LOW_CONTRAST in kinds
        assert IssueKind.BLURRY in kinds
        assert IssueKind.FILE_TOO_SMALL in kinds

    def test_every_issue_has_remediation(self, make_image_bytes):
        result = ImageValidator().validate(make_image_bytes(100, 100, "dark"))
        assert all(issue.remediation for issue in result.issues)

    def test_overexposed_is_warning_only(self, make_image_bytes):
        result = ImageValidator(NO_SIZE_FLOOR).validate(make_image_bytes(1000, 800, "receipt"))

        assert result.valid
        assert [i.kind for i in result.warnings()] == [IssueKind.OVEREXPOSED]
        assert result.errors() == []

    def test_marginal_resolution_warning(self, make_image_bytes):
        result = ImageValidator(NO_SIZE_FLOOR).validate(make_image_bytes(700, 500, "stripes"))

        assert result.valid
        issue = result.issues[0]
        assert issue.kind == IssueKind.RESOLUTION_MARGINAL
        assert issue.severity == IssueSeverity.WARNING

    def test_file_too_large(self, make_image_bytes):
        limits = ValidationConstraints(min_file_size_bytes=0, max_file_size_bytes=100)
        result = ImageValidator().validate(make_image_bytes(1000, 800, "stripes"), limits)

        assert not result.valid
        assert result.kinds() == {IssueKind.FILE_TOO_LARGE}

    def test_unreadable(self):
        result = ImageValidator().validate(b"\x89PNG broken")

        assert not result.valid
        assert len(result.issues) == 1
        assert result.issues[0].kind == IssueKind.UNREADABLE
        assert result.metrics is None

    def test_per_call_constraints(self, make_image_bytes):
        data = make_image_bytes(300, 200, "stripes")
        validator = ImageValidator(NO_SIZE_FLOOR)

        assert not validator.validate(data).valid
        relaxed = ValidationConstraints(min_width=100, min_height=100, min_file_size_bytes=0)
        assert validator.validate(data, relaxed).valid

    def test_measure(self, make_image_bytes):
        metrics = ImageValidator().measure(make_image_bytes(200, 200, "dark"))
        assert metrics.brightness == pytest.approx(20)
        assert metrics.contrast == pytest.approx(0)
        assert metrics.sharpness == pytest.approx(0)


class TestPreprocessingHelpers:

    def test_stretch_contrast(self):
        gray = np.tile(np.linspace(100, 150, 256).astype(np.uint8), (10, 1))
        stretched = stretch_contrast(gray)
        assert stretched.min() == 0
        assert stretched.max() == 255

    def test_stretch_flat_image_unchanged(self):
        gray = np.full((10, 10), 80, dtype=np.uint8)
        assert stretch_contrast(gray) is gray

    def _stripes(self) -> np.ndarray:
        rows = (np.arange(300) // 10) % 2
        column = np.where(rows == 0, 255, 0).astype(np.uint8)
        return np.repeat(column[:, None], 400, axis=1)

    def test_level_text_has_no_skew(self):
        assert estimate_skew(self._stripes()) == 0.0

    def test_skew_is_corrected(self):
        tilted = rotate(self._stripes(), 3.0)
        assert abs(estimate_skew(tilted) + 3.0) <= 1.0


class TestImagePreprocessor:
    """Tests for ImagePreprocessor."""

    def test_none_passes_bytes_through(self, make_image_bytes):
        data = make_image_bytes(400, 300)
        result = ImagePreprocessor().process(data, PreprocessLevel.NONE)

        assert result.processed_image is data
        assert result.processing_applied == []
        assert not result.fallback

    def test_quick(self, make_image_bytes):
        result = ImagePreprocessor().process(make_image_bytes(400, 300), "quick")

        assert result.processing_applied == ["grayscale", "contrast_stretch"]
        assert result.level == PreprocessLevel.QUICK
        _, fmt = decode_image(result.processed_image)
        assert fmt == "PNG"

    def test_standard(self, make_image_bytes):
        result = ImagePreprocessor().process(make_image_bytes(400, 300), PreprocessLevel.STANDARD)

        assert result.processing_applied == [
            "grayscale", "contrast_stretch", "denoise", "clahe",
        ]

    def test_full(self, make_image_bytes):
        result = ImagePreprocessor().process(make_image_bytes(400, 300), PreprocessLevel.FULL)

        assert result.processing_applied[:4] == [
            "grayscale", "contrast_stretch", "denoise", "clahe",
        ]
        assert result.processing_applied[-1] == "sharpen"
        assert result.metadata.deskew_angle is not None

    def test_downscale_wide_images(self, make_image_bytes):
        result = ImagePreprocessor(downscale_above_width=2000).process(
            make_image_bytes(2400, 200), PreprocessLevel.QUICK
        )

        assert "downscale" in result.processing_applied
        assert result.metadata.original_size.width == 2400
        assert result.metadata.processed_size.width == 1200

    def test_downscale_disabled(self, make_image_bytes):
        result = ImagePreprocessor(downscale_above_width=0).process(
            make_image_bytes(2400, 200), PreprocessLevel.QUICK
        )
        assert "downscale" not in result.processing_applied

    def test_failure_falls_back_to_original(self):
        data = b"not an image at all"
        result = ImagePreprocessor().process(data, PreprocessLevel.FULL)

        assert result.fallback
        assert result.processed_image == data
        assert result.processing_applied == []
        assert result.error

    def test_unknown_level_rejected(self, make_image_bytes):
        with pytest.raises(ValueError):
            ImagePreprocessor().process(make_image_bytes(40, 30), "extreme")

    def test_exif_rotation_recorded_when_applied(self):
        result = ImagePreprocessor().process(_rotated_jpeg(400, 300), PreprocessLevel.QUICK)

        assert result.processing_applied[0] == "exif_orientation"
        assert result.metadata.original_size.width == 300
        assert result.metadata.processed_size.height == 400

    def test_image_closed_when_conversion_fails(self, monkeypatch, make_image_bytes):
        closed = _track_closes(monkeypatch, preprocessor_module)
        monkeypatch.setattr(preprocessor_module, "to_gray_array", _boom)

        data = make_image_bytes(400, 300)
        result = ImagePreprocessor().process(data, PreprocessLevel.QUICK)

        assert result.fallback
        assert result.processed_image is data
        assert len(closed) == 1

    def test_original_closed_when_downscaled(self, monkeypatch, make_image_bytes):
        closed = _track_closes(monkeypatch, preprocessor_module)

        ImagePreprocessor(downscale_above_width=200).process(
            make_image_bytes(400, 100), PreprocessLevel.QUICK
        )
        assert len(closed) == 1


class TestValidatorResources:
    """Decoded images are released by the validator."""

    def test_image_closed_after_measure(self, monkeypatch, make_image_bytes):
        closed = _track_closes(monkeypatch, validator_module)
        ImageValidator(NO_SIZE_FLOOR).measure(make_image_bytes(200, 100))
        assert len(closed) == 1

    def test_image_closed_when_conversion_fails(self, monkeypatch, make_image_bytes):
        closed = _track_closes(monkeypatch, validator_module)
        monkeypatch.setattr(validator_module, "to_gray_array", _boom)

        with pytest.raises(ValueError, match="conversion failed"):
            ImageValidator(NO_SIZE_FLOOR).measure(make_image_bytes(200, 100))
        assert len(closed) == 1
