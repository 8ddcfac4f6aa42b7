"""Unit tests for custom exceptions."""

import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from receipt_pipeline.exceptions import (
    PipelineError,
    InvalidImageError,
    ValidationFailedError,
    OcrError,
    OcrFailureError,
    OcrTimeoutError,
    EnginePoolError,
    NormalizationError,
    PriceParseError,
    DateParseError,
    OutputError,
    FileWriteError,
)
from receipt_pipeline.models.enums import IssueKind
from receipt_pipeline.models.image import ValidationIssue


class TestPipelineError:
    """Tests for the base exception."""

    def test_message_only(self):
        e = PipelineError("Something broke")
        assert str(e) == "Something broke"
        assert e.details == {}

    def test_message_with_details(self):
        e = PipelineError("Something broke", {"stage": "ocr"})
        assert "Something broke" in str(e)
        assert "stage" in str(e)


class TestHierarchy:
    """Every reported failure is a PipelineError."""

    @pytest.mark.parametrize("error", [
        InvalidImageError("empty input"),
        ValidationFailedError([]),
        OcrFailureError("crashed"),
        OcrTimeoutError(5),
        EnginePoolError("shut down"),
        PriceParseError("abc"),
        DateParseError("13/45/2024"),
        FileWriteError("/tmp/x.json", "denied"),
    ])
    def test_is_pipeline_error(self, error):
        assert isinstance(error, PipelineError)

    def test_ocr_errors_share_base(self):
        assert issubclass(OcrFailureError, OcrError)
        assert issubclass(OcrTimeoutError, OcrError)

    def test_normalization_errors_share_base(self):
        assert issubclass(PriceParseError, NormalizationError)
        assert issubclass(DateParseError, NormalizationError)

    def test_output_errors_share_base(self):
        assert issubclass(FileWriteError, OutputError)


class TestImageErrors:
    """Tests for image related errors."""

    def test_invalid_image_reason(self):
        e = InvalidImageError("empty input")
        assert e.reason == "empty input"
        assert e.details["reason"] == "empty input"
        assert "could not be decoded" in e.message

    def test_validation_failed_lists_issues(self):
        issues = [
            ValidationIssue(kind=IssueKind.TOO_DARK, message="dark", remediation="Use more light."),
            ValidationIssue(kind=IssueKind.BLURRY, message="blurry", remediation="Hold still."),
        ]
        e = ValidationFailedError(issues)

        assert e.issues == issues
        assert e.details["issues"] == ["too_dark", "blurry"]
        assert e.remediations == ["Use more light.", "Hold still."]
        assert "too_dark" in str(e)


class TestOcrErrors:
    """Tests for OCR errors."""

    def test_failure_carries_engine(self):
        e = OcrFailureError("binary missing", engine="tesseract")
        assert e.engine == "tesseract"
        assert e.reason == "binary missing"
        assert e.details["engine"] == "tesseract"

    def test_timeout_message(self):
        e = OcrTimeoutError(2.5, engine="fake")
        assert e.timeout_seconds == 2.5
        assert "2.5s" in e.message
        assert e.details["timeout_seconds"] == 2.5

    def test_pool_error_size(self):
        e = EnginePoolError("busy", pool_size=2)
        assert e.details == {"pool_size": 2}


class TestNormalizationErrors:
    """Tests for normalization errors."""

    def test_price_parse_error(self):
        e = PriceParseError("12.3.4")
        assert e.input_value == "12.3.4"
        assert "12.3.4" in e.message

    def test_date_parse_error_formats(self):
        e = DateParseError("13/45/2024", ["MM/DD/YYYY"])
        assert e.input_value == "13/45/2024"
        assert e.details["supported_formats"] == ["MM/DD/YYYY"]


class TestOutputErrors:

    def test_file_write_error(self):
        e = FileWriteError("/readonly/out.csv", "Permission denied")
        assert e.filepath == "/readonly/out.csv"
        assert e.details["error"] == "Permission denied"
