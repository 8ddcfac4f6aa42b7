"""Configuration management for the receipt pipeline.

Supports configuration via:
1. Environment variables
2. Dependency Injection (constructor parameters)
3. Default values

Environment Variables:
    RECEIPT_PIPELINE_PREPROCESS_LEVEL: none, quick, standard or full (default: none)
    RECEIPT_PIPELINE_OCR_LANGUAGE: Tesseract language code (default: eng)
    RECEIPT_PIPELINE_OCR_PAGE_SEGMENTATION: Tesseract --psm value (default: 6)
    RECEIPT_PIPELINE_OCR_ENGINE_MODE: Tesseract --oem value (default: 3)
    RECEIPT_PIPELINE_OCR_TIMEOUT_SECONDS: OCR time budget (default: 30)
    RECEIPT_PIPELINE_TESSERACT_CMD: Path to the tesseract binary (optional)
    RECEIPT_PIPELINE_ENGINE_POOL_SIZE: Number of pooled OCR engines (default: 1)
    RECEIPT_PIPELINE_MERCHANT_MIN_CONFIDENCE: Merchant line threshold (default: 0.7)
    RECEIPT_PIPELINE_LOW_CONFIDENCE_THRESHOLD: Review threshold (default: 0.7)
    RECEIPT_PIPELINE_LOG_FORMAT: Log format - 'json' or 'text' (default: json)
    RECEIPT_PIPELINE_LOG_LEVEL: Log level (default: INFO)
"""

import warnings
from decimal import Decimal
from typing import Optional, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from .models.enums import PreprocessLevel, PageSegmentationMode, EngineMode
from .models.image import ValidationConstraints
from .models.ocr import OcrOptions


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, field: str, value, message: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid configuration for '{field}': {message} (got: {value})")


class PipelineSettings(BaseSettings):
    """Pipeline configuration with environment variable support.

    Settings are loaded from environment variables with the
    RECEIPT_PIPELINE_ prefix and validated on load.
    """

    # Image validation
    min_width: int = Field(default=600, ge=1)
    min_height: int = Field(default=400, ge=1)
    min_file_size_bytes: int = Field(default=50 * 1024, ge=0)
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    min_sharpness: float = Field(default=10.0, ge=0.0)
    min_contrast: float = Field(default=30.0, ge=0.0)
    min_brightness: float = Field(default=50.0, ge=0.0, le=255.0)
    max_brightness: float = Field(default=200.0, ge=0.0, le=255.0)

    # Preprocessing
    preprocess_level: PreprocessLevel = Field(
        default=PreprocessLevel.NONE,
        description="Default preprocessing level when the caller does not pick one"
    )
    downscale_above_width: int = Field(
        default=2000,
        ge=0,
        description="Images wider than this are halved before OCR (0 disables)"
    )

    # OCR
    ocr_language: str = Field(default="eng", min_length=1)
    ocr_page_segmentation: PageSegmentationMode = PageSegmentationMode.SINGLE_BLOCK
    ocr_engine_mode: EngineMode = EngineMode.DEFAULT
    ocr_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Time budget for a single recognition call"
    )
    tesseract_cmd: Optional[str] = None
    engine_pool_size: int = Field(default=1, ge=1, le=16)
    max_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum number of worker threads (1-32)"
    )

    # Parsing
    max_item_price: Decimal = Field(default=Decimal("10000"))
    min_item_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    merchant_min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    merchant_search_lines: int = Field(default=5, ge=1)
    date_order: Literal["MDY", "DMY"] = "MDY"

    # Scoring
    low_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    price_sum_tolerance: Decimal = Field(default=Decimal("0.10"))

    # Logging
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log format: 'json' for structured, 'text' for human-readable"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    model_config = {
        "env_prefix": "RECEIPT_PIPELINE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("max_item_price")
    @classmethod
    def validate_max_item_price(cls, v: Decimal) -> Decimal:
        """Prices are bounded above; the bound itself must be positive."""
        if v <= 0:
            raise ValueError("Maximum item price must be > 0")
        return v

    @field_validator("price_sum_tolerance")
    @classmethod
    def validate_price_sum_tolerance(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price sum tolerance must be >= 0")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("date_order", mode="before")
    @classmethod
    def normalize_date_order(cls, v: str) -> str:
        if isinstance(v, str):
            return v.upper()
        return v

    @model_validator(mode="after")
    def validate_settings_combination(self) -> "PipelineSettings":
        """Validate combinations of settings that depend on each other."""
        if self.min_brightness >= self.max_brightness:
            raise ValueError("min_brightness must be lower than max_brightness")

        if self.min_file_size_bytes >= self.max_file_size_bytes:
            raise ValueError("min_file_size_bytes must be lower than max_file_size_bytes")

        if self.ocr_timeout_seconds > 300:
            warnings.warn(
                f"OCR timeout of {self.ocr_timeout_seconds}s is unusually long. "
                "Requests may hold worker threads for minutes.",
                UserWarning
            )

        if self.merchant_min_confidence < 0.3:
            warnings.warn(
                f"Very low merchant confidence threshold ({self.merchant_min_confidence}). "
                "Garbled header lines may be taken as the store name.",
                UserWarning
            )

        return self

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Create settings from environment variables."""
        return cls()

    def validation_constraints(self) -> ValidationConstraints:
        """Quality gates for the image validator."""
        return ValidationConstraints(
            min_width=self.min_width,
            min_height=self.min_height,
            min_file_size_bytes=self.min_file_size_bytes,
            max_file_size_bytes=self.max_file_size_bytes,
            min_sharpness=self.min_sharpness,
            min_contrast=self.min_contrast,
            min_brightness=self.min_brightness,
            max_brightness=self.max_brightness,
        )

    def ocr_options(self) -> OcrOptions:
        """Default recognition options."""
        return OcrOptions(
            page_segmentation=self.ocr_page_segmentation,
            engine_mode=self.ocr_engine_mode,
            language=self.ocr_language,
        )

    def with_overrides(self, **overrides) -> "PipelineSettings":
        """Create new settings with overridden values (DI pattern).

        None values are ignored so optional CLI arguments can be passed
        through unchanged.
        """
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            name = sorted(unknown)[0]
            raise ConfigurationError(name, overrides[name], "unknown setting")
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return PipelineSettings(**values)


# Global default settings instance (can be overridden)
_settings: Optional[PipelineSettings] = None


def get_settings() -> PipelineSettings:
    """Get current settings (lazy initialization from env)."""
    global _settings
    if _settings is None:
        _settings = PipelineSettings.from_env()
    return _settings


def configure(settings: PipelineSettings) -> None:
    """Configure global settings (useful for testing or DI)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to reload from environment (useful for testing)."""
    global _settings
    _settings = None
