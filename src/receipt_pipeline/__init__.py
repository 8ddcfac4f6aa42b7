"""
Grocery receipt pipeline.

Validates receipt photos, cleans them up for OCR, runs tesseract and
turns the recognized lines into items, totals, a date and a merchant,
each with a confidence score.
"""

__version__ = "0.3.0"

from .pipeline import (
    ReceiptPipeline,
    ProcessingOptions,
    process_receipt_image,
    get_default_pipeline,
    reset_default_pipeline,
)
from .parser import ReceiptParser
from .config import PipelineSettings, ConfigurationError, get_settings, configure, reset_settings
from .models.receipt import ExtractedItem, ParsedReceipt, ScoredReceipt, FieldConfidence
from .models.ocr import OcrLine, OcrOptions
from .models.enums import PreprocessLevel, OverallStatus, ConfidenceStatus, IssueKind
from .imaging import ImageValidator, ImagePreprocessor
from .ocr import OcrEngine, TesseractEngine, FakeOcrEngine, EnginePool
from .scoring import ConfidenceScorer, PriceSumChecker
from .exceptions import (
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
from .logging import (
    configure_logging,
    get_logger,
    PipelineLogger,
    LoggingBackend,
    LoggingConfig,
    register_backend,
    unregister_backend,
    get_registered_backends,
    get_current_config,
    configure_for_file,
    StreamBackend,
    FileBackend,
    SocketBackend,
)

__all__ = [
    "ReceiptPipeline",
    "ProcessingOptions",
    "process_receipt_image",
    "get_default_pipeline",
    "reset_default_pipeline",
    "ReceiptParser",
    "PipelineSettings",
    "ConfigurationError",
    "get_settings",
    "configure",
    "reset_settings",
    "ExtractedItem",
    "ParsedReceipt",
    "ScoredReceipt",
    "FieldConfidence",
    "OcrLine",
    "OcrOptions",
    "PreprocessLevel",
    "OverallStatus",
    "ConfidenceStatus",
    "IssueKind",
    "ImageValidator",
    "ImagePreprocessor",
    "OcrEngine",
    "TesseractEngine",
    "FakeOcrEngine",
    "EnginePool",
    "ConfidenceScorer",
    "PriceSumChecker",
    # Exceptions
    "PipelineError",
    "InvalidImageError",
    "ValidationFailedError",
    "OcrError",
    "OcrFailureError",
    "OcrTimeoutError",
    "EnginePoolError",
    "NormalizationError",
    "PriceParseError",
    "DateParseError",
    "OutputError",
    "FileWriteError",
    # Logging
    "configure_logging",
    "get_logger",
    "PipelineLogger",
    "LoggingBackend",
    "LoggingConfig",
    "register_backend",
    "unregister_backend",
    "get_registered_backends",
    "get_current_config",
    "configure_for_file",
    "StreamBackend",
    "FileBackend",
    "SocketBackend",
]
