"""End-to-end receipt pipeline: validate, preprocess, OCR, parse, score."""

import asyncio
import atexit
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional, Union

from .config import get_settings, PipelineSettings
from .exceptions import (
    EnginePoolError,
    InvalidImageError,
    OcrError,
    OcrFailureError,
    OcrTimeoutError,
    PipelineError,
    ValidationFailedError,
)
from .imaging.preprocessor import ImagePreprocessor
from .imaging.validator import ImageValidator
from .logging import PipelineLogger
from .models.enums import IssueKind, PreprocessLevel
from .models.image import ValidationConstraints
from .models.ocr import OcrLine, OcrOptions
from .models.receipt import ScoredReceipt
from .ocr.base import OcrEngine
from .ocr.pool import EnginePool
from .ocr.tesseract import TesseractEngine
from .parser import ReceiptParser
from .scoring.confidence import ConfidenceScorer
from .scoring.consistency import PriceSumChecker


logger = PipelineLogger(__name__)


@dataclass
class ProcessingOptions:
    """Per-call options. None means 'use the pipeline settings'."""
    preprocess_level: Optional[Union[PreprocessLevel, str]] = None
    validate: bool = True
    ocr: Optional[OcrOptions] = None
    timeout_seconds: Optional[float] = None
    constraints: Optional[ValidationConstraints] = None


class ReceiptPipeline:
    """
    Turns a receipt photo into a scored, structured receipt.

    Each call is independent. OCR runs on a worker thread so the call's
    time budget can be enforced; engines come from an ``EnginePool`` owned
    by the pipeline. Close the pipeline (or use it as a context manager)
    to release the engines and threads.

    Usage:
        with ReceiptPipeline() as pipeline:
            receipt = pipeline.process(image_bytes)
            for item in receipt.items:
                print(item.name, item.price)
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        engine: Optional[OcrEngine] = None,
        engine_factory: Optional[Callable[[], OcrEngine]] = None,
        validator: Optional[ImageValidator] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        parser: Optional[ReceiptParser] = None,
        scorer: Optional[ConfidenceScorer] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize pipeline.

        Args:
            settings: Optional PipelineSettings instance for Dependency Injection.
            engine: A single engine to use for every call (pool of one).
            engine_factory: Creates pooled engines. Defaults to Tesseract.
            validator: Custom image validator.
            preprocessor: Custom preprocessor.
            parser: Custom receipt parser.
            scorer: Custom confidence scorer.
            max_workers: Worker threads for OCR and ``process_async``.
        """
        self._settings = settings or get_settings()
        s = self._settings

        if engine is not None:
            self._pool = EnginePool(lambda: engine, size=1)
        else:
            factory = engine_factory or partial(
                TesseractEngine, tesseract_cmd=s.tesseract_cmd, default_options=s.ocr_options()
            )
            self._pool = EnginePool(factory, size=s.engine_pool_size)

        self.validator = validator or ImageValidator(s.validation_constraints())
        self.preprocessor = preprocessor or ImagePreprocessor(s.downscale_above_width)
        self.parser = parser or ReceiptParser(settings=s)
        self.scorer = scorer or ConfidenceScorer(
            low_confidence_threshold=s.low_confidence_threshold,
            price_checker=PriceSumChecker(s.price_sum_tolerance),
        )

        self._max_workers = max_workers if max_workers is not None else s.max_workers
        self._ocr_executor: Optional[ThreadPoolExecutor] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    @property
    def engine_pool(self) -> EnginePool:
        return self._pool

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _get_ocr_executor(self) -> ThreadPoolExecutor:
        """Lazy initialization of the OCR worker threads."""
        if self._ocr_executor is None:
            self._ocr_executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="receipt-ocr"
            )
        return self._ocr_executor

    def _get_executor(self) -> ThreadPoolExecutor:
        """Lazy initialization of the threads behind ``process_async``."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="receipt-pipeline"
            )
        return self._executor

    def _run_engine(self, image_bytes: bytes, options: OcrOptions, timeout: float) -> list[OcrLine]:
        with self._pool.engine() as engine:
            return engine.recognize(image_bytes, options, timeout_seconds=timeout)

    def recognize(
        self,
        image_bytes: bytes,
        options: Optional[OcrOptions] = None,
        timeout_seconds: Optional[float] = None,
    ) -> list[OcrLine]:
        """
        Run OCR under a time budget.

        On timeout the future is cancelled and no partial result is kept;
        the engine's own timeout stops the underlying work.

        Raises:
            OcrTimeoutError: If the budget is exceeded.
            OcrFailureError: If the engine fails or finds no usable text.
            EnginePoolError: If the pipeline has been closed.
        """
        if self._closed:
            raise EnginePoolError("Pipeline is closed", self._pool.size)

        options = options or self._settings.ocr_options()
        timeout = timeout_seconds or self._settings.ocr_timeout_seconds

        future = self._get_ocr_executor().submit(self._run_engine, image_bytes, options, timeout)
        try:
            lines = future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            raise OcrTimeoutError(timeout, engine=self._pool.engine_name)
        except PipelineError:
            raise
        except Exception as e:
            raise OcrFailureError(str(e) or type(e).__name__, engine=self._pool.engine_name) from e

        if not any(any(ch.isalnum() for ch in line.text) for line in lines):
            raise OcrFailureError("no usable text", engine=self._pool.engine_name)
        return lines

    # =========================================================================
    # Main Processing Methods
    # =========================================================================

    def process(self, image_bytes: bytes, options: Optional[ProcessingOptions] = None) -> ScoredReceipt:
        """
        Process one receipt image.

        Args:
            image_bytes: Encoded JPEG/PNG/WebP image.
            options: Per-call options.

        Returns:
            ScoredReceipt.

        Raises:
            InvalidImageError: If the bytes are empty or undecodable.
            ValidationFailedError: If validation is on and a quality gate fails.
            OcrFailureError: If the OCR engine fails or finds no usable text.
            OcrTimeoutError: If OCR exceeds the time budget.
            EnginePoolError: If the pipeline has been closed.
        """
        started = time.perf_counter()
        options = options or ProcessingOptions()
        level = PreprocessLevel(options.preprocess_level or self._settings.preprocess_level)

        logger.pipeline_started(
            image_size=len(image_bytes or b""),
            level=level.value,
            validate=options.validate,
        )

        if not image_bytes:
            raise InvalidImageError("empty input")

        metrics = None
        if options.validate:
            validation = self.validator.validate(image_bytes, options.constraints)
            metrics = validation.metrics
            if not validation.valid:
                errors = validation.errors()
                logger.validation_failed(issues=[issue.kind.value for issue in errors])
                if IssueKind.UNREADABLE in validation.kinds():
                    raise InvalidImageError(
                        "unsupported or corrupt image data", {"issue": errors[0].message}
                    )
                raise ValidationFailedError(errors)

        preprocessed = self.preprocessor.process(image_bytes, level)

        ocr_started = time.perf_counter()
        try:
            lines = self.recognize(preprocessed.processed_image, options.ocr, options.timeout_seconds)
        except OcrError as e:
            logger.ocr_failed(engine=e.engine or "unknown", error=str(e), error_type=type(e).__name__)
            raise

        logger.ocr_completed(
            engine=self._pool.engine_name or "unknown",
            line_count=len(lines),
            mean_confidence=(sum(line.confidence for line in lines) / len(lines)) if lines else 0.0,
            duration_ms=round((time.perf_counter() - ocr_started) * 1000, 2),
        )

        parsed = self.parser.parse(lines)
        scored = self.scorer.score(
            lines,
            parsed,
            processing_applied=preprocessed.processing_applied,
            quality_metrics=metrics,
        )
        logger.receipt_scored(
            confidence=scored.confidence,
            status=scored.status.value,
            recommendations=len(scored.recommendations),
        )
        logger.pipeline_completed(
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            item_count=len(scored.items),
            confidence=scored.confidence,
            status=scored.status.value,
        )
        return scored

    async def process_async(
        self, image_bytes: bytes, options: Optional[ProcessingOptions] = None
    ) -> ScoredReceipt:
        """Process one receipt image without blocking the event loop."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            self._get_executor(), partial(self.process, image_bytes, options)
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Stop worker threads and close pooled engines. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for executor in (self._executor, self._ocr_executor):
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)
        self._pool.shutdown()

    def __enter__(self) -> "ReceiptPipeline":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# Module-level pipeline used by process_receipt_image()
_default_pipeline: Optional[ReceiptPipeline] = None


def get_default_pipeline() -> ReceiptPipeline:
    """Get the shared pipeline, creating it from settings on first use."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = ReceiptPipeline()
        atexit.register(_default_pipeline.close)
    return _default_pipeline


def reset_default_pipeline() -> None:
    """Close and drop the shared pipeline (useful for testing)."""
    global _default_pipeline
    if _default_pipeline is not None:
        _default_pipeline.close()
        atexit.unregister(_default_pipeline.close)
    _default_pipeline = None


def process_receipt_image(
    image_bytes: bytes, options: Optional[ProcessingOptions] = None
) -> ScoredReceipt:
    """Process one receipt image with the shared default pipeline."""
    return get_default_pipeline().process(image_bytes, options)
