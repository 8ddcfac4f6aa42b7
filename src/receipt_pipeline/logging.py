"""Structured logging for the receipt pipeline.

Logs are emitted through structlog on top of the standard library
``logging`` module, so any ``logging.Handler`` can receive them.

Usage:
    from receipt_pipeline.logging import configure_logging, get_logger

    configure_logging(log_level="INFO", log_format="json")

    logger = get_logger(__name__)
    logger.info("ocr_completed", line_count=42, duration_ms=812.5)

Shipping logs elsewhere:
    from receipt_pipeline.logging import SocketBackend, register_backend

    register_backend("logstash", SocketBackend("logstash.internal", 5000))
    configure_logging(backend="logstash")
"""

import logging
import logging.handlers
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

import structlog
from structlog.types import Processor


SERVICE_NAME = "receipt-pipeline"


# =============================================================================
# Backends
# =============================================================================


class LoggingBackend(ABC):
    """Destination for rendered log records.

    Subclasses return the ``logging.Handler`` that receives the rendered
    lines and may contribute extra structlog processors.
    """

    @abstractmethod
    def get_handler(self) -> logging.Handler:
        """Return the handler that receives rendered records."""

    def get_processors(self) -> list[Processor]:
        return []

    def get_formatter(self) -> Optional[logging.Formatter]:
        return None


class StreamBackend(LoggingBackend):
    """Writes to a text stream (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stderr

    def get_handler(self) -> logging.Handler:
        return logging.StreamHandler(self.stream)


class FileBackend(LoggingBackend):
    """Appends to a log file."""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def get_handler(self) -> logging.Handler:
        return logging.FileHandler(self.file_path, encoding="utf-8")


class SocketBackend(LoggingBackend):
    """Sends records to a TCP or UDP collector such as Logstash or syslog."""

    def __init__(self, host: str, port: int, protocol: str = "tcp"):
        self.host = host
        self.port = port
        self.protocol = protocol.lower()

    def get_handler(self) -> logging.Handler:
        if self.protocol == "udp":
            return logging.handlers.DatagramHandler(self.host, self.port)
        return logging.handlers.SocketHandler(self.host, self.port)


@dataclass
class LoggingConfig:
    """Snapshot of the active logging setup."""

    log_level: str = "INFO"
    log_format: str = "json"
    stream: Optional[TextIO] = None
    service_name: str = SERVICE_NAME
    backend: Optional[str] = None
    extra_processors: list[Processor] = field(default_factory=list)
    extra_context: dict = field(default_factory=dict)


_backends: dict[str, LoggingBackend] = {}
_current_config: Optional[LoggingConfig] = None


def register_backend(name: str, backend: LoggingBackend) -> None:
    """Make a backend selectable by name in ``configure_logging``."""
    _backends[name] = backend


def unregister_backend(name: str) -> None:
    _backends.pop(name, None)


def get_registered_backends() -> list[str]:
    return list(_backends.keys())


def get_current_config() -> Optional[LoggingConfig]:
    """Return the configuration of the last ``configure_logging`` call."""
    return _current_config


# =============================================================================
# Setup
# =============================================================================


def _service_context(service_name: str, extra_context: Optional[dict] = None) -> Callable:
    extra = extra_context or {}

    def _add_service_context(
        logger: logging.Logger, method_name: str, event_dict: dict  # noqa: ARG001
    ) -> dict:
        event_dict["service"] = service_name
        event_dict.update(extra)
        return event_dict

    return _add_service_context


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None,
    service_name: str = SERVICE_NAME,
    backend: Optional[str] = None,
    extra_processors: Optional[list[Processor]] = None,
    extra_context: Optional[dict] = None,
) -> None:
    """Configure structlog and the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: 'json' for one JSON object per line, 'text' for console
        stream: Output stream when no backend is selected (default: stderr)
        service_name: Value of the ``service`` key on every record
        backend: Name of a registered backend
        extra_processors: Processors appended after the common ones
        extra_context: Static key/values added to every record
    """
    global _current_config

    if stream is None:
        stream = sys.stderr

    _current_config = LoggingConfig(
        log_level=log_level,
        log_format=log_format,
        stream=stream,
        service_name=service_name,
        backend=backend,
        extra_processors=extra_processors or [],
        extra_context=extra_context or {},
    )

    selected = _backends.get(backend) if backend else None

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _service_context(service_name, extra_context),
    ]
    if extra_processors:
        processors.extend(extra_processors)
    if selected is not None:
        processors.extend(selected.get_processors())

    if log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        colors = hasattr(stream, "isatty") and stream.isatty()
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.reset_defaults()
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    if selected is not None:
        handler = selected.get_handler()
        handler.setFormatter(selected.get_formatter() or logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter("%(message)s"))

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler.setLevel(level)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def configure_for_file(
    file_path: str,
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = SERVICE_NAME,
) -> None:
    """Send all pipeline logs to ``file_path``."""
    register_backend("file", FileBackend(file_path))
    configure_logging(
        log_level=log_level,
        log_format=log_format,
        service_name=service_name,
        backend="file",
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# =============================================================================
# Domain logger
# =============================================================================


class PipelineLogger:
    """Logger with one method per pipeline event.

    Keeping event names in one place keeps them stable for dashboards
    and alert rules.
    """

    def __init__(self, name: str = None):
        self._logger = get_logger(name)

    def pipeline_started(self, image_size: int, level: str, validate: bool, **extra) -> None:
        self._logger.info(
            "pipeline_started",
            image_size=image_size,
            level=level,
            validate=validate,
            **extra
        )

    def validation_failed(self, issues: list[str], **extra) -> None:
        self._logger.warning("validation_failed", issues=issues, **extra)

    def preprocessing_applied(self, level: str, steps: list[str], duration_ms: float = None,
                              **extra) -> None:
        self._logger.debug(
            "preprocessing_applied",
            level=level,
            steps=steps,
            duration_ms=duration_ms,
            **extra
        )

    def preprocessing_failed(self, level: str, error: str, **extra) -> None:
        """Preprocessing errors are recovered, so this is a warning."""
        self._logger.warning("preprocessing_failed", level=level, error=error, **extra)

    def ocr_completed(self, engine: str, line_count: int, mean_confidence: float,
                      duration_ms: float = None, **extra) -> None:
        self._logger.info(
            "ocr_completed",
            engine=engine,
            line_count=line_count,
            mean_confidence=round(mean_confidence, 4),
            duration_ms=duration_ms,
            **extra
        )

    def ocr_failed(self, engine: str, error: str, error_type: str = "OcrError",
                   **extra) -> None:
        self._logger.error(
            "ocr_failed",
            engine=engine,
            error=error,
            error_type=error_type,
            **extra
        )

    def extraction_failed(self, field: str, error: str, **extra) -> None:
        self._logger.warning("extraction_failed", field=field, error=error, **extra)

    def receipt_parsed(self, item_count: int, has_total: bool, has_date: bool,
                       has_merchant: bool, **extra) -> None:
        self._logger.debug(
            "receipt_parsed",
            item_count=item_count,
            has_total=has_total,
            has_date=has_date,
            has_merchant=has_merchant,
            **extra
        )

    def receipt_scored(self, confidence: float, status: str, recommendations: int = 0,
                       **extra) -> None:
        self._logger.debug(
            "receipt_scored",
            confidence=round(confidence, 4),
            status=status,
            recommendations=recommendations,
            **extra
        )

    def pipeline_completed(self, duration_ms: float, item_count: int, confidence: float,
                           status: str, **extra) -> None:
        self._logger.info(
            "pipeline_completed",
            duration_ms=duration_ms,
            item_count=item_count,
            confidence=round(confidence, 4),
            status=status,
            **extra
        )

    def batch_summary(self, total_images: int, successful: int, failed: int,
                      needs_review: int = 0, **extra) -> None:
        self._logger.info(
            "batch_summary",
            total_images=total_images,
            successful=successful,
            failed=failed,
            needs_review=needs_review,
            **extra
        )

    def info(self, event: str, **kwargs) -> None:
        self._logger.info(event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        self._logger.warning(event, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        self._logger.error(event, **kwargs)

    def debug(self, event: str, **kwargs) -> None:
        self._logger.debug(event, **kwargs)
