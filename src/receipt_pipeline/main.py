"""CLI entry point for the receipt pipeline."""

import argparse
import sys
from glob import glob
from pathlib import Path
from typing import Optional

from . import __version__
from .config import get_settings, ConfigurationError, PipelineSettings
from .exceptions import PipelineError, ValidationFailedError
from .logging import configure_logging, PipelineLogger
from .models.enums import EngineMode, PageSegmentationMode, PreprocessLevel
from .output.csv_writer import CSVWriter
from .output.json_writer import JSONWriter
from .pipeline import ProcessingOptions, ReceiptPipeline


def setup_logging(settings: PipelineSettings, verbose: bool = False, log_format: Optional[str] = None) -> None:
    """Configure logging.

    Args:
        settings: Settings providing the default level and format
        verbose: Enable debug level logging
        log_format: Output format ('json' or 'text'). Defaults to settings value.
    """
    level = "DEBUG" if verbose else settings.log_level
    fmt = log_format or settings.log_format
    configure_logging(log_level=level, log_format=fmt)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receipt-pipeline",
        description="Validate, OCR and parse grocery receipt photos",
        epilog="Example: receipt-pipeline photos/*.jpg -o receipts.csv --level standard",
    )

    parser.add_argument(
        "input",
        nargs="+",
        help="Receipt image file(s). Supports glob patterns (e.g., *.jpg)",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help="Output file path. Format determined by extension (.json or .csv)",
    )

    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "csv"],
        help="Output format. Overrides extension detection",
    )

    parser.add_argument(
        "--level",
        choices=[level.value for level in PreprocessLevel],
        default=None,
        help="Preprocessing level (default: from settings)",
    )

    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip image quality validation",
    )

    parser.add_argument(
        "--psm",
        type=str,
        default=None,
        help="Page segmentation mode, by name or number (e.g., single_block, 4)",
    )

    parser.add_argument(
        "--oem",
        type=str,
        default=None,
        help="OCR engine mode, by name or number (e.g., neural, 1)",
    )

    parser.add_argument(
        "--lang",
        type=str,
        default=None,
        help="Tesseract language code (default: eng)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="OCR time budget per image in seconds",
    )

    parser.add_argument(
        "--no-pretty",
        action="store_false",
        dest="pretty",
        help="Compact JSON output",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        default=None,
        help="Log output format: 'json' for structured, 'text' for human-readable",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def expand_input_paths(patterns: list[str]) -> list[Path]:
    """Expand glob patterns to file paths."""
    paths = []
    for pattern in patterns:
        matches = sorted(glob(pattern))
        if matches:
            paths.extend(Path(m) for m in matches)
        else:
            # Treat as literal path
            paths.append(Path(pattern))
    return paths


def determine_output_format(output_path: Optional[str], format_override: Optional[str]) -> str:
    """Determine output format from path or override."""
    if format_override:
        return format_override

    if output_path and Path(output_path).suffix.lower() == ".csv":
        return "csv"
    return "json"


def settings_from_args(args: argparse.Namespace) -> PipelineSettings:
    """Apply command line overrides on top of the environment settings."""
    return get_settings().with_overrides(
        preprocess_level=args.level,
        ocr_language=args.lang,
        ocr_page_segmentation=PageSegmentationMode.from_name(args.psm) if args.psm else None,
        ocr_engine_mode=EngineMode.from_name(args.oem) if args.oem else None,
        ocr_timeout_seconds=args.timeout,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    try:
        settings = settings_from_args(args)
    except (ConfigurationError, KeyError, ValueError) as e:
        configure_logging(log_format=args.log_format or "json")
        PipelineLogger(__name__).error("invalid_arguments", error=str(e))
        return 2

    setup_logging(settings, args.verbose, args.log_format)
    logger = PipelineLogger(__name__)

    input_paths = expand_input_paths(args.input)
    existing_paths = [p for p in input_paths if p.is_file()]
    if not existing_paths:
        logger.error("no_input_files", requested_paths=[str(p) for p in input_paths])
        return 1

    logger.info("processing_started", file_count=len(existing_paths))

    options = ProcessingOptions(validate=not args.no_validate)
    receipts = []
    sources = []

    with ReceiptPipeline(settings=settings) as pipeline:
        for path in existing_paths:
            try:
                receipt = pipeline.process(path.read_bytes(), options)
            except ValidationFailedError as e:
                logger.error(
                    "image_rejected",
                    file_path=str(path),
                    issues=e.details.get("issues"),
                    remediations=e.remediations,
                )
                continue
            except PipelineError as e:
                logger.error("image_failed", file_path=str(path), error=str(e), error_type=type(e).__name__)
                continue
            except OSError as e:
                logger.error("image_unreadable", file_path=str(path), error=str(e))
                continue

            receipts.append(receipt)
            sources.append(str(path))

    needs_review = sum(1 for r in receipts if r.needs_review)
    logger.batch_summary(
        total_images=len(existing_paths),
        successful=len(receipts),
        failed=len(existing_paths) - len(receipts),
        needs_review=needs_review,
    )

    if not receipts:
        logger.error("no_successful_images", attempted_files=len(existing_paths))
        return 1

    output_format = determine_output_format(args.output, args.format)

    try:
        if args.output:
            output_path = Path(args.output)
            logger.info("writing_output", output_path=str(output_path), format=output_format)
            if output_format == "csv":
                CSVWriter.write_batch(receipts, output_path, sources=sources)
            elif len(receipts) == 1:
                JSONWriter.write(receipts[0], output_path, pretty=args.pretty)
            else:
                JSONWriter.write_batch(receipts, output_path, pretty=args.pretty)
            logger.info("output_written", output_path=str(output_path))
        elif output_format == "csv":
            print(CSVWriter.to_csv_string(receipts, sources=sources), end="")
        else:
            payload = receipts[0] if len(receipts) == 1 else receipts
            print(JSONWriter.to_json_string(payload, pretty=args.pretty))
    except PipelineError as e:
        logger.error("output_failed", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
