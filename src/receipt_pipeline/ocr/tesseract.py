"""Tesseract OCR engine."""

from typing import Any, Optional

import pytesseract
from pytesseract import Output

from .base import OcrEngine
from ..exceptions import OcrFailureError, OcrTimeoutError
from ..imaging.decoding import decode_image
from ..logging import get_logger
from ..models.ocr import BoundingBox, OcrLine, OcrOptions


logger = get_logger(__name__)


class TesseractEngine(OcrEngine):
    """
    OCR engine backed by the tesseract binary through pytesseract.

    Word results from ``image_to_data`` are grouped into lines by their
    (block, paragraph, line) numbers. A line's confidence is the mean of
    its word confidences scaled to [0, 1] and its box is the union of the
    word boxes.
    """

    name = "tesseract"

    def __init__(
        self,
        tesseract_cmd: Optional[str] = None,
        default_options: Optional[OcrOptions] = None,
    ):
        """
        Args:
            tesseract_cmd: Path to the tesseract executable (optional).
            default_options: Options used when ``recognize`` gets none.
        """
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_options = default_options or OcrOptions()

    def recognize(
        self,
        image_bytes: bytes,
        options: Optional[OcrOptions] = None,
        timeout_seconds: Optional[float] = None,
    ) -> list[OcrLine]:
        options = options or self.default_options
        img, _ = decode_image(image_bytes)

        try:
            data = pytesseract.image_to_data(
                img,
                lang=options.language,
                config=options.tesseract_config(),
                output_type=Output.DICT,
                timeout=timeout_seconds or 0,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OcrFailureError(f"tesseract is not installed or not on PATH ({e})", engine=self.name)
        except pytesseract.TesseractError as e:
            raise OcrFailureError(str(e), engine=self.name)
        except RuntimeError as e:
            # pytesseract kills the subprocess and raises a bare RuntimeError on timeout
            if "timeout" in str(e).lower():
                raise OcrTimeoutError(timeout_seconds or 0, engine=self.name)
            raise OcrFailureError(str(e), engine=self.name)
        finally:
            img.close()

        lines = self.group_lines(data)
        logger.debug("tesseract_lines_grouped", line_count=len(lines), config=options.tesseract_config())
        return lines

    @staticmethod
    def _word_confidence(value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return -1.0

    @classmethod
    def group_lines(cls, data: dict) -> list[OcrLine]:
        """
        Group word-level ``image_to_data`` output into lines.

        Words with negative confidence (layout rows) or blank text are
        skipped. Lines keep the order in which tesseract reported them.
        """
        grouped: dict[tuple, dict] = {}

        for i, word in enumerate(data.get("text", [])):
            word = (word or "").strip()
            conf = cls._word_confidence(data["conf"][i])
            if not word or conf < 0:
                continue

            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            box = BoundingBox(
                left=int(data["left"][i]),
                top=int(data["top"][i]),
                right=int(data["left"][i]) + int(data["width"][i]),
                bottom=int(data["top"][i]) + int(data["height"][i]),
            )

            entry = grouped.setdefault(key, {"words": [], "confs": [], "box": box})
            entry["words"].append(word)
            entry["confs"].append(conf)
            entry["box"] = entry["box"].union(box)

        lines = []
        for entry in grouped.values():
            text = " ".join(entry["words"]).strip()
            if not text:
                continue
            confidence = sum(entry["confs"]) / len(entry["confs"]) / 100.0
            lines.append(OcrLine(
                text=text,
                confidence=min(1.0, max(0.0, confidence)),
                line_index=len(lines),
                bounding_box=entry["box"],
            ))
        return lines
