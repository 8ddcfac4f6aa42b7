"""JSON output writer."""

import datetime
import json
from decimal import Decimal
from pathlib import Path
from typing import Union

from ..exceptions import FileWriteError
from ..models.receipt import ScoredReceipt


class JSONWriter:
    """Writes scored receipts to JSON format."""

    @staticmethod
    def _json_serializer(obj):
        """Custom JSON serializer for non-serializable types."""
        if isinstance(obj, Decimal):
            return str(obj)  # Preserve precision
        if isinstance(obj, datetime.date):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    @classmethod
    def to_dict(cls, receipt: ScoredReceipt, exclude_none: bool = True) -> dict:
        """
        Convert receipt to a JSON-ready dictionary.

        Args:
            receipt: ScoredReceipt to convert.
            exclude_none: Whether to drop None values and empty containers.

        Returns:
            Dictionary representation of receipt.
        """
        data = receipt.model_dump(mode="json")
        data["needs_review"] = receipt.needs_review

        if exclude_none:
            data = cls._remove_none_values(data)

        return data

    @classmethod
    def _remove_none_values(cls, value):
        """Recursively remove None values from nested dicts."""
        if isinstance(value, list):
            return [cls._remove_none_values(v) for v in value]
        if not isinstance(value, dict):
            return value

        return {
            k: cls._remove_none_values(v)
            for k, v in value.items()
            if v is not None and v != [] and v != {}
        }

    @classmethod
    def _dump(cls, data, filepath: Union[str, Path], pretty: bool) -> None:
        filepath = Path(filepath)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(
                    data,
                    f,
                    ensure_ascii=False,
                    indent=2 if pretty else None,
                    default=cls._json_serializer,
                )
        except OSError as e:
            raise FileWriteError(str(filepath), str(e)) from e

    @classmethod
    def write(
        cls,
        receipt: ScoredReceipt,
        filepath: Union[str, Path],
        pretty: bool = True,
        exclude_none: bool = True,
    ) -> None:
        """
        Write receipt to JSON file.

        Raises:
            FileWriteError: If the file cannot be written.
        """
        cls._dump(cls.to_dict(receipt, exclude_none), filepath, pretty)

    @classmethod
    def write_batch(
        cls,
        receipts: list[ScoredReceipt],
        filepath: Union[str, Path],
        pretty: bool = True,
        exclude_none: bool = True,
    ) -> None:
        """Write multiple receipts to a JSON array file."""
        cls._dump([cls.to_dict(r, exclude_none) for r in receipts], filepath, pretty)

    @classmethod
    def to_json_string(
        cls,
        receipts: Union[ScoredReceipt, list[ScoredReceipt]],
        pretty: bool = True,
        exclude_none: bool = True,
    ) -> str:
        """
        Convert one receipt (object) or several (array) to a JSON string.
        """
        if isinstance(receipts, ScoredReceipt):
            data = cls.to_dict(receipts, exclude_none)
        else:
            data = [cls.to_dict(r, exclude_none) for r in receipts]
        return json.dumps(
            data,
            ensure_ascii=False,
            indent=2 if pretty else None,
            default=cls._json_serializer,
        )
