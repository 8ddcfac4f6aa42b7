"""CSV output writer. One row per extracted item."""

import csv
import io
from pathlib import Path
from typing import Optional, Union

from ..exceptions import FileWriteError
from ..models.receipt import ScoredReceipt


class CSVWriter:
    """Writes the items of scored receipts to CSV format."""

    COLUMNS = [
        "source",
        "merchant_name",
        "date",
        "line",
        "name",
        "quantity",
        "price",
        "line_total",
        "confidence",
        "raw_text",
        "receipt_total",
        "receipt_confidence",
        "receipt_status",
    ]

    @classmethod
    def rows(cls, receipt: ScoredReceipt, source: Optional[str] = None) -> list[dict]:
        """
        Item rows of one receipt, each tagged with receipt-level columns.

        A receipt without items still yields one row so that it shows up
        in the export.
        """
        receipt_columns = {
            "source": source,
            "receipt_total": str(receipt.total) if receipt.total is not None else None,
            "receipt_confidence": round(receipt.confidence, 4),
            "receipt_status": receipt.status.value,
        }
        item_rows = receipt.to_item_rows()
        if not item_rows:
            return [{
                "merchant_name": receipt.merchant_name,
                "date": receipt.date.isoformat() if receipt.date else None,
                **receipt_columns,
            }]
        return [{**row, **receipt_columns} for row in item_rows]

    @classmethod
    def _write_rows(cls, f, rows: list[dict], include_header: bool) -> None:
        writer = csv.DictWriter(f, fieldnames=cls.COLUMNS, extrasaction="ignore")
        if include_header:
            writer.writeheader()
        writer.writerows(rows)

    @classmethod
    def write(
        cls,
        receipt: ScoredReceipt,
        filepath: Union[str, Path],
        include_header: bool = True,
        source: Optional[str] = None,
    ) -> None:
        """
        Write the items of a single receipt to a CSV file.

        Raises:
            FileWriteError: If the file cannot be written.
        """
        cls.write_batch([receipt], filepath, include_header, [source])

    @classmethod
    def write_batch(
        cls,
        receipts: list[ScoredReceipt],
        filepath: Union[str, Path],
        include_header: bool = True,
        sources: Optional[list[Optional[str]]] = None,
    ) -> None:
        """
        Write the items of multiple receipts to one CSV file.

        Args:
            receipts: ScoredReceipts to write.
            filepath: Output file path.
            include_header: Whether to include column header row.
            sources: Optional source label (e.g. image path) per receipt.
        """
        filepath = Path(filepath)
        sources = sources or [None] * len(receipts)
        rows = [row for r, src in zip(receipts, sources) for row in cls.rows(r, src)]

        try:
            with open(filepath, "w", newline="", encoding="utf-8-sig") as f:
                cls._write_rows(f, rows, include_header)
        except OSError as e:
            raise FileWriteError(str(filepath), str(e)) from e

    @classmethod
    def to_csv_string(
        cls,
        receipts: list[ScoredReceipt],
        include_header: bool = True,
        sources: Optional[list[Optional[str]]] = None,
    ) -> str:
        """Convert receipts to a CSV string."""
        sources = sources or [None] * len(receipts)
        output = io.StringIO()
        rows = [row for r, src in zip(receipts, sources) for row in cls.rows(r, src)]
        cls._write_rows(output, rows, include_header)
        return output.getvalue()
