"""Unit tests for JSON and CSV writers."""

import csv
import io
import json

import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from receipt_pipeline.config import PipelineSettings
from receipt_pipeline.exceptions import FileWriteError
from receipt_pipeline.output import CSVWriter, JSONWriter
from receipt_pipeline.parser import ReceiptParser
from receipt_pipeline.scoring import ConfidenceScorer


@pytest.fixture
def score(make_lines):
    parser = ReceiptParser(settings=PipelineSettings())

    def _score(texts):
        lines = make_lines(texts)
        return ConfidenceScorer().score(lines, parser.parse(lines))

    return _score


@pytest.fixture
def receipt(score, grocery_lines):
    return score(grocery_lines)


class TestJSONWriter:
    """Tests for JSONWriter."""

    def test_to_dict(self, receipt):
        data = JSONWriter.to_dict(receipt)

        assert data["merchant_name"] == "WALMART SUPERCENTER"
        assert data["date"] == "2024-01-15"
        assert data["total"] == "14.33"
        assert data["status"] == "excellent"
        assert data["needs_review"] is False
        assert data["items"][0]["price"] == "1.33"
        assert data["price_consistency"]["reference_field"] == "subtotal"

    def test_none_values_removed(self, score):
        data = JSONWriter.to_dict(score(["MILK 3.49"]))
        assert "total" not in data
        assert "quality_metrics" not in data

    def test_keep_none_values(self, score):
        data = JSONWriter.to_dict(score(["MILK 3.49"]), exclude_none=False)
        assert data["total"] is None

    def test_write(self, receipt, tmp_path):
        out = tmp_path / "receipt.json"
        JSONWriter.write(receipt, out)

        loaded = json.loads(out.read_text(encoding="utf-8"))
        assert loaded["total"] == "14.33"
        assert len(loaded["items"]) == 4

    def test_write_batch(self, receipt, score, tmp_path):
        out = tmp_path / "receipts.json"
        JSONWriter.write_batch([receipt, score(["MILK 3.49"])], out, pretty=False)

        loaded = json.loads(out.read_text(encoding="utf-8"))
        assert isinstance(loaded, list)
        assert len(loaded) == 2

    def test_write_to_missing_directory(self, receipt, tmp_path):
        with pytest.raises(FileWriteError) as exc_info:
            JSONWriter.write(receipt, tmp_path / "missing" / "receipt.json")
        assert "receipt.json" in exc_info.value.filepath

    def test_to_json_string(self, receipt):
        single = json.loads(JSONWriter.to_json_string(receipt))
        many = json.loads(JSONWriter.to_json_string([receipt, receipt]))
        assert single["merchant_name"] == "WALMART SUPERCENTER"
        assert len(many) == 2


class TestCSVWriter:
    """Tests for CSVWriter."""

    def _read(self, text: str) -> list[dict]:
        return list(csv.DictReader(io.StringIO(text)))

    def test_one_row_per_item(self, receipt):
        rows = self._read(CSVWriter.to_csv_string([receipt]))

        assert len(rows) == 4
        assert rows[1]["name"] == "COFFEE"
        assert rows[1]["quantity"] == "2"
        assert rows[1]["line_total"] == "9.00"
        assert rows[0]["merchant_name"] == "WALMART SUPERCENTER"
        assert rows[0]["receipt_total"] == "14.33"

    def test_receipt_without_items_keeps_a_row(self, score):
        rows = self._read(CSVWriter.to_csv_string([score(["SAFEWAY", "TOTAL 5.00"])]))

        assert len(rows) == 1
        assert rows[0]["name"] == ""
        assert rows[0]["receipt_total"] == "5.00"
        assert rows[0]["receipt_status"] == "poor"

    def test_sources(self, receipt):
        rows = self._read(CSVWriter.to_csv_string([receipt], sources=["photos/a.jpg"]))
        assert {row["source"] for row in rows} == {"photos/a.jpg"}

    def test_header_optional(self, receipt):
        text = CSVWriter.to_csv_string([receipt], include_header=False)
        assert not text.startswith("source,")

    def test_write(self, receipt, tmp_path):
        out = tmp_path / "items.csv"
        CSVWriter.write(receipt, out, source="a.jpg")

        text = out.read_text(encoding="utf-8-sig")
        assert text.startswith(",".join(CSVWriter.COLUMNS))
        assert len(self._read(text)) == 4

    def test_write_to_missing_directory(self, receipt, tmp_path):
        with pytest.raises(FileWriteError):
            CSVWriter.write_batch([receipt], tmp_path / "missing" / "items.csv")
