"""Output formatters for JSON and CSV."""

from .json_writer import JSONWriter
from .csv_writer import CSVWriter

__all__ = ["JSONWriter", "CSVWriter"]
