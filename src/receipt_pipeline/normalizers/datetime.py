"""Date parsing for receipt headers and footers."""

import re
from datetime import date
from typing import Optional, Literal

from ..exceptions import DateParseError


MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_MONTH_NAME = r"(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"


class DateNormalizer:
    """Handles the date formats printed on grocery receipts."""

    # YYYY-MM-DD, YYYY/MM/DD, YYYY.MM.DD
    YMD_PATTERN = re.compile(r"(?<!\d)(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})(?!\d)")

    # a/b/yy or a/b/yyyy, day/month order decided by the caller
    NUMERIC_PATTERN = re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})(?!\d)")

    # Jan 15, 2024
    MONTH_FIRST_PATTERN = re.compile(
        r"(?<![a-z])" + _MONTH_NAME + r"\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})(?!\d)",
        re.IGNORECASE,
    )

    # 15 January 2024
    DAY_FIRST_PATTERN = re.compile(
        r"(?<!\d)(\d{1,2})\s+" + _MONTH_NAME + r",?\s+(\d{4})(?!\d)",
        re.IGNORECASE,
    )

    SUPPORTED_FORMATS = [
        "YYYY-MM-DD",
        "MM/DD/YYYY",
        "DD/MM/YYYY",
        "MM/DD/YY",
        "Mon DD, YYYY",
        "DD Month YYYY",
    ]

    MIN_YEAR = 1990
    MAX_YEAR = 2100

    @classmethod
    def _build(cls, year: int, month: int, day: int) -> Optional[date]:
        if not cls.MIN_YEAR <= year <= cls.MAX_YEAR:
            return None
        try:
            return date(year, month, day)
        except ValueError:
            return None

    @staticmethod
    def _expand_year(text: str) -> int:
        year = int(text)
        return 2000 + year if len(text) == 2 else year

    @classmethod
    def _numeric_candidates(cls, a: int, b: int, year: int, date_order: str):
        if date_order == "DMY":
            yield year, b, a
            yield year, a, b
        else:
            yield year, a, b
            yield year, b, a

    @classmethod
    def parse_date(cls, text: str, date_order: Literal["MDY", "DMY"] = "MDY") -> Optional[date]:
        """
        Parse the first valid calendar date in ``text``.

        Year-first dates are tried before day/month dates. For the
        ambiguous a/b/y form ``date_order`` picks the first reading and the
        swapped reading is used when the first is not a real date:
        - '2024-01-15'   -> date(2024, 1, 15)
        - '01/15/2024'   -> date(2024, 1, 15)
        - '15/01/2024'   -> date(2024, 1, 15) (swap fallback)
        - 'Jan 15, 2024' -> date(2024, 1, 15)

        Returns None when the text holds nothing date-shaped.

        Raises:
            DateParseError: If date-shaped text is present but none of it
                forms a valid calendar date.
        """
        if not text:
            return None

        found_candidate = False

        for match in cls.YMD_PATTERN.finditer(text):
            found_candidate = True
            parsed = cls._build(int(match[1]), int(match[2]), int(match[3]))
            if parsed:
                return parsed

        for match in cls.NUMERIC_PATTERN.finditer(text):
            found_candidate = True
            year = cls._expand_year(match[3])
            for y, m, d in cls._numeric_candidates(int(match[1]), int(match[2]), year, date_order):
                parsed = cls._build(y, m, d)
                if parsed:
                    return parsed

        for match in cls.MONTH_FIRST_PATTERN.finditer(text):
            found_candidate = True
            parsed = cls._build(int(match[3]), MONTHS[match[1].lower()], int(match[2]))
            if parsed:
                return parsed

        for match in cls.DAY_FIRST_PATTERN.finditer(text):
            found_candidate = True
            parsed = cls._build(int(match[3]), MONTHS[match[2].lower()], int(match[1]))
            if parsed:
                return parsed

        if found_candidate:
            raise DateParseError(text, cls.SUPPORTED_FORMATS)
        return None

    @classmethod
    def is_date_only(cls, text: str) -> bool:
        """True when the whole line is a single date and nothing else."""
        stripped = text.strip()
        if not stripped:
            return False
        patterns = [
            cls.YMD_PATTERN,
            cls.NUMERIC_PATTERN,
            cls.MONTH_FIRST_PATTERN,
            cls.DAY_FIRST_PATTERN,
        ]
        return any(pattern.fullmatch(stripped) for pattern in patterns)
