"""Text cleanup for item names read off receipt lines."""

import re


class TextNormalizer:
    """Strips the codes and flags printers put around item names."""

    # 3+ digit article codes printed before the name
    LEADING_CODE = re.compile(r"^\d{3,}\s+")
    # UPC/EAN barcodes
    TRAILING_BARCODE = re.compile(r"(?:^|\s+)\d{8,}$")
    # Tax or department flags such as 'F', 'N', 'T'
    TRAILING_FLAG = re.compile(r"\s+[A-Za-z]$")
    TRAILING_SEPARATORS = re.compile(r"[\s\-–:;*#.,@/|]+$")
    LEADING_SEPARATORS = re.compile(r"^[\s\-–:;*#.,@/|]+")

    MIN_NAME_LENGTH = 2

    @staticmethod
    def collapse_whitespace(text: str) -> str:
        """
        Collapse runs of whitespace to single spaces.

        Example: 'GV  100   BRD ' -> 'GV 100 BRD'
        """
        return re.sub(r"\s+", " ", text).strip()

    @classmethod
    def clean_item_name(cls, text: str) -> str:
        """
        Remove article codes, barcodes, flags and separators.

        Rules are applied repeatedly until the name stops changing, so a
        barcode followed by a flag is removed in two rounds:
        - 'GV 100 BRD 078742366900 F' -> 'GV 100 BRD'
        - '004011 BANANAS -'          -> 'BANANAS'
        """
        name = cls.collapse_whitespace(text)
        while True:
            previous = name
            name = cls.LEADING_SEPARATORS.sub("", name)
            name = cls.LEADING_CODE.sub("", name)
            name = cls.TRAILING_SEPARATORS.sub("", name)
            name = cls.TRAILING_BARCODE.sub("", name)
            name = cls.TRAILING_FLAG.sub("", name)
            name = name.strip()
            if name == previous:
                return name

    @classmethod
    def is_valid_name(cls, name: str) -> bool:
        """Names need at least two characters and one letter."""
        return len(name) >= cls.MIN_NAME_LENGTH and any(ch.isalpha() for ch in name)
