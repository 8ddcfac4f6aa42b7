"""Pydantic models for parsed and scored receipt output."""

from decimal import Decimal
from typing import Optional, ClassVar
import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .enums import ConfidenceStatus, OverallStatus
from .image import ImageQualityMetrics


class ExtractedItem(BaseModel):
    """A purchased item read from one OCR line.

    Left mutable so the review step can correct names, prices and
    quantities before the item is stored.
    """

    MAX_PRICE: ClassVar[Decimal] = Decimal("10000")

    id: str
    name: str = Field(min_length=2)
    price: Decimal = Field(gt=0, lt=10000)
    quantity: int = Field(default=1, ge=1)
    confidence: float = Field(ge=0.0, le=1.0)
    source_line_index: int = Field(ge=0)
    raw_text: str

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @field_serializer("price")
    def serialize_price(self, value: Decimal) -> str:
        """Serialize Decimal to string to preserve precision in JSON."""
        return str(value)


class FieldConfidence(BaseModel):
    """Confidence attached to one receipt field."""

    field: str
    confidence: float = Field(ge=0.0, le=1.0)
    status: ConfidenceStatus
    has_value: bool


class PriceConsistency(BaseModel):
    """Comparison of the summed item prices with the printed amounts."""

    items_total: Decimal
    reference: Optional[Decimal] = None
    reference_field: Optional[str] = None
    difference: Optional[Decimal] = None
    within_tolerance: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_serializer("items_total", "reference", "difference")
    def serialize_amount(self, value: Optional[Decimal]) -> Optional[str]:
        return str(value) if value is not None else None


class ParsedReceipt(BaseModel):
    """Structured data extracted from the OCR lines of one receipt."""

    items: list[ExtractedItem] = Field(default_factory=list)
    merchant_name: Optional[str] = None
    date: Optional[datetime.date] = None
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Optional[Decimal] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    raw_text: str = ""

    # Field name -> index of the OCR line it was read from
    field_sources: dict[str, int] = Field(default_factory=dict)

    @property
    def items_total(self) -> Decimal:
        """Sum of price x quantity over all items."""
        return sum((item.line_total for item in self.items), Decimal("0"))

    @field_serializer("subtotal", "tax", "total")
    def serialize_amount(self, value: Optional[Decimal]) -> Optional[str]:
        return str(value) if value is not None else None


class ScoredReceipt(ParsedReceipt):
    """Parsed receipt with its final confidence model. Immutable."""

    status: OverallStatus = OverallStatus.POOR
    field_confidences: list[FieldConfidence] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    price_consistency: Optional[PriceConsistency] = None

    # Filled in by the pipeline, empty when scoring standalone lines
    processing_applied: list[str] = Field(default_factory=list)
    quality_metrics: Optional[ImageQualityMetrics] = None

    model_config = ConfigDict(frozen=True)

    def field_confidence(self, field: str) -> Optional[FieldConfidence]:
        """Look up the confidence record of a single field."""
        for record in self.field_confidences:
            if record.field == field:
                return record
        return None

    @property
    def needs_review(self) -> bool:
        return self.status in (OverallStatus.FAIR, OverallStatus.POOR)

    def to_item_rows(self) -> list[dict]:
        """Flatten items to dict rows for CSV export."""
        return [
            {
                "merchant_name": self.merchant_name,
                "date": self.date.isoformat() if self.date else None,
                "line": item.source_line_index,
                "name": item.name,
                "quantity": item.quantity,
                "price": str(item.price),
                "line_total": str(item.line_total),
                "confidence": round(item.confidence, 4),
                "raw_text": item.raw_text,
            }
            for item in self.items
        ]
