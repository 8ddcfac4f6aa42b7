"""Cross-check of item prices against the printed amounts."""

from decimal import Decimal
from typing import Optional, Tuple, Union

from ..models.receipt import ParsedReceipt, PriceConsistency


class PriceSumChecker:
    """Compares the sum of item prices with the receipt's own totals.

    The reference amount is the subtotal when printed, otherwise total
    minus tax, otherwise the total itself. A mismatch never raises; it
    lowers the consistency confidence and triggers a recommendation.
    """

    DEFAULT_TOLERANCE = Decimal("0.10")

    def __init__(self, tolerance: Optional[Union[Decimal, float, str]] = None):
        self.tolerance = (
            Decimal(str(tolerance)) if tolerance is not None else self.DEFAULT_TOLERANCE
        )

    @staticmethod
    def reference_amount(receipt: ParsedReceipt) -> Tuple[Optional[Decimal], Optional[str]]:
        """
        Pick the amount the items should add up to.

        Returns:
            Tuple of (amount, field_name), both None when nothing is printed.
        """
        if receipt.subtotal is not None:
            return receipt.subtotal, "subtotal"
        if receipt.total is not None and receipt.tax is not None:
            return receipt.total - receipt.tax, "total_minus_tax"
        if receipt.total is not None:
            return receipt.total, "total"
        return None, None

    def check(self, receipt: ParsedReceipt) -> Optional[PriceConsistency]:
        """
        Check the soft invariant sum(price x quantity) ~ reference.

        Returns:
            PriceConsistency, or None when there are no items or no
            positive reference amount to compare with.
        """
        if not receipt.items:
            return None

        reference, field = self.reference_amount(receipt)
        items_total = receipt.items_total
        if reference is None or reference <= 0:
            return None

        difference = items_total - reference
        ratio = float(abs(difference) / reference)
        confidence = min(1.0, max(0.0, 1.0 - ratio))

        return PriceConsistency(
            items_total=items_total,
            reference=reference,
            reference_field=field,
            difference=difference,
            within_tolerance=abs(difference) <= self.tolerance,
            confidence=confidence,
        )
