from __future__ import annotations

from decimal import Decimal

from ..identifiers import random_code
from .base import PaymentGateway, PaymentRequest, PaymentResult, RefundResult


class CreditCardGateway(PaymentGateway):
    """Direct card processing through a merchant account (simulated)."""

    name = "credit_card"
    display_name = "Credit Card"
    required_credentials = ("merchant_id", "api_key")

    def _charge(self, request: PaymentRequest) -> PaymentResult:
        if not self._roll(request.amount):
            return PaymentResult.declined(
                "Credit card payment was declined",
                reason="Card declined by issuer",
            )
        return PaymentResult.approved(
            f"CC-{random_code(16)}",
            "Credit card payment processed successfully",
        )

    def _refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        if not self._roll(amount):
            return RefundResult.declined("Refund could not be processed")
        refund_id = f"REF-CC-{random_code(8)}"
        self._log("Refund successful", refund_id=refund_id, amount=str(amount))
        return RefundResult.approved(refund_id, amount, "Refund processed successfully")
