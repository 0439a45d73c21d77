from __future__ import annotations

from decimal import Decimal

from ..identifiers import random_code
from .base import PaymentGateway, PaymentRequest, PaymentResult, RefundResult


class StripeGateway(PaymentGateway):
    # Simulated PaymentIntent flow; no Stripe SDK calls are made.
    name = "stripe"
    display_name = "Stripe"
    required_credentials = ("secret_key", "publishable_key")

    def _charge(self, request: PaymentRequest) -> PaymentResult:
        if not self._roll(request.amount):
            return PaymentResult.declined(
                "Stripe payment could not be completed",
                reason="Payment failed",
            )
        return PaymentResult.approved(
            f"pi_{random_code(24)}",
            "Stripe payment completed successfully",
        )

    def _refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        if not self._roll(amount):
            return RefundResult.declined("Stripe refund could not be processed")
        refund_id = f"re_{random_code(24)}"
        self._log("Stripe refund successful", refund_id=refund_id, amount=str(amount))
        return RefundResult.approved(refund_id, amount, "Stripe refund processed successfully")
