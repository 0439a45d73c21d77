from __future__ import annotations

from decimal import Decimal

from ..identifiers import random_code
from .base import PaymentGateway, PaymentRequest, PaymentResult, RefundResult

SANDBOX_API_BASE_URL = "https://api-m.sandbox.paypal.com"
LIVE_API_BASE_URL = "https://api-m.paypal.com"


class PayPalGateway(PaymentGateway):
    name = "paypal"
    display_name = "PayPal"
    required_credentials = ("client_id", "client_secret")

    @property
    def api_base_url(self) -> str:
        return SANDBOX_API_BASE_URL if self.is_sandbox() else LIVE_API_BASE_URL

    def _charge(self, request: PaymentRequest) -> PaymentResult:
        if not self._roll(request.amount):
            return PaymentResult.declined(
                "PayPal payment could not be completed",
                reason="Payment not approved",
            )
        return PaymentResult.approved(
            f"PP-{random_code(17)}",
            "PayPal payment completed successfully",
        )

    def _refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        if not self._roll(amount):
            return RefundResult.declined("PayPal refund could not be processed")
        refund_id = f"REF-PP-{random_code(10)}"
        self._log("PayPal refund successful", refund_id=refund_id, amount=str(amount))
        return RefundResult.approved(refund_id, amount, "PayPal refund processed successfully")
