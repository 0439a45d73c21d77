from __future__ import annotations

from decimal import Decimal

from ..identifiers import random_code
from ..time_utils import utcnow
from .base import PaymentGateway, PaymentRequest, PaymentResult, RefundResult


def generate_reference_number() -> str:
    """BT-YYYYMMDD-XXXXXX, dated in UTC."""
    return f"BT-{utcnow():%Y%m%d}-{random_code(6)}"


class BankTransferGateway(PaymentGateway):
    """
    Manual bank transfer.

    Nothing is charged here: the customer completes the transfer using the
    reference number, so initiation always succeeds and never rolls the
    outcome source. Refunds are likewise queued for manual processing.
    """

    name = "bank_transfer"
    display_name = "Bank Transfer"
    required_credentials = ("bank_name", "account_number")

    def _charge(self, request: PaymentRequest) -> PaymentResult:
        reference_number = generate_reference_number()
        return PaymentResult.approved(
            reference_number,
            "Bank transfer initiated. Please complete the transfer using the reference number.",
            reference_number=reference_number,
            bank_name=self.get_config_value("bank_name"),
            account_name=self.get_config_value("account_name"),
            requires_manual_confirmation=True,
        )

    def _refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        refund_id = f"REF-BT-{random_code(8)}"
        self._log("Bank transfer refund initiated", refund_id=refund_id, amount=str(amount))
        return RefundResult.approved(
            refund_id,
            amount,
            "Bank transfer refund initiated. Please allow 3-5 business days for processing.",
        )
