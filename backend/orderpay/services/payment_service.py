# Overview: Service-layer operations for payments; runs the gateway charge protocol and records outcomes.

"""
Payment service

WHY: One code path takes an order from "confirmed" to "paid" no matter
which gateway the client picked. The gateway is looked up by key through
the factory; this module never names a concrete gateway class.

PROTOCOL (process_payment):
1. Lock the order row; it must exist and be confirmed
2. Refuse if a successful payment already exists
3. Write a PENDING payment for the order total
4. Charge through the gateway
5. Record SUCCESSFUL/FAILED with the gateway response and commit

CONCURRENCY:
- The order row lock serializes attempts on the same order
- The unique successful_order_id column (set only on SUCCESSFUL) is the
  last line: a losing commit surfaces as PaymentError.already_paid
- Gateway calls are never retried automatically
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import GatewayError, PaymentError
from ..extensions import db
from ..gateways import PaymentGatewayFactory, PaymentRequest, RefundResult
from ..models import Order, Payment
from ..models.orders import ZERO, to_money
from ..repositories import OrderRepository, Page, PaymentRepository

logger = logging.getLogger(__name__)


def refunded_amount(payment: Payment) -> Decimal:
    """Sum of successful refunds recorded against a payment."""
    refunds = (payment.meta or {}).get("refunds", [])
    return to_money(sum((Decimal(str(r["amount"])) for r in refunds if r.get("success")), ZERO))


class PaymentService:
    def __init__(
        self,
        gateway_factory: PaymentGatewayFactory,
        payment_repository: PaymentRepository,
        order_repository: OrderRepository,
    ):
        self.gateways = gateway_factory
        self.payments = payment_repository
        self.orders = order_repository

    # ---- reads ------------------------------------------------------------

    def get_payments(self, filters: dict | None = None, per_page: int = 15, page: int = 1) -> Page:
        return self.payments.paginate(filters, per_page, page)

    def get_order_payments(self, order_id: int) -> list[Payment]:
        return self.payments.get_by_order(order_id)

    def get_payment(self, payment_id: int) -> Payment:
        return self.payments.find_or_fail(payment_id)

    def get_available_payment_methods(self) -> list[dict]:
        return self.gateways.get_gateway_info()

    def is_payment_method_available(self, gateway: str) -> bool:
        try:
            instance = self.gateways.make(gateway)
        except GatewayError:
            return False
        return instance.is_enabled() and instance.validate_configuration()

    def calculate_payment_amount(self, order: Order) -> Decimal:
        # Discounts, taxes and shipping would be applied here.
        return to_money(order.total_amount)

    # ---- charge -----------------------------------------------------------

    def process_payment(self, order_id: int, gateway: str, metadata: dict | None = None) -> Payment:
        """
        Charge an order through `gateway` and return the recorded payment.

        A declined charge is returned as a FAILED payment. Raised errors:
        - OrderError.not_found, PaymentError.order_not_confirmed,
          PaymentError.already_paid: nothing is written
        - GatewayError: the attempt is kept as FAILED, then re-raised
        - PaymentError.processing_failed: any other gateway-side crash,
          the attempt is kept as FAILED
        """
        try:
            order = self.orders.find_for_update(order_id)

            if not order.is_confirmed:
                raise PaymentError.order_not_confirmed()
            if self.payments.order_has_successful_payment(order.id):
                raise PaymentError.already_paid()

            payment = self.payments.create(
                order.id, gateway, self.calculate_payment_amount(order), metadata
            )
            request = PaymentRequest(
                order_id=order.id,
                amount=payment.amount,
                payment_number=payment.payment_number,
                metadata=dict(metadata or {}),
            )

            try:
                result = self.gateways.make(gateway).process_payment(request)
            except GatewayError as exc:
                self._record_failure(payment, exc.message)
                raise
            except Exception as exc:
                self._record_failure(payment, str(exc))
                raise PaymentError.processing_failed(str(exc)) from exc

            self.payments.update_with_result(payment, result)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            logger.warning("Concurrent successful payment detected for order %s", order_id)
            raise PaymentError.already_paid() from exc
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            "Payment %s for order %s via %s: %s",
            payment.payment_number, order_id, gateway, payment.status.value,
        )
        return payment

    def _record_failure(self, payment: Payment, reason: str) -> None:
        logger.error("Payment %s failed: %s", payment.payment_number, reason)
        self.payments.mark_failed(payment, reason)
        db.session.commit()

    # ---- refunds ----------------------------------------------------------

    def refund_payment(self, payment_id: int, amount=None) -> RefundResult:
        """
        Refund all or part of a successful payment.

        The payment keeps its SUCCESSFUL status; each attempt (approved or
        not) is appended to metadata["refunds"].
        """
        try:
            payment = self.payments.find_for_update(payment_id)

            if not payment.is_successful:
                raise PaymentError.not_refundable("only successful payments can be refunded")
            if not payment.gateway_transaction_id:
                raise PaymentError.not_refundable("payment has no gateway transaction id")

            remaining = to_money(payment.amount) - refunded_amount(payment)
            amount = remaining if amount is None else to_money(amount)
            if amount <= ZERO or amount > remaining:
                raise PaymentError.not_refundable(f"amount must be between 0.01 and {remaining}")

            gateway = self.gateways.resolve(payment.gateway)
            if not gateway.supports_refunds():
                raise PaymentError.not_refundable(f"{gateway.display_name} does not support refunds")

            result = gateway.refund(payment.gateway_transaction_id, amount)
            self.payments.record_refund(payment, result)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            "Refund for payment %s amount=%s success=%s", payment.payment_number, amount, result.success
        )
        return result
