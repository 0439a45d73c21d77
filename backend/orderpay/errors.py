# Overview: Domain error taxonomy for orders, payments and gateways.

"""
Domain errors

Each family carries an HTTP-style status code and structured context so
the API layer can render a uniform failure envelope:

    {"success": false, "message": "...", "errors": {...}}

Gateway errors always name the gateway they came from.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base for errors that map onto a client-visible failure response."""

    default_code = 400

    def __init__(self, message: str, code: int | None = None, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}

    def to_dict(self) -> dict:
        return {
            "success": False,
            "message": self.message,
            "errors": self.context,
        }


class OrderError(DomainError):
    """Raised for order operation errors."""

    @classmethod
    def not_found(cls, order_id: int) -> "OrderError":
        return cls(f"Order with ID {order_id} not found", 404)

    @classmethod
    def has_payments(cls) -> "OrderError":
        return cls("Cannot delete order with associated payments", 409)

    @classmethod
    def invalid_status_transition(cls, from_status: str, to_status: str) -> "OrderError":
        return cls(
            f"Cannot transition order from '{from_status}' to '{to_status}'",
            422,
            {"from": from_status, "to": to_status},
        )

    @classmethod
    def rule_violation(cls, message: str) -> "OrderError":
        return cls(message, 422)


class PaymentError(DomainError):
    """Raised for payment operation errors."""

    @classmethod
    def not_found(cls, payment_id: int) -> "PaymentError":
        return cls(f"Payment with ID {payment_id} not found", 404)

    @classmethod
    def order_not_confirmed(cls) -> "PaymentError":
        return cls("Payments can only be processed for confirmed orders", 422)

    @classmethod
    def already_paid(cls) -> "PaymentError":
        return cls("This order has already been paid", 409)

    @classmethod
    def processing_failed(cls, reason: str) -> "PaymentError":
        return cls(f"Payment processing failed: {reason}", 402, {"reason": reason})

    @classmethod
    def already_final(cls, payment_number: str | None, status: str) -> "PaymentError":
        return cls(f"Payment {payment_number} is already {status}", 409, {"status": status})

    @classmethod
    def not_refundable(cls, reason: str) -> "PaymentError":
        return cls(f"Payment cannot be refunded: {reason}", 422, {"reason": reason})


class GatewayError(DomainError):
    """Raised when a payment gateway is unusable, unreachable or misconfigured."""

    default_code = 502

    def __init__(
        self,
        message: str,
        code: int | None = None,
        gateway: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, context)
        self.gateway = gateway

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["gateway"] = self.gateway
        return payload

    @classmethod
    def not_found(cls, gateway: str) -> "GatewayError":
        return cls(f"Payment gateway '{gateway}' not found", 404, gateway)

    @classmethod
    def not_enabled(cls, gateway: str) -> "GatewayError":
        return cls(f"Payment gateway '{gateway}' is not enabled", 503, gateway)

    @classmethod
    def invalid_configuration(cls, gateway: str) -> "GatewayError":
        return cls(f"Payment gateway '{gateway}' is not properly configured", 500, gateway)

    @classmethod
    def communication_error(cls, gateway: str, reason: str) -> "GatewayError":
        return cls(
            f"Communication error with gateway '{gateway}': {reason}",
            502,
            gateway,
            {"reason": reason},
        )
