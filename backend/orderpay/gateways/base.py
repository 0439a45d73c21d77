# Overview: Payment gateway contract, request/result values and simulated outcome sources.

"""
Payment gateway contract

WHY: The payment service talks to every gateway the same way. A gateway
receives its settings once, at construction, and keeps no per-call state,
so one instance can serve concurrent requests.

FAILURE TAXONOMY:
- Declined charge      -> PaymentResult(success=False), returned, never raised
- Bad configuration    -> GatewayError.invalid_configuration (raised)
- Anything unexpected  -> GatewayError.communication_error (raised)
- Refund problems      -> RefundResult(success=False), never raised
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping

from ..errors import GatewayError
from ..statuses import PaymentStatus

logger = logging.getLogger(__name__)

# Configuration keys never exposed through get_configuration()
SECRET_CONFIG_KEYS = frozenset({"api_key", "secret", "client_secret", "webhook_secret"})

_CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PaymentRequest:
    """What the payment service hands to a gateway for one charge."""
    order_id: int
    amount: Decimal
    payment_number: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    message: str
    transaction_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def approved(cls, transaction_id: str, message: str, **metadata) -> "PaymentResult":
        return cls(True, message, transaction_id, dict(metadata))

    @classmethod
    def declined(cls, message: str, **metadata) -> "PaymentResult":
        return cls(False, message, None, dict(metadata))

    @property
    def status(self) -> PaymentStatus:
        return PaymentStatus.SUCCESSFUL if self.success else PaymentStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "transaction_id": self.transaction_id,
            "message": self.message,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class RefundResult:
    success: bool
    message: str
    refund_id: str | None = None
    amount: Decimal | None = None

    @classmethod
    def approved(cls, refund_id: str, amount: Decimal, message: str) -> "RefundResult":
        return cls(True, message, refund_id, amount)

    @classmethod
    def declined(cls, message: str) -> "RefundResult":
        return cls(False, message)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "refund_id": self.refund_id,
            "amount": float(self.amount) if self.amount is not None else None,
            "message": self.message,
        }


class OutcomeSource(ABC):
    """Decides whether a simulated charge or refund goes through."""

    @abstractmethod
    def roll(self) -> bool:
        raise NotImplementedError


class RandomOutcome(OutcomeSource):
    def __init__(self, success_rate: float = 0.9):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self._random = random.SystemRandom()

    def roll(self) -> bool:
        return self._random.random() < self.success_rate


class FixedOutcome(OutcomeSource):
    """Always the same answer; used by tests and demos."""

    def __init__(self, success: bool):
        self.success = success

    def roll(self) -> bool:
        return self.success


class PaymentGateway(ABC):
    """
    Base class for all payment gateways.

    Subclasses set `name`, `display_name` and `required_credentials`, and
    implement `_charge` / `_refund`. The public `process_payment` and
    `refund` wrap those hooks with the configuration check and error
    conversion, so every gateway fails the same way.
    """

    name: str = ""
    display_name: str = ""
    # Settings that must be present once sandbox mode is off
    required_credentials: tuple[str, ...] = ()

    def __init__(self, config: Mapping[str, Any] | None = None, outcomes: OutcomeSource | None = None):
        self._config = dict(config or {})
        self._outcomes = outcomes or RandomOutcome()

    # ---- configuration ----------------------------------------------------

    def get_config_value(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def is_enabled(self) -> bool:
        return bool(self._config.get("enabled", False))

    def is_sandbox(self) -> bool:
        return bool(self._config.get("sandbox", True))

    def validate_configuration(self) -> bool:
        """Sandbox always validates; live mode needs every required credential."""
        if self.is_sandbox():
            return True
        return all(self._config.get(key) for key in self.required_credentials)

    def get_configuration(self) -> dict:
        return {k: v for k, v in self._config.items() if k not in SECRET_CONFIG_KEYS}

    def supports_refunds(self) -> bool:
        return True

    # ---- operations -------------------------------------------------------

    def process_payment(self, request: PaymentRequest) -> PaymentResult:
        self._log("Processing payment", order_id=request.order_id, amount=str(request.amount))

        if not self.validate_configuration():
            raise GatewayError.invalid_configuration(self.name)

        try:
            result = self._charge(request)
        except GatewayError:
            raise
        except Exception as exc:
            self._log_error("Payment error", order_id=request.order_id, error=str(exc))
            raise GatewayError.communication_error(self.name, str(exc)) from exc

        if result.success:
            self._log("Payment successful", transaction_id=result.transaction_id)
        else:
            self._log("Payment failed", reason=result.message)
        return result

    def refund(self, transaction_id: str, amount) -> RefundResult:
        amount = _money(amount)
        self._log("Processing refund", transaction_id=transaction_id, amount=str(amount))
        try:
            return self._refund(transaction_id, amount)
        except Exception as exc:
            self._log_error("Refund error", transaction_id=transaction_id, error=str(exc))
            return RefundResult.declined(f"{self.display_name} refund failed: {exc}")

    @abstractmethod
    def _charge(self, request: PaymentRequest) -> PaymentResult:
        raise NotImplementedError

    @abstractmethod
    def _refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        raise NotImplementedError

    # ---- helpers ----------------------------------------------------------

    def _roll(self, amount) -> bool:
        success = self._outcomes.roll()
        if self.is_sandbox():
            self._log("Sandbox mode simulation", amount=str(amount), success=success)
        return success

    def _log(self, message: str, **context) -> None:
        logger.info("[PaymentGateway:%s] %s %s", self.name, message, context)

    def _log_error(self, message: str, **context) -> None:
        logger.error("[PaymentGateway:%s] %s %s", self.name, message, context)
