from __future__ import annotations

from functools import partial
from typing import Any, Mapping

from .bank_transfer import BankTransferGateway
from .base import (
    FixedOutcome,
    OutcomeSource,
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
    RandomOutcome,
    RefundResult,
)
from .credit_card import CreditCardGateway
from .factory import PaymentGatewayFactory
from .paypal import PayPalGateway
from .stripe import StripeGateway

# Registration order is the order payment methods are listed in
GATEWAY_CLASSES: tuple[type[PaymentGateway], ...] = (
    CreditCardGateway,
    PayPalGateway,
    StripeGateway,
    BankTransferGateway,
)

GATEWAY_DISPLAY_NAMES = {cls.name: cls.display_name for cls in GATEWAY_CLASSES}


def build_gateway_factory(
    settings: Mapping[str, Mapping[str, Any]],
    default_gateway: str = "credit_card",
    outcomes: OutcomeSource | None = None,
) -> PaymentGatewayFactory:
    """
    Register every known gateway with its own settings block.

    A gateway missing from `settings` gets an empty block and therefore
    reports itself as disabled.
    """
    outcomes = outcomes or RandomOutcome()
    factory = PaymentGatewayFactory(default_gateway)
    for gateway_cls in GATEWAY_CLASSES:
        block = dict(settings.get(gateway_cls.name) or {})
        factory.register(gateway_cls.name, partial(gateway_cls, block, outcomes))
    return factory


__all__ = [
    "GATEWAY_CLASSES", "GATEWAY_DISPLAY_NAMES", "build_gateway_factory",
    "PaymentGateway", "PaymentGatewayFactory",
    "PaymentRequest", "PaymentResult", "RefundResult",
    "OutcomeSource", "RandomOutcome", "FixedOutcome",
    "CreditCardGateway", "PayPalGateway", "StripeGateway", "BankTransferGateway",
]
