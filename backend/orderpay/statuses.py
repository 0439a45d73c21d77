"""
Order and payment status definitions.

Legal transitions are an explicit adjacency table, checked by the pure
functions below. Models and services both consult these tables; neither
enum carries transition behaviour of its own.
"""

from __future__ import annotations

import enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def is_final(self) -> bool:
        return not PAYMENT_TRANSITIONS[self]

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED}),
    PaymentStatus.SUCCESSFUL: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """True when an order may move from `from_status` to `to_status`."""
    return OrderStatus(to_status) in ORDER_TRANSITIONS[OrderStatus(from_status)]


def can_transition_payment(from_status: PaymentStatus, to_status: PaymentStatus) -> bool:
    """True when a payment may move from `from_status` to `to_status`."""
    return PaymentStatus(to_status) in PAYMENT_TRANSITIONS[PaymentStatus(from_status)]
