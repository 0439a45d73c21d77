"""
Status machine tests.

Verifies:
- Order transitions follow the adjacency table (cancelled is absorbing)
- Payment transitions are one-shot (pending -> successful | failed)
- Model validators refuse illegal assignments
"""

import pytest

from orderpay.errors import OrderError, PaymentError
from orderpay.models import Order, Payment
from orderpay.statuses import (
    OrderStatus,
    PaymentStatus,
    can_transition,
    can_transition_payment,
)


# =============================================================================
# TRANSITION TABLES
# =============================================================================


class TestOrderTransitions:

    @pytest.mark.parametrize(
        "from_status,to_status,allowed",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED, True),
            (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
            (OrderStatus.CONFIRMED, OrderStatus.CANCELLED, True),
            (OrderStatus.CONFIRMED, OrderStatus.PENDING, False),
            (OrderStatus.CONFIRMED, OrderStatus.CONFIRMED, False),
            (OrderStatus.PENDING, OrderStatus.PENDING, False),
            (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
            (OrderStatus.CANCELLED, OrderStatus.CONFIRMED, False),
            (OrderStatus.CANCELLED, OrderStatus.CANCELLED, False),
        ],
    )
    def test_table(self, from_status, to_status, allowed):
        assert can_transition(from_status, to_status) is allowed

    def test_accepts_raw_values(self):
        assert can_transition("pending", "confirmed")

    def test_labels(self):
        assert OrderStatus.CONFIRMED.label == "Confirmed"
        assert OrderStatus.values() == ["pending", "confirmed", "cancelled"]


class TestPaymentTransitions:

    @pytest.mark.parametrize("target", [PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED])
    def test_pending_resolves_once(self, target):
        assert can_transition_payment(PaymentStatus.PENDING, target)
        assert target.is_final
        for other in PaymentStatus:
            assert not can_transition_payment(target, other)

    def test_pending_is_not_final(self):
        assert not PaymentStatus.PENDING.is_final


# =============================================================================
# MODEL GUARDS
# =============================================================================


class TestModelGuards:

    def test_new_order_starts_pending(self, app):
        order = Order(user_id=1, order_number="ORD-TEST0001")
        assert order.status == OrderStatus.PENDING

    def test_new_order_cannot_start_confirmed(self, app):
        with pytest.raises(OrderError) as exc:
            Order(user_id=1, order_number="ORD-TEST0002", status=OrderStatus.CONFIRMED)
        assert exc.value.code == 422

    def test_cancelled_order_cannot_reopen(self, app):
        order = Order(user_id=1, order_number="ORD-TEST0003")
        order.status = OrderStatus.CANCELLED
        with pytest.raises(OrderError) as exc:
            order.status = OrderStatus.PENDING
        assert exc.value.context == {"from": "cancelled", "to": "pending"}

    def test_total_amount_is_read_only(self, app):
        order = Order(user_id=1, order_number="ORD-TEST0004")
        with pytest.raises(AttributeError):
            order.total_amount = 10

    def test_final_payment_status_is_frozen(self, app):
        payment = Payment(order_id=1, payment_number="PAY-TEST000001", gateway="stripe", amount="10.00")
        payment.status = PaymentStatus.FAILED
        with pytest.raises(PaymentError) as exc:
            payment.status = PaymentStatus.SUCCESSFUL
        assert exc.value.code == 409

    def test_payment_amount_fixed_at_creation(self, app):
        payment = Payment(order_id=1, payment_number="PAY-TEST000002", gateway="stripe", amount="10.00")
        with pytest.raises(PaymentError):
            payment.amount = "20.00"
