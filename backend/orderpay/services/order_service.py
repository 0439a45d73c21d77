# Overview: Service-layer operations for orders; encapsulates business rules and commits.

"""
Order service

WHY: Order rules live in one place so every entry point (API, CLI, tests)
gets the same behaviour.

RULES:
- Only pending orders can be edited
- Orders with any payment attempt can not be deleted (soft delete otherwise)
- Orders with a successful payment can not be cancelled
- Status changes follow the transition table and run under a row lock
"""

from __future__ import annotations

import logging

from ..errors import OrderError
from ..extensions import db
from ..models import Order
from ..repositories import OrderRepository, Page, PaymentRepository
from ..repositories.order_repository import UNSET
from ..statuses import OrderStatus, can_transition
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, order_repository: OrderRepository, payment_repository: PaymentRepository):
        self.orders = order_repository
        self.payments = payment_repository

    # ---- reads ------------------------------------------------------------

    def get_orders(self, filters: dict | None = None, per_page: int = 15, page: int = 1) -> Page:
        return self.orders.paginate(filters, per_page, page)

    def get_user_orders(self, user_id: int, per_page: int = 15, page: int = 1) -> Page:
        return self.orders.get_by_user(user_id, per_page, page)

    def get_orders_by_status(self, status: OrderStatus, per_page: int = 15, page: int = 1) -> Page:
        return self.orders.get_by_status(status, per_page, page)

    def get_order(self, order_id: int, with_deleted: bool = False) -> Order:
        return self.orders.find_or_fail(order_id, with_deleted=with_deleted)

    def user_owns_order(self, order_id: int, user_id: int) -> bool:
        order = self.orders.find(order_id)
        return order is not None and order.user_id == user_id

    # ---- writes -----------------------------------------------------------

    def create_order(self, user_id: int, items: list[dict], notes: str | None = None) -> Order:
        if not items:
            raise OrderError.rule_violation("An order needs at least one item")

        try:
            order = self.orders.create(user_id, items, notes)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Order %s created for user %s total=%s", order.order_number, user_id, order.total_amount)
        return order

    def update_order(self, order_id: int, items: list[dict] | None = None, notes=UNSET) -> Order:
        def _op():
            order = self.orders.find_for_update(order_id)
            if not order.is_pending:
                raise OrderError.rule_violation("Only pending orders can be updated")
            self.orders.update(order, items=items, notes=notes)
            db.session.commit()
            return order

        return self._run(_op)

    def delete_order(self, order_id: int) -> bool:
        def _op():
            order = self.orders.find_for_update(order_id)
            if self.payments.order_has_payments(order.id):
                raise OrderError.has_payments()
            self.orders.delete(order)
            db.session.commit()
            logger.info("Order %s soft-deleted", order.order_number)
            return True

        return self._run(_op)

    def confirm_order(self, order_id: int) -> Order:
        return self._transition(order_id, OrderStatus.CONFIRMED)

    def cancel_order(self, order_id: int) -> Order:
        return self._transition(order_id, OrderStatus.CANCELLED)

    # ---- internals --------------------------------------------------------

    def _transition(self, order_id: int, target: OrderStatus) -> Order:
        def _op():
            order = self.orders.find_for_update(order_id)

            # A paid order can not be cancelled, whatever its status says.
            if target == OrderStatus.CANCELLED and self.payments.order_has_successful_payment(order.id):
                raise OrderError.rule_violation("Cannot cancel order with successful payments")

            current = OrderStatus(order.status)
            if not can_transition(current, target):
                raise OrderError.invalid_status_transition(current.value, target.value)

            self.orders.update_status(order, target)
            db.session.commit()
            logger.info("Order %s moved %s -> %s", order.order_number, current.value, target.value)
            return order

        return self._run(_op)

    @staticmethod
    def _run(op):
        try:
            return run_with_retry(op)
        except Exception:
            db.session.rollback()
            raise
