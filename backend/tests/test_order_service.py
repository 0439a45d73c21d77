"""
Order service tests.

Verifies:
- Totals are derived from items and recalculated on every item change
- Status changes follow the transition table
- Delete/cancel/update guards (payments, successful payments, pending only)
- Listing filters, search, sorting and pagination
"""

import re
from datetime import timedelta
from decimal import Decimal

import pytest

from orderpay.errors import OrderError
from orderpay.models import Order, Payment
from orderpay.statuses import OrderStatus, PaymentStatus
from orderpay.time_utils import utcnow

from conftest import count_payments


# =============================================================================
# CREATE / TOTALS
# =============================================================================


class TestCreateOrder:

    def test_total_from_items(self, make_order, user):
        order = make_order(notes="Leave at the door")

        assert order.total_amount == Decimal("350.00")
        assert order.status == OrderStatus.PENDING
        assert order.user_id == user.id
        assert order.notes == "Leave at the door"
        assert [item.total_price for item in order.items] == [Decimal("200.00"), Decimal("150.00")]

    def test_order_number_gives_up_after_repeated_collisions(self, make_order, monkeypatch):
        taken = make_order().order_number
        monkeypatch.setattr("orderpay.models.orders.random_code", lambda length: taken[len("ORD-"):])

        with pytest.raises(RuntimeError, match="No unique order number"):
            Order.generate_order_number()

    def test_order_number_format(self, make_order):
        first, second = make_order(), make_order()
        assert re.match(r"^ORD-[A-Z0-9]{8}$", first.order_number)
        assert first.order_number != second.order_number

    def test_recalculate_is_idempotent(self, make_order, order_service):
        order = make_order()
        assert order.recalculate_total() == Decimal("350.00")
        assert order.recalculate_total() == Decimal("350.00")
        assert order_service.orders.recalculate_total(order).total_amount == Decimal("350.00")

    def test_prices_round_half_up(self, make_order):
        order = make_order(items=[{"product_name": "Nail", "quantity": 3, "unit_price": Decimal("0.125")}])
        assert order.items[0].unit_price == Decimal("0.13")
        assert order.total_amount == Decimal("0.39")

    def test_empty_items_rejected(self, order_service, user):
        with pytest.raises(OrderError) as exc:
            order_service.create_order(user.id, [])
        assert exc.value.code == 422
        assert Order.query.count() == 0


# =============================================================================
# UPDATE
# =============================================================================


class TestUpdateOrder:

    def test_items_replaced_and_total_recomputed(self, make_order, order_service):
        order = make_order()
        updated = order_service.update_order(
            order.id,
            items=[{"product_name": "Single", "quantity": 1, "unit_price": Decimal("19.99")}],
        )

        assert [i.product_name for i in updated.items] == ["Single"]
        assert updated.total_amount == Decimal("19.99")

    def test_notes_only_keeps_items(self, make_order, order_service):
        order = make_order(notes="old")
        updated = order_service.update_order(order.id, notes="new")
        assert updated.notes == "new"
        assert len(updated.items) == 2
        assert updated.total_amount == Decimal("350.00")

    def test_notes_can_be_cleared(self, make_order, order_service):
        order = make_order(notes="old")
        assert order_service.update_order(order.id, notes=None).notes is None

    def test_only_pending_orders(self, make_order, order_service):
        order = make_order(confirm=True)
        with pytest.raises(OrderError) as exc:
            order_service.update_order(order.id, notes="too late")
        assert exc.value.code == 422
        assert exc.value.message == "Only pending orders can be updated"


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================


class TestTransitions:

    def test_confirm(self, make_order, order_service):
        order = make_order()
        assert order_service.confirm_order(order.id).status == OrderStatus.CONFIRMED

    def test_double_confirm_is_rejected(self, make_order, order_service):
        order = make_order(confirm=True)
        with pytest.raises(OrderError) as exc:
            order_service.confirm_order(order.id)
        assert exc.value.code == 422
        assert exc.value.context == {"from": "confirmed", "to": "confirmed"}

    @pytest.mark.parametrize("confirm", [False, True])
    def test_cancel(self, make_order, order_service, confirm):
        order = make_order(confirm=confirm)
        assert order_service.cancel_order(order.id).status == OrderStatus.CANCELLED

    def test_cancelled_is_absorbing(self, make_order, order_service):
        order = make_order()
        order_service.cancel_order(order.id)

        for op in (order_service.confirm_order, order_service.cancel_order):
            with pytest.raises(OrderError) as exc:
                op(order.id)
            assert exc.value.code == 422
        assert order_service.get_order(order.id).status == OrderStatus.CANCELLED

    def test_paid_order_cannot_be_cancelled(self, paid_order, order_service):
        with pytest.raises(OrderError) as exc:
            order_service.cancel_order(paid_order.id)
        assert exc.value.message == "Cannot cancel order with successful payments"
        assert order_service.get_order(paid_order.id).status == OrderStatus.CONFIRMED

    def test_failed_payment_does_not_block_cancel(self, make_order, order_service, payment_service, outcomes):
        order = make_order(confirm=True)
        outcomes.success = False
        payment_service.process_payment(order.id, "credit_card")
        assert order_service.cancel_order(order.id).is_cancelled

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderError) as exc:
            order_service.confirm_order(9999)
        assert exc.value.code == 404
        assert exc.value.message == "Order with ID 9999 not found"


# =============================================================================
# DELETE
# =============================================================================


class TestDeleteOrder:

    def test_soft_delete_hides_order(self, make_order, order_service, db_session):
        order = make_order()
        assert order_service.delete_order(order.id) is True

        with pytest.raises(OrderError) as exc:
            order_service.get_order(order.id)
        assert exc.value.code == 404
        assert order_service.get_orders().total == 0

        row = db_session.get(Order, order.id)
        assert row is not None
        assert row.deleted_at is not None

    def test_deleted_order_is_retrievable_as_deleted(self, make_order, order_service):
        order = make_order()
        order_service.delete_order(order.id)

        deleted = order_service.get_order(order.id, with_deleted=True)
        assert deleted.id == order.id
        assert deleted.is_deleted
        assert deleted.to_dict()["deleted_at"] is not None

    def test_any_payment_blocks_delete(self, make_order, order_service, payment_service, outcomes):
        order = make_order(confirm=True)
        outcomes.success = False
        payment_service.process_payment(order.id, "stripe")

        with pytest.raises(OrderError) as exc:
            order_service.delete_order(order.id)
        assert exc.value.code == 409
        assert count_payments(order.id) == 1
        assert order_service.get_order(order.id).deleted_at is None


# =============================================================================
# OWNERSHIP / LISTING
# =============================================================================


class TestListing:

    def test_user_owns_order(self, make_order, order_service, user, other_user):
        order = make_order()
        assert order_service.user_owns_order(order.id, user.id)
        assert not order_service.user_owns_order(order.id, other_user.id)
        assert not order_service.user_owns_order(9999, user.id)

    def test_user_orders(self, make_order, order_service, user, other_user):
        make_order()
        make_order()
        make_order(owner=other_user)

        page = order_service.get_user_orders(user.id)
        assert page.total == 2
        assert all(o.user_id == user.id for o in page.items)

    def test_status_filter(self, make_order, order_service):
        make_order()
        confirmed = make_order(confirm=True)

        page = order_service.get_orders({"status": "confirmed"})
        assert [o.id for o in page.items] == [confirmed.id]
        assert order_service.get_orders_by_status(OrderStatus.PENDING).total == 1

    def test_search_by_number_and_owner_name(self, make_order, order_service, other_user):
        mine = make_order()
        theirs = make_order(owner=other_user)

        by_number = order_service.get_orders({"search": mine.order_number.lower()})
        assert [o.id for o in by_number.items] == [mine.id]

        by_owner = order_service.get_orders({"search": "bob other"})
        assert [o.id for o in by_owner.items] == [theirs.id]

    def test_search_treats_wildcards_literally(self, make_order, order_service):
        make_order()
        assert order_service.get_orders({"search": "%"}).total == 0

    def test_date_range(self, make_order, order_service, db_session):
        old = make_order()
        old.created_at = utcnow() - timedelta(days=10)
        db_session.commit()
        recent = make_order()

        today = utcnow().date()
        page = order_service.get_orders({"from_date": today - timedelta(days=1), "to_date": today})
        assert [o.id for o in page.items] == [recent.id]

    def test_sort_by_total(self, make_order, order_service):
        cheap = make_order(items=[{"product_name": "A", "quantity": 1, "unit_price": Decimal("1.00")}])
        pricey = make_order()

        asc = order_service.get_orders({"sort_by": "total_amount", "sort_dir": "asc"})
        assert [o.id for o in asc.items] == [cheap.id, pricey.id]
        desc = order_service.get_orders({"sort_by": "total_amount", "sort_dir": "desc"})
        assert [o.id for o in desc.items] == [pricey.id, cheap.id]

    def test_pagination(self, make_order, order_service):
        for _ in range(5):
            make_order()

        page = order_service.get_orders(per_page=2, page=3)
        assert page.total == 5
        assert len(page.items) == 1
        assert page.meta() == {"current_page": 3, "per_page": 2, "total": 5, "last_page": 3}

    def test_per_page_is_capped(self, make_order, order_service):
        make_order()
        assert order_service.get_orders(per_page=1000).per_page == 100


class TestAllowedActions:

    def test_pending(self, make_order):
        assert make_order().allowed_actions() == {
            "update": True, "delete": True, "confirm": True, "cancel": True, "pay": False,
        }

    def test_paid(self, paid_order):
        assert paid_order.allowed_actions() == {
            "update": False, "delete": False, "confirm": False, "cancel": False, "pay": False,
        }

    def test_payment_rows_reflected(self, paid_order):
        assert paid_order.has_successful_payment
        assert Payment.query.filter_by(order_id=paid_order.id, status=PaymentStatus.SUCCESSFUL).count() == 1
