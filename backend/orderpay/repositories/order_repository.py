# Overview: Data access for orders and their items; flushes, never commits.

from __future__ import annotations

from ..errors import OrderError
from ..extensions import db
from ..models import Order, OrderItem, User
from ..services.concurrency import lock_for_update
from ..statuses import OrderStatus
from ..time_utils import utcnow
from .pagination import DEFAULT_PER_PAGE, Page, apply_date_range, like_pattern, paginate_query

ORDER_SORT_COLUMNS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "order_number": Order.order_number,
    "status": Order.status,
    "total_amount": Order._total_amount,
}

# Sentinel for "leave this field alone" in update()
UNSET = object()


def build_items(items: list[dict]) -> list[OrderItem]:
    return [
        OrderItem(
            product_name=item["product_name"],
            quantity=item["quantity"],
            unit_price=item["unit_price"],
        )
        for item in items
    ]


class OrderRepository:
    """
    Order persistence.

    Soft-deleted orders are invisible to every read here unless
    find(..., with_deleted=True) asks for them. Writes flush so
    ids and defaults are populated; the calling service owns the commit.
    """

    def _base_query(self):
        return db.session.query(Order).filter(Order.deleted_at.is_(None))

    def paginate(self, filters: dict | None = None, per_page: int = DEFAULT_PER_PAGE, page: int = 1) -> Page:
        filters = filters or {}
        query = self._base_query()

        if filters.get("status"):
            query = query.filter(Order.status == OrderStatus(filters["status"]))
        if filters.get("user_id"):
            query = query.filter(Order.user_id == int(filters["user_id"]))

        query = apply_date_range(query, Order.created_at, filters.get("from_date"), filters.get("to_date"))

        if filters.get("search"):
            pattern = like_pattern(filters["search"])
            query = query.join(User, Order.user_id == User.id).filter(
                db.or_(
                    Order.order_number.ilike(pattern, escape="\\"),
                    User.name.ilike(pattern, escape="\\"),
                )
            )

        column = ORDER_SORT_COLUMNS.get(filters.get("sort_by") or "created_at", Order.created_at)
        if (filters.get("sort_dir") or "desc").lower() == "asc":
            query = query.order_by(column.asc(), Order.id.asc())
        else:
            query = query.order_by(column.desc(), Order.id.desc())

        return paginate_query(query, page, per_page)

    def get_by_user(self, user_id: int, per_page: int = DEFAULT_PER_PAGE, page: int = 1) -> Page:
        query = (
            self._base_query()
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return paginate_query(query, page, per_page)

    def get_by_status(self, status: OrderStatus, per_page: int = DEFAULT_PER_PAGE, page: int = 1) -> Page:
        query = (
            self._base_query()
            .filter(Order.status == OrderStatus(status))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return paginate_query(query, page, per_page)

    def find(self, order_id: int, with_deleted: bool = False) -> Order | None:
        """Live order by id; `with_deleted` also returns soft-deleted rows."""
        query = db.session.query(Order) if with_deleted else self._base_query()
        return query.filter(Order.id == order_id).first()

    def find_or_fail(self, order_id: int, with_deleted: bool = False) -> Order:
        order = self.find(order_id, with_deleted=with_deleted)
        if order is None:
            raise OrderError.not_found(order_id)
        return order

    def find_for_update(self, order_id: int) -> Order:
        """Row-locked read for status changes and payment attempts."""
        order = lock_for_update(self._base_query().filter(Order.id == order_id)).first()
        if order is None:
            raise OrderError.not_found(order_id)
        return order

    def find_by_number(self, order_number: str) -> Order | None:
        return self._base_query().filter(Order.order_number == order_number).first()

    def create(self, user_id: int, items: list[dict], notes: str | None = None) -> Order:
        order = Order(
            user_id=user_id,
            order_number=Order.generate_order_number(),
            notes=notes,
        )
        order.replace_items(build_items(items))
        db.session.add(order)
        db.session.flush()
        return order

    def update(self, order: Order, items: list[dict] | None = None, notes=UNSET) -> Order:
        """Replace items (when given) and notes (when passed, even as None)."""
        if notes is not UNSET:
            order.notes = notes
        if items:
            order.replace_items(build_items(items))
        db.session.flush()
        return order

    def delete(self, order: Order) -> bool:
        order.deleted_at = utcnow()
        db.session.flush()
        return True

    def update_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = OrderStatus(status)
        db.session.flush()
        return order

    def recalculate_total(self, order: Order) -> Order:
        order.recalculate_total()
        db.session.flush()
        return order
