from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import validates

from ..errors import OrderError
from ..extensions import db
from ..identifiers import random_code
from ..time_utils import to_utc_z, utcnow
from ..statuses import OrderStatus, PaymentStatus, can_transition

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

# Random ORD-/PAY- numbers are retried this many times before giving up.
NUMBER_ATTEMPTS = 10


def to_money(value) -> Decimal:
    """Normalize to a 2-decimal Decimal, rounding half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return f"${to_money(value):,.2f}"


def line_total(quantity: int, unit_price) -> Decimal:
    return to_money(Decimal(quantity) * to_money(unit_price))


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Order(db.Model):
    """
    Customer order aggregate.

    WHY: The order owns its items and its derived total; payments hang off
    it but never own it.

    INVARIANTS:
    - total_amount is read-only outside recalculate_total()
    - every status assignment must follow ORDER_TRANSITIONS
    - deleted_at marks a soft delete; rows are never physically erased
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Human-readable order number (e.g., "ORD-7K2M9QXA")
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    status = db.Column(
        db.Enum(OrderStatus, name="order_status", native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        index=True,
    )

    _total_amount = db.Column("total_amount", db.Numeric(10, 2), nullable=False, default=ZERO)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    payments = db.relationship("Payment", back_populates="order", order_by="Payment.id", lazy=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("status", OrderStatus.PENDING)
        super().__init__(**kwargs)
        if self._total_amount is None:
            self._total_amount = ZERO

    @validates("status")
    def _validate_status(self, key, value):
        new_status = OrderStatus(value)
        current = self.status
        if current is None:
            if new_status != OrderStatus.PENDING:
                raise OrderError.invalid_status_transition("new", new_status.value)
            return new_status
        current = OrderStatus(current)
        if not can_transition(current, new_status):
            raise OrderError.invalid_status_transition(current.value, new_status.value)
        return new_status

    @classmethod
    def generate_order_number(cls) -> str:
        # Soft-deleted rows still hold their numbers.
        for _ in range(NUMBER_ATTEMPTS):
            number = f"ORD-{random_code(8)}"
            if not db.session.query(cls.id).filter_by(order_number=number).first():
                return number
        raise RuntimeError(f"No unique order number after {NUMBER_ATTEMPTS} attempts")

    @property
    def total_amount(self) -> Decimal:
        return self._total_amount if self._total_amount is not None else ZERO

    def recalculate_total(self) -> Decimal:
        """Recompute the total from the current item set. Idempotent."""
        self._total_amount = to_money(sum((item.total_price for item in self.items), ZERO))
        return self._total_amount

    def replace_items(self, items: list["OrderItem"]) -> None:
        """Swap the whole item set (old rows are deleted) and refresh the total."""
        self.items = list(items)
        self.recalculate_total()

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING

    @property
    def is_confirmed(self) -> bool:
        return self.status == OrderStatus.CONFIRMED

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def has_payments(self) -> bool:
        return bool(self.payments)

    @property
    def has_successful_payment(self) -> bool:
        return any(p.status == PaymentStatus.SUCCESSFUL for p in self.payments)

    def allowed_actions(self) -> dict:
        paid = self.has_successful_payment
        return {
            "update": self.is_pending,
            "delete": self.is_pending and not self.has_payments,
            "confirm": self.is_pending,
            "cancel": not self.is_cancelled and not paid,
            "pay": self.is_confirmed and not paid,
        }

    def to_dict(self, include_items: bool = True, include_payments: bool = True, include_user: bool = False) -> dict:
        status = OrderStatus(self.status)
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "status": status.value,
            "status_label": status.label,
            "total_amount": float(self.total_amount),
            "total_amount_formatted": format_money(self.total_amount),
            "notes": self.notes,
            "user_id": self.user_id,
            "has_successful_payment": self.has_successful_payment,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "deleted_at": to_utc_z(self.deleted_at) if self.deleted_at else None,
            "can": self.allowed_actions(),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        else:
            data["items_count"] = len(self.items)
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        else:
            data["payments_count"] = len(self.payments)
        if include_user and self.user is not None:
            data["user"] = self.user.to_dict()
        return data


class OrderItem(db.Model):
    """Line item on an order; total_price is fixed when the item is built."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", back_populates="items")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.total_price = line_total(self.quantity, self.unit_price)

    @validates("quantity")
    def _validate_quantity(self, key, value):
        if value is None or int(value) < 1:
            raise ValueError("quantity must be a positive integer")
        return int(value)

    @validates("unit_price")
    def _validate_unit_price(self, key, value):
        price = to_money(value)
        if price < ZERO:
            raise ValueError("unit_price must be >= 0")
        return price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": float(self.unit_price),
            "unit_price_formatted": format_money(self.unit_price),
            "total_price": float(self.total_price),
            "total_price_formatted": format_money(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }
