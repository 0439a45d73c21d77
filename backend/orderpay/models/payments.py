from __future__ import annotations

from sqlalchemy.orm import validates

from ..errors import PaymentError
from ..extensions import db
from ..gateways import GATEWAY_DISPLAY_NAMES
from ..identifiers import random_code
from ..time_utils import to_utc_z, utcnow
from .orders import NUMBER_ATTEMPTS, format_money, to_money, _enum_values
from ..statuses import PaymentStatus, can_transition_payment


class Payment(db.Model):
    """
    One attempt to pay an order through a gateway.

    WHY: The row is written in PENDING before the gateway is called so the
    attempt is auditable even if the gateway blows up.

    INVARIANTS:
    - amount is fixed at creation (the order total at that moment)
    - status moves exactly once, PENDING -> SUCCESSFUL | FAILED
    - at most one SUCCESSFUL payment per order (unique successful_order_id)
    - metadata is only ever merged into, never replaced
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("successful_order_id", name="uq_payments_order_successful"),
        db.Index("ix_payments_order_status", "order_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    # Copy of order_id while SUCCESSFUL, NULL otherwise. Unique; NULLs never collide.
    successful_order_id = db.Column(db.Integer, nullable=True)

    # Human-readable payment number (e.g., "PAY-4F7Q2Z8M1K")
    payment_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    # Registered gateway key (credit_card, paypal, stripe, bank_transfer)
    gateway = db.Column(db.String(32), nullable=False, index=True)
    gateway_transaction_id = db.Column(db.String(128), nullable=True, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(
        db.Enum(PaymentStatus, name="payment_status", native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        index=True,
    )

    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, nullable=True)

    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", back_populates="payments")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", PaymentStatus.PENDING)
        super().__init__(**kwargs)

    @validates("status")
    def _validate_status(self, key, value):
        new_status = PaymentStatus(value)
        current = self.status
        if current is None:
            if new_status != PaymentStatus.PENDING:
                raise PaymentError.already_final(self.payment_number, new_status.value)
            return new_status
        current = PaymentStatus(current)
        if not can_transition_payment(current, new_status):
            raise PaymentError.already_final(self.payment_number, current.value)
        if new_status == PaymentStatus.SUCCESSFUL:
            self.successful_order_id = self.order_id
        return new_status

    @validates("amount")
    def _validate_amount(self, key, value):
        if self.amount is not None:
            raise PaymentError(f"Payment {self.payment_number} amount is fixed at creation", 409)
        return to_money(value)

    @classmethod
    def generate_payment_number(cls) -> str:
        for _ in range(NUMBER_ATTEMPTS):
            number = f"PAY-{random_code(10)}"
            if not db.session.query(cls.id).filter_by(payment_number=number).first():
                return number
        raise RuntimeError(f"No unique payment number after {NUMBER_ATTEMPTS} attempts")

    def merge_metadata(self, extra: dict) -> dict:
        # Reassign so the JSON column sees the change.
        merged = dict(self.meta or {})
        merged.update(extra)
        self.meta = merged
        return merged

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    @property
    def is_successful(self) -> bool:
        return self.status == PaymentStatus.SUCCESSFUL

    @property
    def is_failed(self) -> bool:
        return self.status == PaymentStatus.FAILED

    def to_dict(self) -> dict:
        status = PaymentStatus(self.status)
        return {
            "id": self.id,
            "payment_number": self.payment_number,
            "order_id": self.order_id,
            "gateway": self.gateway,
            "gateway_display_name": GATEWAY_DISPLAY_NAMES.get(
                self.gateway, self.gateway.replace("_", " ").title()
            ),
            "gateway_transaction_id": self.gateway_transaction_id,
            "amount": float(self.amount),
            "amount_formatted": format_money(self.amount),
            "status": status.value,
            "status_label": status.label,
            "is_successful": status == PaymentStatus.SUCCESSFUL,
            "is_pending": status == PaymentStatus.PENDING,
            "is_failed": status == PaymentStatus.FAILED,
            "metadata": self.meta or None,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
