# Overview: Data access for payments; flushes, never commits.

from __future__ import annotations

from ..errors import PaymentError
from ..extensions import db
from ..gateways import PaymentResult, RefundResult
from ..models import Payment
from ..services.concurrency import lock_for_update
from ..statuses import PaymentStatus
from ..time_utils import to_utc_z, utcnow
from .pagination import DEFAULT_PER_PAGE, Page, apply_date_range, like_pattern, paginate_query

PAYMENT_SORT_COLUMNS = {
    "created_at": Payment.created_at,
    "updated_at": Payment.updated_at,
    "payment_number": Payment.payment_number,
    "status": Payment.status,
    "amount": Payment.amount,
    "gateway": Payment.gateway,
}


class PaymentRepository:

    def paginate(self, filters: dict | None = None, per_page: int = DEFAULT_PER_PAGE, page: int = 1) -> Page:
        filters = filters or {}
        query = db.session.query(Payment)

        if filters.get("status"):
            query = query.filter(Payment.status == PaymentStatus(filters["status"]))
        if filters.get("gateway"):
            query = query.filter(Payment.gateway == filters["gateway"])
        if filters.get("order_id"):
            query = query.filter(Payment.order_id == int(filters["order_id"]))

        query = apply_date_range(query, Payment.created_at, filters.get("from_date"), filters.get("to_date"))

        if filters.get("search"):
            pattern = like_pattern(filters["search"])
            query = query.filter(
                db.or_(
                    Payment.payment_number.ilike(pattern, escape="\\"),
                    Payment.gateway_transaction_id.ilike(pattern, escape="\\"),
                )
            )

        column = PAYMENT_SORT_COLUMNS.get(filters.get("sort_by") or "created_at", Payment.created_at)
        if (filters.get("sort_dir") or "desc").lower() == "asc":
            query = query.order_by(column.asc(), Payment.id.asc())
        else:
            query = query.order_by(column.desc(), Payment.id.desc())

        return paginate_query(query, page, per_page)

    def get_by_order(self, order_id: int) -> list[Payment]:
        return (
            db.session.query(Payment)
            .filter(Payment.order_id == order_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )

    def get_by_status(self, status: PaymentStatus, per_page: int = DEFAULT_PER_PAGE, page: int = 1) -> Page:
        query = (
            db.session.query(Payment)
            .filter(Payment.status == PaymentStatus(status))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        )
        return paginate_query(query, page, per_page)

    def find(self, payment_id: int) -> Payment | None:
        return db.session.get(Payment, payment_id)

    def find_or_fail(self, payment_id: int) -> Payment:
        payment = self.find(payment_id)
        if payment is None:
            raise PaymentError.not_found(payment_id)
        return payment

    def find_for_update(self, payment_id: int) -> Payment:
        payment = lock_for_update(db.session.query(Payment).filter(Payment.id == payment_id)).first()
        if payment is None:
            raise PaymentError.not_found(payment_id)
        return payment

    def find_by_number(self, payment_number: str) -> Payment | None:
        return db.session.query(Payment).filter(Payment.payment_number == payment_number).first()

    def create(self, order_id: int, gateway: str, amount, metadata: dict | None = None) -> Payment:
        payment = Payment(
            order_id=order_id,
            payment_number=Payment.generate_payment_number(),
            gateway=gateway,
            amount=amount,
            meta=dict(metadata) if metadata else None,
        )
        db.session.add(payment)
        db.session.flush()
        return payment

    def update_with_result(self, payment: Payment, result: PaymentResult) -> Payment:
        payment.status = result.status
        payment.gateway_transaction_id = result.transaction_id
        payment.processed_at = utcnow()
        payment.merge_metadata({"gateway_response": result.to_dict()})
        db.session.flush()
        return payment

    def mark_failed(self, payment: Payment, reason: str) -> Payment:
        payment.status = PaymentStatus.FAILED
        payment.processed_at = utcnow()
        payment.merge_metadata({"failure_reason": reason})
        db.session.flush()
        return payment

    def record_refund(self, payment: Payment, result: RefundResult) -> Payment:
        entry = result.to_dict()
        entry["requested_at"] = to_utc_z(utcnow())
        refunds = list((payment.meta or {}).get("refunds", []))
        refunds.append(entry)
        payment.merge_metadata({"refunds": refunds})
        db.session.flush()
        return payment

    def order_has_payments(self, order_id: int) -> bool:
        return db.session.query(
            db.session.query(Payment.id).filter(Payment.order_id == order_id).exists()
        ).scalar()

    def order_has_successful_payment(self, order_id: int) -> bool:
        return db.session.query(
            db.session.query(Payment.id)
            .filter(Payment.order_id == order_id, Payment.status == PaymentStatus.SUCCESSFUL)
            .exists()
        ).scalar()
