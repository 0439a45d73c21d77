# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

# backend/orderpay/routes/payments.py
"""
Payment API routes

Payments are created through POST /api/orders/<id>/payments; this module
covers listing, inspection, refunds and the payment-method catalogue.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..extensions import payment_service
from ..validation import parse_pagination, parse_payment_filters, validate_refund_request

payments_bp = Blueprint("payments", __name__, url_prefix="/api")


@payments_bp.get("/payments")
@require_auth
def list_payments_route():
    """
    Paginated payment listing.

    Query params: status, gateway, order_id, search (payment number or
    transaction id), from_date, to_date, sort_by, sort_dir, page, per_page.
    """
    filters = parse_payment_filters(request.args)
    page, per_page = parse_pagination(
        request.args,
        current_app.config["DEFAULT_PER_PAGE"],
        current_app.config["MAX_PER_PAGE"],
    )
    result = payment_service().get_payments(filters, per_page, page)
    return jsonify({
        "success": True,
        "data": [p.to_dict() for p in result.items],
        "meta": result.meta(),
    }), 200


@payments_bp.get("/payments/<int:payment_id>")
@require_auth
def get_payment_route(payment_id: int):
    payment = payment_service().get_payment(payment_id)
    data = payment.to_dict()
    data["order"] = payment.order.to_dict(include_items=False, include_payments=False)
    return jsonify({"success": True, "data": data}), 200


@payments_bp.post("/payments/<int:payment_id>/refund")
@require_auth
def refund_payment_route(payment_id: int):
    """
    Refund a successful payment, fully or partially.

    Request body (optional): {"amount": 25.00}; omit to refund the remainder.

    Returns 200 when the gateway accepted the refund, 402 when it declined.
    """
    amount = validate_refund_request(request.get_json(silent=True))
    service = payment_service()
    result = service.refund_payment(payment_id, amount)
    payment = service.get_payment(payment_id)

    return jsonify({
        "success": result.success,
        "message": result.message,
        "data": {"refund": result.to_dict(), "payment": payment.to_dict()},
    }), 200 if result.success else 402


@payments_bp.get("/payment-methods")
@require_auth
def payment_methods_route():
    return jsonify({
        "success": True,
        "data": payment_service().get_available_payment_methods(),
    }), 200
