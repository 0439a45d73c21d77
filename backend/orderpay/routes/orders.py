# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/orderpay/routes/orders.py
"""
Order API routes

All routes require a bearer token. Business-rule failures raise domain
errors which the app-level handlers render as
{"success": false, "message": ..., "errors": ...}.

STATUS TRANSITIONS:
- PATCH /api/orders/<id>/confirm   pending -> confirmed
- PATCH /api/orders/<id>/cancel    pending|confirmed -> cancelled (unpaid only)
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import order_service, payment_service
from ..validation import (
    parse_order_filters,
    parse_pagination,
    validate_create_order,
    validate_payment_request,
    validate_update_order,
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _pagination_args() -> tuple[int, int]:
    return parse_pagination(
        request.args,
        current_app.config["DEFAULT_PER_PAGE"],
        current_app.config["MAX_PER_PAGE"],
    )


def _order_list_response(page):
    return jsonify({
        "success": True,
        "data": [o.to_dict(include_items=False, include_payments=False, include_user=True) for o in page.items],
        "meta": page.meta(),
    }), 200


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Paginated order listing.

    Query params: status, user_id, search, from_date, to_date,
    sort_by, sort_dir, page, per_page (default 15, max 100).
    """
    filters = parse_order_filters(request.args)
    page, per_page = _pagination_args()
    return _order_list_response(order_service().get_orders(filters, per_page, page))


@orders_bp.get("/my-orders")
@require_auth
def my_orders_route():
    page, per_page = _pagination_args()
    return _order_list_response(order_service().get_user_orders(g.current_user.id, per_page, page))


@orders_bp.post("")
@require_auth
def create_order_route():
    data = validate_create_order(request.get_json(silent=True))
    order = order_service().create_order(g.current_user.id, data["items"], data["notes"])
    return jsonify({
        "success": True,
        "message": "Order created successfully",
        "data": order.to_dict(include_user=True),
    }), 201


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = order_service().get_order(order_id)
    return jsonify({"success": True, "data": order.to_dict(include_user=True)}), 200


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order_route(order_id: int):
    data = validate_update_order(request.get_json(silent=True))
    order = order_service().update_order(order_id, **data)
    return jsonify({
        "success": True,
        "message": "Order updated successfully",
        "data": order.to_dict(include_user=True),
    }), 200


@orders_bp.delete("/<int:order_id>")
@require_auth
def delete_order_route(order_id: int):
    order_service().delete_order(order_id)
    return jsonify({"success": True, "message": "Order deleted successfully"}), 200


@orders_bp.patch("/<int:order_id>/confirm")
@require_auth
def confirm_order_route(order_id: int):
    order = order_service().confirm_order(order_id)
    return jsonify({
        "success": True,
        "message": "Order confirmed successfully",
        "data": order.to_dict(),
    }), 200


@orders_bp.patch("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    order = order_service().cancel_order(order_id)
    return jsonify({
        "success": True,
        "message": "Order cancelled successfully",
        "data": order.to_dict(),
    }), 200


# =============================================================================
# ORDER PAYMENTS
# =============================================================================

@orders_bp.get("/<int:order_id>/payments")
@require_auth
def order_payments_route(order_id: int):
    # 404 for unknown or deleted orders
    order_service().get_order(order_id)
    payments = payment_service().get_order_payments(order_id)
    return jsonify({"success": True, "data": [p.to_dict() for p in payments]}), 200


@orders_bp.post("/<int:order_id>/payments")
@require_auth
def process_payment_route(order_id: int):
    """
    Pay a confirmed order.

    Request body:
    {
        "payment_method": "credit_card",
        "metadata": {"card_last_four": "4242", "card_brand": "visa"}   (optional)
    }

    Returns:
        201: Payment successful
        402: Payment declined (the failed payment is in "data")
        404: Order or gateway not found
        409: Order already paid
        422: Order not confirmed / invalid input
        503: Gateway disabled
    """
    service = payment_service()
    data = validate_payment_request(request.get_json(silent=True), service.gateways.registered())

    payment = service.process_payment(order_id, data["payment_method"], data["metadata"])

    successful = payment.is_successful
    return jsonify({
        "success": successful,
        "message": "Payment processed successfully" if successful else "Payment processing failed",
        "data": payment.to_dict(),
    }), 201 if successful else 402
