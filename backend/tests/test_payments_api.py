"""
Payment API tests.

Verifies:
- POST /api/orders/<id>/payments: 201 on success, 402 on decline
- Business-rule failures (not confirmed, already paid) map to 422/409
- Payment listing, detail, refunds and the payment-method catalogue
"""

from functools import partial

import pytest

from orderpay.gateways import StripeGateway

from conftest import ExplodingGateway


def _confirmed_order_id(make_order):
    return make_order(confirm=True).id


def _pay(client, headers, order_id, method="credit_card", **extra):
    return client.post(
        f"/api/orders/{order_id}/payments",
        json={"payment_method": method, **extra},
        headers=headers,
    )


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/payments"),
            ("GET", "/api/payments/1"),
            ("POST", "/api/payments/1/refund"),
            ("GET", "/api/payment-methods"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401


# =============================================================================
# PROCESS PAYMENT
# =============================================================================


class TestProcessPayment:

    def test_success(self, client, auth_headers, make_order):
        order_id = _confirmed_order_id(make_order)
        resp = _pay(client, auth_headers, order_id, metadata={"card_last_four": "4242", "card_brand": "visa"})
        body = resp.get_json()

        assert resp.status_code == 201
        assert body["success"] is True
        assert body["message"] == "Payment processed successfully"
        assert body["data"]["status"] == "successful"
        assert body["data"]["gateway_display_name"] == "Credit Card"
        assert body["data"]["amount"] == 350.0
        assert body["data"]["metadata"]["card_brand"] == "visa"

    def test_decline(self, client, auth_headers, make_order, outcomes):
        order_id = _confirmed_order_id(make_order)
        outcomes.success = False

        resp = _pay(client, auth_headers, order_id, method="stripe")
        body = resp.get_json()

        assert resp.status_code == 402
        assert body["success"] is False
        assert body["message"] == "Payment processing failed"
        assert body["data"]["status"] == "failed"

    def test_method_is_case_insensitive(self, client, auth_headers, make_order):
        resp = _pay(client, auth_headers, _confirmed_order_id(make_order), method="PayPal")
        assert resp.status_code == 201
        assert resp.get_json()["data"]["gateway"] == "paypal"

    def test_pending_order(self, client, auth_headers, make_order):
        order = make_order()
        resp = _pay(client, auth_headers, order.id)
        assert resp.status_code == 422
        assert resp.get_json()["message"] == "Payments can only be processed for confirmed orders"

    def test_already_paid(self, client, auth_headers, paid_order):
        resp = _pay(client, auth_headers, paid_order.id, method="paypal")
        assert resp.status_code == 409
        assert resp.get_json()["message"] == "This order has already been paid"

    def test_missing_order(self, client, auth_headers):
        resp = _pay(client, auth_headers, 999)
        assert resp.status_code == 404

    def test_payment_method_required(self, client, auth_headers, make_order):
        resp = client.post(
            f"/api/orders/{_confirmed_order_id(make_order)}/payments", json={}, headers=auth_headers
        )
        assert resp.status_code == 422
        assert resp.get_json()["errors"]["payment_method"] == ["Please select a payment method."]

    def test_invalid_payment_method(self, client, auth_headers, make_order):
        resp = _pay(client, auth_headers, _confirmed_order_id(make_order), method="bitcoin")
        message = resp.get_json()["errors"]["payment_method"][0]
        assert resp.status_code == 422
        assert message.endswith("Available methods: credit_card, paypal, stripe, bank_transfer")

    def test_invalid_metadata(self, client, auth_headers, make_order):
        resp = _pay(
            client, auth_headers, _confirmed_order_id(make_order),
            metadata={"card_last_four": "42", "card_brand": "x" * 51},
        )
        errors = resp.get_json()["errors"]
        assert resp.status_code == 422
        assert set(errors) == {"metadata.card_last_four", "metadata.card_brand"}

    def test_disabled_gateway(self, client, auth_headers, make_order, gateway_factory):
        gateway_factory.register("stripe", partial(StripeGateway, {"enabled": False}))
        resp = _pay(client, auth_headers, _confirmed_order_id(make_order), method="stripe")
        body = resp.get_json()

        assert resp.status_code == 503
        assert body["gateway"] == "stripe"
        assert body["success"] is False

    def test_order_payments(self, client, auth_headers, make_order, outcomes):
        order_id = _confirmed_order_id(make_order)
        outcomes.success = False
        _pay(client, auth_headers, order_id)
        outcomes.success = True
        _pay(client, auth_headers, order_id)

        resp = client.get(f"/api/orders/{order_id}/payments", headers=auth_headers)
        statuses = [p["status"] for p in resp.get_json()["data"]]
        assert statuses == ["successful", "failed"]

        order = client.get(f"/api/orders/{order_id}", headers=auth_headers).get_json()["data"]
        assert order["has_successful_payment"] is True
        assert order["can"]["cancel"] is False

    def test_order_payments_for_missing_order(self, client, auth_headers):
        resp = client.get("/api/orders/999/payments", headers=auth_headers)
        assert resp.status_code == 404


# =============================================================================
# LISTING / DETAIL
# =============================================================================


class TestPaymentQueries:

    def test_list_with_filters(self, client, auth_headers, make_order):
        _pay(client, auth_headers, _confirmed_order_id(make_order), method="paypal")
        _pay(client, auth_headers, _confirmed_order_id(make_order), method="stripe")

        resp = client.get("/api/payments?gateway=PAYPAL", headers=auth_headers)
        body = resp.get_json()
        assert resp.status_code == 200
        assert [p["gateway"] for p in body["data"]] == ["paypal"]
        assert body["meta"]["total"] == 1

    def test_list_rejects_bad_status(self, client, auth_headers):
        resp = client.get("/api/payments?status=refunded", headers=auth_headers)
        assert resp.status_code == 422

    def test_detail_includes_order(self, client, auth_headers, paid_order):
        payment_id = paid_order.payments[0].id
        resp = client.get(f"/api/payments/{payment_id}", headers=auth_headers)
        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert data["order"]["order_number"] == paid_order.order_number

    def test_detail_missing(self, client, auth_headers):
        resp = client.get("/api/payments/999", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Payment with ID 999 not found"

    def test_payment_methods(self, client, auth_headers):
        resp = client.get("/api/payment-methods", headers=auth_headers)
        methods = resp.get_json()["data"]
        assert [m["name"] for m in methods] == ["credit_card", "paypal", "stripe", "bank_transfer"]
        assert all(m["enabled"] for m in methods)

    def test_payment_methods_survive_a_broken_gateway(self, client, auth_headers, gateway_factory):
        gateway_factory.register("exploding", partial(ExplodingGateway, {"enabled": True}))

        resp = client.get("/api/payment-methods", headers=auth_headers)
        assert resp.status_code == 200
        assert "exploding" not in [m["name"] for m in resp.get_json()["data"]]

        health = client.get("/api/health")
        assert health.status_code == 200
        assert "exploding" not in health.get_json()["checks"]["gateways"]


# =============================================================================
# REFUNDS
# =============================================================================


class TestRefundEndpoint:

    def test_partial_refund(self, client, auth_headers, paid_order):
        payment_id = paid_order.payments[0].id
        resp = client.post(f"/api/payments/{payment_id}/refund", json={"amount": 25}, headers=auth_headers)
        body = resp.get_json()

        assert resp.status_code == 200
        assert body["data"]["refund"]["amount"] == 25.0
        assert body["data"]["payment"]["status"] == "successful"
        assert len(body["data"]["payment"]["metadata"]["refunds"]) == 1

    def test_declined_refund(self, client, auth_headers, paid_order, outcomes):
        payment_id = paid_order.payments[0].id
        outcomes.success = False
        resp = client.post(f"/api/payments/{payment_id}/refund", headers=auth_headers)
        assert resp.status_code == 402
        assert resp.get_json()["success"] is False

    def test_over_refund(self, client, auth_headers, paid_order):
        payment_id = paid_order.payments[0].id
        resp = client.post(f"/api/payments/{payment_id}/refund", json={"amount": 1000}, headers=auth_headers)
        assert resp.status_code == 422

    def test_invalid_amount(self, client, auth_headers, paid_order):
        payment_id = paid_order.payments[0].id
        resp = client.post(f"/api/payments/{payment_id}/refund", json={"amount": "abc"}, headers=auth_headers)
        assert resp.status_code == 422
        assert "amount" in resp.get_json()["errors"]
