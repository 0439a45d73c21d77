"""
Pytest fixtures for orderpay backend tests.

Provides an in-memory app per test, users with bearer tokens, services,
and a switchable outcome source so simulated gateways are deterministic.
"""

from decimal import Decimal

import pytest

from orderpay import create_app
from orderpay.extensions import db
from orderpay.gateways import FixedOutcome, PaymentGateway
from orderpay.models import Payment, User
from orderpay.services import session_service
from orderpay.services.auth_service import hash_password
from orderpay.statuses import PaymentStatus

TEST_PASSWORD = "Password123!"

DEFAULT_ITEMS = [
    {"product_name": "Widget", "quantity": 2, "unit_price": Decimal("100.00")},
    {"product_name": "Gadget", "quantity": 3, "unit_price": Decimal("50.00")},
]


def gateway_settings(**overrides) -> dict:
    settings = {
        "credit_card": {"enabled": True, "sandbox": True},
        "paypal": {"enabled": True, "sandbox": True},
        "stripe": {"enabled": True, "sandbox": True},
        "bank_transfer": {
            "enabled": True,
            "sandbox": True,
            "bank_name": "Test Bank",
            "account_number": "00112233",
            "account_name": "Orderpay Ltd",
        },
    }
    for key, block in overrides.items():
        settings[key] = {**settings.get(key, {}), **block}
    return settings


class ExplodingGateway(PaymentGateway):
    """Enabled, but raises when asked about its configuration."""

    name = "exploding"
    display_name = "Exploding"

    def validate_configuration(self):
        raise RuntimeError("boom")

    def supports_refunds(self):
        raise RuntimeError("boom")

    def _charge(self, request):
        raise AssertionError("never charged")

    def _refund(self, transaction_id, amount):
        raise AssertionError("never refunded")


@pytest.fixture(scope='function')
def outcomes():
    """Charges and refunds succeed unless a test flips `outcomes.success`."""
    return FixedOutcome(True)


@pytest.fixture(scope='function')
def app(outcomes):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
        'DEFAULT_PAYMENT_GATEWAY': 'credit_card',
        'PAYMENT_GATEWAYS': gateway_settings(),
    }, outcomes=outcomes)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    yield db.session
    db.session.rollback()


@pytest.fixture(scope='function')
def order_service(app):
    return app.extensions['orderpay']['order_service']


@pytest.fixture(scope='function')
def payment_service(app):
    return app.extensions['orderpay']['payment_service']


@pytest.fixture(scope='function')
def gateway_factory(app):
    return app.extensions['orderpay']['gateway_factory']


def _make_user(db_session, name: str, email: str) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user(db_session):
    return _make_user(db_session, "Alice Buyer", "alice@example.com")


@pytest.fixture(scope='function')
def other_user(db_session):
    return _make_user(db_session, "Bob Other", "bob@example.com")


@pytest.fixture(scope='function')
def token(user):
    _, plaintext = session_service.create_session(user.id)
    return plaintext


@pytest.fixture(scope='function')
def auth_headers(token):
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def make_order(order_service, user):
    """
    Build an order for `user` (or `owner`), optionally confirmed.

    Defaults to the 2 x 100.00 + 3 x 50.00 basket (total 350.00).
    """
    def _make(items=None, notes=None, confirm=False, owner=None):
        owner = owner or user
        order = order_service.create_order(owner.id, items or DEFAULT_ITEMS, notes)
        if confirm:
            order = order_service.confirm_order(order.id)
        return order
    return _make


@pytest.fixture(scope='function')
def paid_order(make_order, payment_service):
    order = make_order(confirm=True)
    payment = payment_service.process_payment(order.id, "credit_card")
    assert payment.status == PaymentStatus.SUCCESSFUL
    return order


def count_payments(order_id: int | None = None) -> int:
    query = db.session.query(Payment)
    if order_id is not None:
        query = query.filter(Payment.order_id == order_id)
    return query.count()
