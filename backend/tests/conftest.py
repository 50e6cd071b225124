"""
Pytest fixtures for storefront backend tests.

Provides the in-memory app, per-test data reset, user/product factories,
a recording Razorpay double and an admin-event listener.
"""

import itertools
import json

import httpx
import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Product
from storefront.services import notification_service
from storefront.services.auth_service import create_user, issue_token
from storefront.services.gateway_service import RazorpayGateway, payment_signature


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'JWT_SECRET': 'test-jwt-secret-with-at-least-32-bytes!!',
    'RAZORPAY_KEY_ID': 'rzp_test_key',
    'RAZORPAY_KEY_SECRET': 'test_key_secret',
    'RAZORPAY_WEBHOOK_SECRET': 'test_webhook_secret',
    'BCRYPT_ROUNDS': 4,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session):
    counter = itertools.count(1)

    def _make(role="customer", *, email=None, name=None, password="Password123!", is_active=True):
        n = next(counter)
        user = create_user(
            name=name or f"Customer {n}",
            email=email or f"customer{n}@example.com",
            password=password,
            phone="9876543210",
            role=role,
        )
        user.is_active = is_active
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user()


@pytest.fixture(scope='function')
def other_customer(make_user):
    return make_user()


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(role="admin", name="Store Admin")


@pytest.fixture(scope='function')
def make_product(db_session):
    counter = itertools.count(1)

    def _make(*, price=10000, stock=5, name=None, category="General", is_active=True):
        n = next(counter)
        product = Product(
            name=name or f"Product {n}",
            category=category,
            price=price,
            stock=stock,
            unit="1 kg",
            tags=[],
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


def auth_headers(user) -> dict:
    """Helper to create Authorization headers for a user."""
    return {'Authorization': f'Bearer {issue_token(user)}'}


def sign_payment(gateway_order_id: str, gateway_payment_id: str) -> str:
    return payment_signature(TEST_CONFIG['RAZORPAY_KEY_SECRET'], gateway_order_id, gateway_payment_id)


# =============================================================================
# GATEWAY DOUBLE
# =============================================================================

class GatewayRecorder:
    """
    httpx.MockTransport handler standing in for the Razorpay API.

    Set fail_with=(status, json_body) to return an error, or raise_network
    to simulate an unreachable gateway.
    """

    def __init__(self):
        self.calls = []
        self.fail_with = None
        self.raise_network = False
        self.refund_status = "processed"
        self._ids = itertools.count(1)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        self.calls.append((request.method, request.url.path, body))

        if self.raise_network:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_with:
            status, payload = self.fail_with
            return httpx.Response(status, json=payload)

        n = next(self._ids)
        if request.url.path.endswith("/orders"):
            return httpx.Response(200, json={
                "id": f"order_test{n}",
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
            })
        if request.url.path.endswith("/refund"):
            return httpx.Response(200, json={
                "id": f"rfnd_test{n}",
                "entity": "refund",
                "amount": body["amount"],
                "status": self.refund_status,
            })
        return httpx.Response(404, json={"error": {"description": "Unknown endpoint"}})

    def paths(self):
        return [path for _method, path, _body in self.calls]


@pytest.fixture(scope='function')
def gateway(app):
    recorder = GatewayRecorder()
    original = app.extensions["payment_gateway"]
    app.extensions["payment_gateway"] = RazorpayGateway(
        app.config["RAZORPAY_KEY_ID"],
        app.config["RAZORPAY_KEY_SECRET"],
        transport=httpx.MockTransport(recorder),
    )
    yield recorder
    app.extensions["payment_gateway"] = original


@pytest.fixture(scope='function')
def admin_events(app):
    """Collects (event, payload) tuples published to admins."""
    received = []

    def _listener(sender, event=None, payload=None):
        received.append((event, payload))

    notification_service.admin_event.connect(_listener)
    yield received
    notification_service.admin_event.disconnect(_listener)


@pytest.fixture(scope='function')
def headers_for(app):
    return auth_headers


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture(scope='function')
def signer(app):
    """Computes the checkout signature the gateway would hand the client."""
    return sign_payment


@pytest.fixture(scope='function')
def broken_admin_receiver(app):
    """Connects an admin event receiver that always raises."""
    seen = []

    def _receiver(sender, event=None, payload=None):
        seen.append(event)
        raise RuntimeError("admin socket gone")

    notification_service.admin_event.connect(_receiver)
    yield seen
    notification_service.admin_event.disconnect(_receiver)
