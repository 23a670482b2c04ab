import hashlib
import hmac
import json
import os
import time

# must be set before storefront.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["SITE_URL"] = "https://shop.example.com"
os.environ["RESEND_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.api import deps
from storefront.data.database import Base, get_db
from storefront.data.models import OrderModel, OrderItemModel
from storefront.main import create_app
from storefront.services.auth_service import AdminAuthService, hash_password
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_PASSWORD = "correct horse battery"


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def completed_event(session_id: str = "cs_test_123") -> str:
    return json.dumps(
        {
            "id": "evt_test_1",
            "type": "checkout.session.completed",
            "data": {"object": {"id": session_id, "object": "checkout.session"}},
        }
    )


def make_session(session_id: str = "cs_test_123", **overrides):
    session = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid",
        "payment_intent": "pi_test_123",
        "currency": "nzd",
        "amount_subtotal": 25997,
        "amount_total": 25997,
        "customer_email": None,
        "customer_details": {
            "email": "ana@example.com",
            "name": "Ana Maria Lopez",
            "phone": "+6421000000",
            "address": {"country": "NZ", "line1": None},
        },
        "metadata": {
            "region": "nz",
            "items_json": json.dumps(
                [
                    {"id": "velvet-armchair", "name": "Velvet Armchair", "price": 199.99, "quantity": 1,
                     "colorVariant": "Emerald", "slug": "velvet-armchair", "image": "/img/armchair.jpg"},
                    {"id": "linen-throw", "name": "Linen Throw", "price": 29.99, "quantity": 2,
                     "colorVariant": None, "slug": "linen-throw", "image": "/img/throw.jpg"},
                ]
            ),
            "shipping_address_json": json.dumps(
                {"firstName": "Ana", "lastName": "Lopez", "address": "12 Queen St", "city": "Auckland",
                 "state": "Auckland", "postalCode": "1010", "country": "NZ"}
            ),
        },
        "line_items": {
            "object": "list",
            "data": [
                {
                    "id": "li_1",
                    "description": "Velvet Armchair",
                    "quantity": 1,
                    "amount_total": 19999,
                    "price": {
                        "unit_amount": 19999,
                        "product": {
                            "id": "prod_A",
                            "name": "Velvet Armchair",
                            "images": [],
                            "metadata": {"product_id": "velvet-armchair", "color_variant": "Emerald", "slug": "velvet-armchair"},
                        },
                    },
                },
                {
                    "id": "li_2",
                    "description": "Linen Throw",
                    "quantity": 2,
                    "amount_total": 5998,
                    "price": {
                        "unit_amount": 2999,
                        "product": {
                            "id": "prod_B",
                            "name": "Linen Throw",
                            "images": [],
                            "metadata": {"product_id": "linen-throw", "color_variant": "", "slug": "linen-throw"},
                        },
                    },
                },
            ],
        },
    }
    session.update(overrides)
    return session


class FakeGateway(PaymentGateway):
    """Real signature verification, canned responses for API calls."""

    def __init__(self):
        super().__init__(api_key="sk_test_fake", tolerance=300)
        self.sessions = {}
        self.created_sessions = []
        self.retrieve_calls = []
        self.refunds = []
        self.on_retrieve = None
        self.fail_with = None

    def create_checkout_session(self, params):
        if self.fail_with:
            raise self.fail_with
        self.created_sessions.append(params)
        session_id = f"cs_test_{len(self.created_sessions)}"
        return {"id": session_id, "url": f"https://checkout.stripe.com/c/pay/{session_id}"}

    def retrieve_session(self, session_id, expand=None):
        self.retrieve_calls.append(session_id)
        if self.fail_with:
            raise self.fail_with
        if self.on_retrieve:
            self.on_retrieve(session_id)
        return self.sessions[session_id]

    def create_refund(self, payment_intent, amount, reason):
        if self.fail_with:
            raise self.fail_with
        self.refunds.append({"payment_intent": payment_intent, "amount": amount, "reason": reason})
        return {"id": f"re_test_{len(self.refunds)}", "amount": amount, "status": "succeeded"}


class RecordingNotifier(NotificationService):
    def __init__(self, fail: bool = False):
        super().__init__(api_key="re_test", admin_email="admin@example.com")
        self.fail = fail
        self.calls = []

    def _record(self, kind, *args):
        self.calls.append((kind, *args))
        if self.fail:
            raise RuntimeError("email provider down")

    def send_order_created(self, order):
        self._record("order_created", order.order_number)
        return {"customer": True, "admin": True}

    def send_shipping_notification(self, order):
        self._record("shipping", order.order_number, order.tracking_number)
        return True

    def send_refund_confirmation(self, order, amount):
        self._record("refund", order.order_number, amount)
        return True


class FakeThrottle:
    def __init__(self, max_attempts: int = 3, window_seconds: int = 900):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.failures = {}

    def retry_after(self, client_id):
        return self.window_seconds if self.failures.get(client_id, 0) >= self.max_attempts else 0

    def register_failure(self, client_id):
        self.failures[client_id] = self.failures.get(client_id, 0) + 1
        return self.failures[client_id]

    def reset(self, client_id):
        self.failures.pop(client_id, None)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def throttle():
    return FakeThrottle()


@pytest.fixture
def app(db, gateway, notifier, throttle):
    app = create_app()
    password_hash = hash_password(ADMIN_PASSWORD, iterations=1000)

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[deps.get_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_admin_auth] = lambda: AdminAuthService(throttle, password_hash=password_hash)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_PASSWORD}"}


@pytest.fixture
def make_order(db):
    counter = {"n": 0}

    def _make(with_items: bool = True, **overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = dict(
            order_number=f"ORD{n:04d}",
            stripe_session_id=f"cs_existing_{n}",
            stripe_payment_intent=f"pi_existing_{n}",
            customer_email=f"customer{n}@example.com",
            customer_name=f"Customer {n}",
            shipping_address={"firstName": "Customer", "lastName": str(n), "address": "1 Main St",
                              "city": "Wellington", "state": "", "postalCode": "6011", "country": "NZ"},
            region="nz",
            currency="NZD",
            subtotal=10000,
            shipping=0,
            tax=0,
            total=10000,
            status="paid",
            payment_status="paid",
            fulfillment_status="unfulfilled",
        )
        fields.update(overrides)
        order = OrderModel(**fields)
        if with_items:
            order.items = [
                OrderItemModel(product_id="velvet-armchair", product_name="Velvet Armchair", product_slug="velvet-armchair",
                               color_variant="Emerald", quantity=1, unit_price=fields["total"], total_price=fields["total"]),
            ]
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make
