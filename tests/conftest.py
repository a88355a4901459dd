import os
import uuid

# must be in place before aydf reads its settings
os.environ["DATABASE_URL"] = "sqlite:///./test_aydf.db"
os.environ.pop("EMAILJS_SERVICE_ID", None)

import pytest
from fastapi.testclient import TestClient

from aydf import models
from aydf.config import GatewayConfig
from aydf.database import Base, SessionLocal, engine
from aydf.gateway import OrderGatewayClient, compute_signature, get_gateway
from aydf.main import app
from aydf.oauth2 import create_access_token

KEY_ID = "rzp_test_1234"
KEY_SECRET = "test_secret_5678"


# Stands in for razorpay.Client: same call shape, no network
class FakeRazorpayClient:
    def __init__(self, auth):
        self.key_id = auth[0]
        self.key_secret = auth[1]
        self.order = self.Order()
        self.payment = self.Payment()

    class Order:
        def __init__(self):
            self.calls = []

        def create(self, data, **kwargs):
            self.calls.append((data, kwargs))
            return {
                "id": f"order_{uuid.uuid4().hex[:14]}",
                "amount": data["amount"],
                "currency": data["currency"],
                "receipt": data["receipt"],
                "status": "created"
            }

    class Payment:
        def __init__(self):
            self.calls = []

        def fetch(self, payment_id, **kwargs):
            self.calls.append((payment_id, kwargs))
            return {"id": payment_id, "status": "captured", "method": "upi", "amount": 50000}


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def gateway_config():
    return GatewayConfig(key_id=KEY_ID, key_secret=KEY_SECRET)


@pytest.fixture
def razorpay_client():
    return FakeRazorpayClient(auth=(KEY_ID, KEY_SECRET))


@pytest.fixture
def gateway(gateway_config, razorpay_client):
    return OrderGatewayClient(gateway_config, client_factory=lambda auth: razorpay_client)


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sign():
    def _sign(order_id, payment_id, secret=KEY_SECRET):
        return compute_signature(order_id, payment_id, secret)
    return _sign


def make_user(db, email, role=models.Role.USER, name="Asha Verma"):
    user = models.User(
        name=name,
        email=email,
        phone="9876543210",
        hashed_password="not-a-real-hash",
        role=role.value
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return make_user(db, "asha@example.com")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=models.Role.ADMIN, name="Admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'user_id': str(user.id)})}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)
