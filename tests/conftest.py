import hashlib
import hmac
import json
import os
import tempfile
import time

# Configure the app before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["TRANSCRIPTION_BACKEND"] = "mock"
os.environ["IDENTITY_WEBHOOK_SECRET"] = ""
os.environ["AUTO_CREATE_USERS"] = "true"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="transcribe-test-uploads-")

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.dependencies.services import get_payment_gateway
from app.main import app
from app.services.payments import CheckoutSession, StripeGateway
from app.services.user_store import UserStore

WEBHOOK_SECRET = "whsec_test_secret"


class FakeStripeGateway(StripeGateway):
    """Real webhook verification, no network call for checkout creation."""

    def __init__(self):
        super().__init__("sk_test_dummy", WEBHOOK_SECRET, settings)
        self.created = []

    def create_checkout_session(self, identity_key, origin):
        self.created.append((identity_key, origin))
        n = len(self.created)
        return CheckoutSession(
            id=f"cs_test_{n}",
            url=f"https://checkout.stripe.com/c/pay/cs_test_{n}",
            amount_total=1000,
            currency="usd",
        )


def sign_stripe_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode()
    sig = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"


def checkout_event(identity_key, session_id="cs_test_1", event_type="checkout.session.completed",
                   payment_status="paid", event_id="evt_test_1") -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "amount_total": 1000,
                "currency": "usd",
                "payment_status": payment_status,
                "metadata": {"identity_key": identity_key},
            }
        },
    })


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return UserStore(db)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def stripe_gateway():
    gateway = FakeStripeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    return gateway


@pytest.fixture
def uploads_dir():
    return settings.UPLOADS_DIR
