"""Shared fixtures: in-memory database and fake external collaborators."""
import os

# Configure before picvault reads the environment
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["R2_PUBLIC_URL"] = "https://img.example.com/"
os.environ["MAX_UPLOAD_BYTES"] = "1024"

import pytest
import requests
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from picvault.core.errors import NotFoundError, UpstreamError
from picvault.database import Base, get_db, make_engine
from picvault.dependencies import get_billing, get_object_store, get_verifier
from picvault.main import app
from picvault.models import image_library, user  # noqa: F401 - register tables
from picvault.services.object_store import ObjectStore
from picvault.services.recaptcha import RecaptchaVerifier


engine = make_engine("sqlite:///:memory:")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for tests."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


class FakeRecaptchaSession:
    """Stands in for requests.Session against the siteverify endpoint."""

    def __init__(self):
        self.success = True
        self.error = False
        self.calls = []

    def post(self, url, data=None, timeout=None):
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        if self.error:
            raise requests.ConnectionError("recaptcha unreachable")
        return FakeResponse({"success": self.success})


class FakeS3Client:
    """Records put_object calls like a boto3 S3 client."""

    def __init__(self):
        self.objects = {}
        self.fail = False

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.objects[(Bucket, Key)] = {"body": Body, "content_type": ContentType}
        return {"ETag": "etag"}


class FakeBilling:
    """Same surface as StripeService, backed by dicts."""

    def __init__(self):
        self.customers = {}
        self.subscriptions = {}
        self.calls = []
        self.fail = False
        self.subscription_status = "active"

    def _check(self, name):
        self.calls.append(name)
        if self.fail:
            raise UpstreamError("Stripe error during " + name)

    def create_customer(self, name, email, address, payment_method):
        self._check("create_customer")
        customer_id = f"cus_{len(self.customers) + 1}"
        self.customers[customer_id] = {
            "id": customer_id,
            "name": name,
            "email": email,
            "address": address,
            "invoice_settings": {"default_payment_method": payment_method},
        }
        return self.customers[customer_id]

    def create_subscription(self, customer_id, price_id):
        self._check("create_subscription")
        subscription_id = f"sub_{len(self.subscriptions) + 1}"
        self.subscriptions[subscription_id] = {
            "id": subscription_id,
            "customer": customer_id,
            "status": self.subscription_status,
            "cancel_at_period_end": False,
            "items": {"data": [{"price": {"id": price_id}}]},
            "latest_invoice": {"payment_intent": {"client_secret": "pi_secret_1"}},
        }
        return self.subscriptions[subscription_id]

    def retrieve_customer(self, customer_id):
        self._check("retrieve_customer")
        if customer_id not in self.customers:
            raise NotFoundError("Billing resource not found: retrieve_customer")
        return self.customers[customer_id]

    def retrieve_subscription(self, subscription_id):
        self._check("retrieve_subscription")
        if subscription_id not in self.subscriptions:
            raise NotFoundError("Billing resource not found: retrieve_subscription")
        return self.subscriptions[subscription_id]

    def set_cancel_at_period_end(self, subscription_id, cancel):
        self._check("set_cancel_at_period_end")
        subscription = self.subscriptions.setdefault(
            subscription_id, {"id": subscription_id, "status": "active"}
        )
        subscription["cancel_at_period_end"] = cancel
        return subscription


@pytest.fixture
def recaptcha_session():
    return FakeRecaptchaSession()


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def billing():
    return FakeBilling()


@pytest.fixture(scope="function")
def client(recaptcha_session, s3, billing):
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    verifier = RecaptchaVerifier("recaptcha-secret", "https://recaptcha.test/verify", 5, session=recaptcha_session)
    store = ObjectStore(s3, "test-bucket", "https://r2.example.com")
    app.dependency_overrides[get_verifier] = lambda: verifier
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_billing] = lambda: billing
    yield TestClient(app)
    for dep in (get_verifier, get_object_store, get_billing):
        app.dependency_overrides.pop(dep, None)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(client):
    session = TestingSessionLocal()
    yield session
    session.close()


def signup(client, name="A", email="a@x.com", password="secret1"):
    response = client.post(
        "/api/users/signup",
        json={"name": name, "email": email, "password": password, "verificationToken": "human"},
    )
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def account(client):
    """A signed-up user with its token."""
    return signup(client)


@pytest.fixture
def headers(account):
    return auth_headers(account["token"])
