"""
Shared fixtures: in-memory SQLite, a scripted Shopify client, a fake fulfillment
backend and a TestClient wired to them.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SHOPIFY_API_KEY"] = "test-api-key"
os.environ["SHOPIFY_API_SECRET"] = "test-secret"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key-0123456789ab"
os.environ["APP_URL"] = "https://bridge.example.com"

import base64
import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.http.dependencies import get_fulfillment_backend, get_shopify_client
from app.models import RegisteredProduct, ShopSetup
from app.services.errors import ExternalServiceError
from app.services.fulfillment_gate import TrackingInfo, decide_fulfillment
from app.services.shopify_graphql import operation_name

SHOP = "test-shop.myshopify.com"
FULFILLMENT_SERVICE_ID = "gid://shopify/FulfillmentService/1"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeShopifyClient:
    """
    Answers GraphQL calls by operation name. A response may be a dict, a list
    (consumed one per call), a callable taking the variables, or an exception.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    async def query(self, document, variables=None):
        return self._respond(document, variables)

    async def mutate(self, document, variables=None):
        return self._respond(document, variables)

    def _respond(self, document, variables):
        name = operation_name(document)
        self.calls.append((name, variables))
        response = self.responses.get(name, {})
        if isinstance(response, list):
            response = response.pop(0) if response else {}
        if callable(response):
            response = response(variables)
        if isinstance(response, Exception):
            raise response
        return response

    def names(self):
        return [name for name, _ in self.calls]

    def calls_to(self, name):
        return [variables for call_name, variables in self.calls if call_name == name]


class FakeBackend:
    """Fulfillment backend double; decisions use the real gate rule."""

    def __init__(self, inventory=7, fail_requests=False, tracking_number="TRK-1-1000"):
        self.inventory = inventory
        self.fail_requests = fail_requests
        self.tracking_number = tracking_number
        self.fulfillment_requests = []
        self.inventory_requests = []
        self.tracking_requests = []

    async def request_fulfillment(self, order_id, line_items):
        self.fulfillment_requests.append((order_id, line_items))
        if self.fail_requests:
            raise ExternalServiceError("/request-fulfillment failed with HTTP 500", status=500)
        return decide_fulfillment(line_items)

    async def calculate_inventory(self, sku):
        self.inventory_requests.append(sku)
        return self.inventory

    async def issue_tracking(self, order_id):
        self.tracking_requests.append(order_id)
        return TrackingInfo(
            tracking_number=self.tracking_number,
            tracking_url=f"https://tracking.example.com/track/{self.tracking_number}",
            carrier="Custom Fulfillment Carrier",
            service="Standard Delivery",
        )


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def shopify():
    return FakeShopifyClient()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def provisioned_shop(db_session):
    """A shop whose stage 1 setup is complete."""
    setup = ShopSetup(
        shop=SHOP,
        carrier_service_id="gid://shopify/DeliveryCarrierService/1",
        fulfillment_service_id=FULFILLMENT_SERVICE_ID,
        order_webhook_id="gid://shopify/WebhookSubscription/1",
        step1_completed=True,
    )
    db_session.add(setup)
    db_session.commit()
    return setup


def register_variant(db, variant_number, sku=None, product_number=None, shop=SHOP,
                     fulfillment_service_id=FULFILLMENT_SERVICE_ID):
    product = RegisteredProduct(
        shop=shop,
        product_id=f"gid://shopify/Product/{product_number or variant_number}",
        variant_id=f"gid://shopify/ProductVariant/{variant_number}",
        title=f"Product {variant_number}",
        sku=sku,
        fulfillment_service_id=fulfillment_service_id,
    )
    db.add(product)
    db.commit()
    return product


def session_token(shop=SHOP, secret=None, audience=None, expires_in=60):
    now = int(time.time())
    claims = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": audience or settings.SHOPIFY_API_KEY,
        "sub": "1",
        "iat": now,
        "nbf": now - 5,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret or settings.SHOPIFY_API_SECRET, algorithm="HS256")


def auth_headers(shop=SHOP):
    return {"Authorization": f"Bearer {session_token(shop)}"}


def signed_webhook(payload, secret=None, shop=SHOP):
    """(body, headers) for an orders/create delivery signed like Shopify does."""
    body = json.dumps(payload).encode("utf-8")
    digest = hmac.new((secret or settings.SHOPIFY_API_SECRET).encode("utf-8"), body, hashlib.sha256).digest()
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": base64.b64encode(digest).decode("utf-8"),
        "X-Shopify-Shop-Domain": shop,
        "X-Shopify-Topic": "orders/create",
    }
    return body, headers


@pytest.fixture
def client(db_session, shopify, backend):
    from main import app

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_shopify_client] = lambda: shopify
    app.dependency_overrides[get_fulfillment_backend] = lambda: backend
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
