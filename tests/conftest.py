"""Pytest fixtures for the storefront API tests."""

import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.core.payment_gateway import PaymentGateway, PaymentResult, get_payment_gateway
from app.database import get_session
from app.main import app
from app.models.category import Category
from app.models.product import Product
from app.models.user import User

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]

SHIPPING_ADDRESS = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "addressLine1": "12 Analytical Way",
    "city": "Springfield",
    "state": "IL",
    "postalCode": "62701",
    "country": "United States",
}


class RecordingGateway(PaymentGateway):
    """Mock processor that remembers every charge and refund."""

    def __init__(self):
        super().__init__(decline_rate=0.0)
        self.charges = []
        self.refunds = []
        self.refunds_fail = False

    def process_payment(self, method, amount, details=None):
        result = super().process_payment(method, amount, details)
        self.charges.append((method, amount, result))
        return result

    def refund_payment(self, transaction_id, amount):
        self.refunds.append((transaction_id, amount))
        if self.refunds_fail:
            return PaymentResult(success=False, message="Processor unavailable")
        return super().refund_payment(transaction_id, amount)


@pytest.fixture
def session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def client(session, gateway):
    """Test client wired to the test database and recording gateway."""
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    def _make(role="user", is_active=True, name=None):
        user_id = uuid.uuid4()
        user = User(
            id=user_id,
            email=f"{user_id.hex[:12]}@example.com",
            name=name or f"user-{user_id.hex[:6]}",
            role=role,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    """Bearer headers with a token signed like a Supabase access token."""

    def _headers(user):
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = jwt.encode(claims, JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", name="Store Admin")


@pytest.fixture
def customer_headers(customer, auth_headers):
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def make_product(session):
    def _make(name="Desk Lamp", price=20.0, stock=5, **kwargs):
        slug = kwargs.pop("slug", f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}")
        product = Product(name=name, slug=slug, price=price, stock=stock, **kwargs)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_category(session):
    def _make(name="Home", parent=None, **kwargs):
        slug = kwargs.pop("slug", name.lower().replace(" ", "-"))
        category = Category(
            name=name,
            slug=slug,
            parent_id=parent.id if parent else None,
            level=parent.level + 1 if parent else 0,
            **kwargs,
        )
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    return _make

@pytest.fixture
def add_to_cart(client):
    def _add(headers, product, quantity=1):
        response = client.post(
            "/api/v1/cart",
            json={"product_id": str(product.id), "quantity": quantity},
            headers=headers,
        )
        assert response.status_code == 200, response.json()
        return response.json()

    return _add


@pytest.fixture
def place_order(client):
    """POST /checkout/create-order with an inline address and card payment by default."""

    def _place(headers, **overrides):
        payload = {
            "newAddress": SHIPPING_ADDRESS,
            "useNewAddress": True,
            "paymentMethod": "credit_card",
            "paymentDetails": {"type": "card", "cardNumber": "4242 4242 4242 4242"},
        }
        payload.update(overrides)
        return client.post("/api/v1/checkout/create-order", json=payload, headers=headers)

    return _place


@pytest.fixture
def refresh(session):
    """Re-read an ORM object after the API changed it."""

    def _refresh(obj):
        session.expire_all()
        session.refresh(obj)
        return obj

    return _refresh
