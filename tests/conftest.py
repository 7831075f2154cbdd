"""pytest configuration: app, client and row factories."""
from __future__ import annotations

import itertools
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

# Ensure the project root is available on sys.path so tests can import the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from marketplace import create_app  # noqa: E402
from marketplace.auth import issue_token  # noqa: E402
from marketplace.extensions import db  # noqa: E402
from marketplace.models import Category, Merchant, Order, Service, User  # noqa: E402

PASSWORD = "Secret123!"

_seq = itertools.count(1)


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(subject, role: str | None = None) -> dict[str, str]:
        if isinstance(subject, User):
            token = issue_token(subject.user_id, role or "customer")
        elif isinstance(subject, Merchant):
            token = issue_token(subject.merchant_id, role or "merchant")
        else:
            token = issue_token(subject, role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_customer(app):
    def _make(name: str = "Casey Customer", email: str | None = None, phone: str | None = "555-0100") -> User:
        user = User(
            name=name,
            email=email or f"customer{next(_seq)}@example.com",
            password_hash=generate_password_hash(PASSWORD),
            phone=phone,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_category(app):
    def _make(name: str | None = None) -> Category:
        category = Category(category_name=name or f"Category {next(_seq)}")
        db.session.add(category)
        db.session.commit()
        return category

    return _make


@pytest.fixture
def make_merchant(app):
    def _make(
        business_name: str = "Acme Services",
        *,
        email: str | None = None,
        status: str = "approved",
        category: Category | None = None,
        description: str | None = None,
        rating: str = "4.50",
    ) -> Merchant:
        merchant = Merchant(
            business_name=business_name,
            email=email or f"merchant{next(_seq)}@example.com",
            password_hash=generate_password_hash(PASSWORD),
            status=status,
            category_id=category.category_id if category else None,
            description=description,
            rating=Decimal(rating),
        )
        db.session.add(merchant)
        db.session.commit()
        return merchant

    return _make


@pytest.fixture
def make_service(app):
    def _make(
        merchant: Merchant,
        title: str = "Deep Clean",
        price: str = "150.00",
        *,
        duration: int | None = 120,
        description: str | None = None,
        availability: bool = True,
    ) -> Service:
        service = Service(
            merchant_id=merchant.merchant_id,
            title=title,
            price=Decimal(price),
            duration=duration,
            description=description,
            availability=availability,
        )
        db.session.add(service)
        db.session.commit()
        return service

    return _make


@pytest.fixture
def make_order(app):
    def _make(customer: User, service: Service, status: str = "pending", amount: str | None = None) -> Order:
        order = Order(
            user_id=customer.user_id,
            merchant_id=service.merchant_id,
            service_id=service.service_id,
            service_title=service.title,
            service_duration=service.duration,
            total_amount=Decimal(amount) if amount is not None else service.price,
            order_status=status,
        )
        db.session.add(order)
        db.session.commit()
        return order

    return _make
