"""Database models for the marketplace backend."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from .extensions import db

ORDER_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class User(db.Model):
    """Customer account."""

    __tablename__ = "users"

    user_id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    orders = db.relationship("Order", back_populates="customer", lazy="dynamic")

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": "customer",
        }


class Category(db.Model):
    __tablename__ = "categories"

    category_id = db.Column(db.String(36), primary_key=True, default=new_id)
    category_name = db.Column(db.String(100), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    merchants = db.relationship("Merchant", back_populates="category", lazy="dynamic")

    def to_dict(self) -> dict[str, object]:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "created_at": _iso(self.created_at),
        }


class Merchant(db.Model):
    """A tenant: owns services and receives orders."""

    __tablename__ = "merchants"

    merchant_id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    category_id = db.Column(db.String(36), db.ForeignKey("categories.category_id"), nullable=True)
    description = db.Column(db.Text)
    rating = db.Column(db.Numeric(3, 2), nullable=False, default=Decimal("0"))
    status = db.Column(
        db.Enum(
            "pending",
            "approved",
            "rejected",
            name="merchant_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    category = db.relationship("Category", back_populates="merchants")
    services = db.relationship("Service", back_populates="merchant", lazy="dynamic")

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "merchant_id": self.merchant_id,
            "business_name": self.business_name,
            "email": self.email,
            "status": self.status,
            "role": "merchant",
        }

    def to_public_dict(self) -> dict[str, object]:
        return {
            "merchant_id": self.merchant_id,
            "business_name": self.business_name,
            "description": self.description,
            "rating": _money(self.rating),
            "category_id": self.category_id,
            "category_name": self.category.category_name if self.category else None,
            "created_at": _iso(self.created_at),
        }


class Service(db.Model):
    """A bookable listing owned by exactly one merchant."""

    __tablename__ = "services"

    service_id = db.Column(db.String(36), primary_key=True, default=new_id)
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.merchant_id"), nullable=False, index=True)
    title = db.Column(db.String(150), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration = db.Column(db.Integer)  # minutes
    description = db.Column(db.Text)
    availability = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    merchant = db.relationship("Merchant", back_populates="services")

    def to_dict(self) -> dict[str, object]:
        return {
            "service_id": self.service_id,
            "merchant_id": self.merchant_id,
            "title": self.title,
            "price": _money(self.price),
            "duration": self.duration,
            "description": self.description,
            "availability": bool(self.availability),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_public_dict(self) -> dict[str, object]:
        payload = self.to_dict()
        merchant = self.merchant
        payload.update(
            {
                "business_name": merchant.business_name if merchant else None,
                "merchant_rating": _money(merchant.rating) if merchant else None,
                "category_name": merchant.category.category_name if merchant and merchant.category else None,
            }
        )
        return payload


class Order(db.Model):
    """A customer's booking of a service.

    Title, duration and price of the service are copied onto the order when it
    is placed, so later edits to the service never change existing orders.
    """

    __tablename__ = "orders"

    order_id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.user_id"), nullable=False, index=True)
    merchant_id = db.Column(db.String(36), db.ForeignKey("merchants.merchant_id"), nullable=False, index=True)
    service_id = db.Column(db.String(36), db.ForeignKey("services.service_id", ondelete="SET NULL"), nullable=True)
    service_title = db.Column(db.String(150), nullable=False)
    service_duration = db.Column(db.Integer)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_status = db.Column(
        db.Enum(
            "pending",
            "paid",
            "refunded",
            name="payment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    order_status = db.Column(
        db.Enum(
            *ORDER_STATUSES,
            name="order_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    notes = db.Column(db.Text)
    scheduled_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    customer = db.relationship("User", back_populates="orders")
    merchant = db.relationship("Merchant")

    def to_dict(self) -> dict[str, object]:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "merchant_id": self.merchant_id,
            "service_id": self.service_id,
            "service_title": self.service_title,
            "duration": self.service_duration,
            "total_amount": _money(self.total_amount),
            "payment_status": self.payment_status,
            "order_status": self.order_status,
            "notes": self.notes,
            "scheduled_date": _iso(self.scheduled_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_customer_dict(self) -> dict[str, object]:
        payload = self.to_dict()
        payload["business_name"] = self.merchant.business_name if self.merchant else None
        return payload

    def to_merchant_dict(self) -> dict[str, object]:
        payload = self.to_dict()
        payload["customer_name"] = self.customer.name if self.customer else None
        payload["customer_phone"] = self.customer.phone if self.customer else None
        return payload


class Review(db.Model):
    """Customer review left on an order; the rating is a stored scalar."""

    __tablename__ = "reviews"

    review_id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.order_id"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)  # 1-5 stars
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    order = db.relationship("Order")

    def to_dict(self) -> dict[str, object]:
        return {
            "review_id": self.review_id,
            "rating": self.rating,
            "comment": self.comment,
            "customer_name": self.order.customer.name if self.order and self.order.customer else "Anonymous",
            "created_at": _iso(self.created_at),
        }
