"""Typed request bodies, validated before they reach business logic."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from flask import request

from .errors import ValidationError
from .models import ORDER_STATUSES

CENT = Decimal("0.01")
MAX_PRICE = Decimal(10) ** 8


def json_object() -> Mapping[str, Any]:
    """Return the JSON request body, which must be an object when present."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationError("request body must be a JSON object")
    return payload


def _text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _required_text(payload: Mapping[str, Any], key: str) -> str:
    value = _text(payload, key)
    if not value:
        raise ValidationError(f"{key} is required")
    return value


def _price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("price must be a number greater than 0")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("price must be a number greater than 0") from None
    if not price.is_finite() or price <= 0:
        raise ValidationError("price must be a number greater than 0")
    price = price.quantize(CENT) if price < MAX_PRICE else price
    # Numeric(10, 2) holds at most 8 integer digits.
    if price >= MAX_PRICE:
        raise ValidationError("price must be less than 100000000")
    return price


def _duration(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("duration must be a positive integer")
    try:
        duration = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("duration must be a positive integer") from None
    # int("1.5") fails above but int(1.5) truncates, so reject fractional numbers here.
    if duration <= 0 or (duration != value and str(duration) != str(value).strip()):
        raise ValidationError("duration must be a positive integer")
    return duration


def _availability(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError("availability must be a boolean")
    return value


def _datetime(payload: Mapping[str, Any], key: str) -> datetime | None:
    raw = _text(payload, key)
    if raw is None:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO 8601 date or datetime") from None


def parse_status_filter(raw: str | None) -> str | None:
    """Validate an optional ``?status=`` query value."""
    if not raw:
        return None
    if raw not in ORDER_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(ORDER_STATUSES)}", error="invalid_status"
        )
    return raw


@dataclass
class SignupRequest:
    name: str
    email: str
    password: str
    phone: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SignupRequest":
        name = _text(payload, "name")
        email = _text(payload, "email")
        password = payload.get("password")
        if not name or not email or not isinstance(password, str) or not password:
            raise ValidationError("name, email and password are required")
        return cls(name=name, email=email.lower(), password=password, phone=_text(payload, "phone"))


@dataclass
class MerchantSignupRequest:
    business_name: str
    email: str
    password: str
    category_id: str | None = None
    description: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "MerchantSignupRequest":
        business_name = _text(payload, "business_name")
        email = _text(payload, "email")
        password = payload.get("password")
        if not business_name or not email or not isinstance(password, str) or not password:
            raise ValidationError("business_name, email and password are required")
        return cls(
            business_name=business_name,
            email=email.lower(),
            password=password,
            category_id=_text(payload, "category_id"),
            description=_text(payload, "description"),
        )


@dataclass
class LoginRequest:
    email: str
    password: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LoginRequest":
        email = _text(payload, "email")
        password = payload.get("password")
        if not email or not isinstance(password, str) or not password:
            raise ValidationError("email and password are required")
        return cls(email=email.lower(), password=password)


@dataclass
class CategoryCreateRequest:
    category_name: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CategoryCreateRequest":
        return cls(category_name=_required_text(payload, "category_name"))


@dataclass
class ServiceCreateRequest:
    """Body of ``POST /merchant/services``. Any ``merchant_id`` in the body is ignored."""

    title: str
    price: Decimal
    duration: int | None = None
    description: str | None = None
    availability: bool = True

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ServiceCreateRequest":
        title = _text(payload, "title")
        if not title or payload.get("price") is None:
            raise ValidationError("title and price are required")
        availability = payload.get("availability")
        return cls(
            title=title,
            price=_price(payload["price"]),
            duration=_duration(payload.get("duration")),
            description=_text(payload, "description"),
            availability=True if availability is None else _availability(availability),
        )


@dataclass
class ServiceUpdateRequest:
    """Partial update: only keys present in the body are applied."""

    changes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ServiceUpdateRequest":
        changes: dict[str, Any] = {}
        if "title" in payload:
            changes["title"] = _required_text(payload, "title")
        if "price" in payload:
            changes["price"] = _price(payload["price"])
        if "duration" in payload:
            changes["duration"] = _duration(payload["duration"])
        if "description" in payload:
            changes["description"] = _text(payload, "description")
        if "availability" in payload:
            changes["availability"] = _availability(payload["availability"])
        return cls(changes=changes)


@dataclass
class OrderCreateRequest:
    service_id: str
    notes: str | None = None
    scheduled_date: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "OrderCreateRequest":
        service_id = payload.get("service_id")
        if service_id is None or service_id == "":
            raise ValidationError("service_id is required")
        return cls(
            service_id=str(service_id),
            notes=_text(payload, "notes"),
            scheduled_date=_datetime(payload, "scheduled_date"),
        )


@dataclass
class StatusUpdateRequest:
    status: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StatusUpdateRequest":
        status = payload.get("status")
        if not status:
            raise ValidationError("status is required")
        if not isinstance(status, str):
            raise ValidationError("status must be a string", error="invalid_status")
        return cls(status=status)
