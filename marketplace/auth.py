"""Bearer-token identity and the per-route role guard."""
from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Callable

from flask import current_app, g, request
from itsdangerous import BadData, URLSafeTimedSerializer

from .errors import Forbidden, Unauthenticated

ROLES = ("customer", "merchant")


@dataclass(frozen=True)
class Identity:
    subject_id: str
    role: str


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt="auth-token")


def issue_token(subject_id: str, role: str) -> str:
    return _serializer().dumps({"sub": subject_id, "role": role})


def verify_token(token: str) -> Identity | None:
    """Return the identity carried by ``token``, or None if it is invalid or expired."""
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE_SECONDS"])
    except BadData:
        return None

    if not isinstance(payload, dict):
        return None
    subject_id = payload.get("sub")
    role = payload.get("role")
    if not subject_id or role not in ROLES:
        return None
    return Identity(subject_id=str(subject_id), role=role)


def resolve_identity(auth_header: str | None) -> Identity:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header value."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise Unauthenticated("missing bearer token")

    identity = verify_token(auth_header[7:].strip())
    if identity is None:
        raise Unauthenticated("invalid or expired token")
    return identity


def require_role(role: str) -> Callable:
    """Reject the request unless the bearer token resolves to ``role``.

    The resolved identity is available to the handler as ``g.identity``.
    """

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            identity = resolve_identity(request.headers.get("Authorization"))
            if identity.role != role:
                raise Forbidden(f"this endpoint requires a {role} account")
            g.identity = identity
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_identity() -> Identity:
    return g.identity
