"""HTTP routes: health checks, accounts and the public catalog."""
from __future__ import annotations

import math

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy import distinct, func, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .auth import issue_token
from .errors import DuplicateEntry, InternalError, NotFound, Unauthenticated, ValidationError
from .extensions import db
from .models import Category, Merchant, Order, Review, Service, User
from .schemas import (CategoryCreateRequest, LoginRequest, MerchantSignupRequest,
                      SignupRequest, json_object)

bp = Blueprint("api", __name__)

SEARCH_LIMIT = 10


def register_routes(app: Flask) -> None:
    from .routes_merchant import bp_merchant
    from .routes_orders import bp_orders

    app.register_blueprint(bp)
    app.register_blueprint(bp_merchant)
    app.register_blueprint(bp_orders)


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# --- BEGIN: Accounts ---

def _commit_new_account(account: User | Merchant, what: str) -> None:
    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with another signup for the same email.
        db.session.rollback()
        raise DuplicateEntry("Email already exists") from None
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register new %s", what, exc_info=exc)
        raise InternalError("database operation failed") from exc


@bp.post("/auth/user/signup")
def user_signup() -> tuple[dict[str, object], int]:
    """Register a new customer account.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            password:
              type: string
            phone:
              type: string
          required:
            - name
            - email
            - password
    responses:
      201:
        description: User registered, returns access token
      400:
        description: Invalid payload or email already exists
    """
    data = SignupRequest.from_payload(json_object())

    if User.query.filter_by(email=data.email).first():
        raise DuplicateEntry("Email already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=generate_password_hash(data.password),
        phone=data.phone,
    )
    _commit_new_account(user, "user")

    token = issue_token(user.user_id, "customer")
    return jsonify({"message": "User registered", "token": token, "user": user.to_dict_basic()}), 201


@bp.post("/auth/user/login")
def user_login() -> tuple[dict[str, object], int]:
    """Authenticate a customer by email/password and return an access token."""
    data = LoginRequest.from_payload(json_object())

    user = User.query.filter_by(email=data.email).first()
    if user is None or not check_password_hash(user.password_hash, data.password):
        raise Unauthenticated("invalid email or password")

    token = issue_token(user.user_id, "customer")
    return jsonify({"message": "Login success", "token": token, "user": user.to_dict_basic()}), 200


@bp.post("/auth/merchant/signup")
def merchant_signup() -> tuple[dict[str, object], int]:
    """Register a new merchant account.

    New merchants start in ``pending`` status and are hidden from the public
    catalog until approved.
    ---
    tags:
      - Authentication
    responses:
      201:
        description: Merchant registered, returns access token
      400:
        description: Invalid payload, unknown category or email already exists
    """
    data = MerchantSignupRequest.from_payload(json_object())

    if data.category_id and db.session.get(Category, data.category_id) is None:
        raise ValidationError("category_id does not match a known category")

    if Merchant.query.filter_by(email=data.email).first():
        raise DuplicateEntry("Email already exists")

    merchant = Merchant(
        business_name=data.business_name,
        email=data.email,
        password_hash=generate_password_hash(data.password),
        category_id=data.category_id,
        description=data.description,
    )
    _commit_new_account(merchant, "merchant")

    token = issue_token(merchant.merchant_id, "merchant")
    return jsonify({"message": "Merchant registered", "token": token, "merchant": merchant.to_dict_basic()}), 201


@bp.post("/auth/merchant/login")
def merchant_login() -> tuple[dict[str, object], int]:
    """Authenticate a merchant by email/password and return an access token."""
    data = LoginRequest.from_payload(json_object())

    merchant = Merchant.query.filter_by(email=data.email).first()
    if merchant is None or not check_password_hash(merchant.password_hash, data.password):
        raise Unauthenticated("invalid email or password")

    token = issue_token(merchant.merchant_id, "merchant")
    return jsonify({"message": "Login success", "token": token, "merchant": merchant.to_dict_basic()}), 200

# --- END: Accounts ---


# --- BEGIN: Public catalog ---

def _public_services():
    """Services customers may see: available, from approved merchants."""
    return (
        Service.query.join(Merchant, Service.merchant_id == Merchant.merchant_id)
        .filter(Service.availability.is_(True), Merchant.status == "approved")
    )


def _like(term: str) -> str:
    return f"%{term}%"


@bp.get("/categories")
def list_categories() -> tuple[dict[str, object], int]:
    """List categories with the number of approved merchants and available services in each.
    ---
    tags:
      - Categories
    responses:
      200:
        description: List of categories
    """
    rows = (
        db.session.query(
            Category,
            func.count(distinct(Merchant.merchant_id)),
            func.count(distinct(Service.service_id)),
        )
        .outerjoin(
            Merchant,
            (Merchant.category_id == Category.category_id) & (Merchant.status == "approved"),
        )
        .outerjoin(
            Service,
            (Service.merchant_id == Merchant.merchant_id) & Service.availability.is_(True),
        )
        .group_by(Category.category_id)
        .order_by(Category.category_name)
        .all()
    )
    categories = [
        {**category.to_dict(), "merchant_count": merchant_count, "service_count": service_count}
        for category, merchant_count, service_count in rows
    ]
    return jsonify({"count": len(categories), "categories": categories}), 200


@bp.get("/categories/<category_id>")
def get_category(category_id: str) -> tuple[dict[str, object], int]:
    """Get a category with its approved merchants and available services.
    ---
    tags:
      - Categories
    parameters:
      - name: category_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Category details
      404:
        description: Category not found
    """
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")

    merchants = (
        Merchant.query.filter_by(category_id=category_id, status="approved")
        .order_by(Merchant.rating.desc())
        .all()
    )
    services = (
        _public_services()
        .filter(Merchant.category_id == category_id)
        .order_by(Merchant.rating.desc())
        .all()
    )
    return jsonify({
        "category": category.to_dict(),
        "merchants": {"count": len(merchants), "data": [m.to_public_dict() for m in merchants]},
        "services": {"count": len(services), "data": [s.to_public_dict() for s in services]},
    }), 200


@bp.post("/categories")
def create_category() -> tuple[dict[str, object], int]:
    """Create a category.
    ---
    tags:
      - Categories
    responses:
      201:
        description: Category created
      400:
        description: Missing name or category already exists
    """
    data = CategoryCreateRequest.from_payload(json_object())

    if Category.query.filter_by(category_name=data.category_name).first():
        raise DuplicateEntry("Category already exists")

    category = Category(category_name=data.category_name)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEntry("Category already exists") from None

    return jsonify({"message": "Category created successfully", "category": category.to_dict()}), 201


@bp.get("/merchants")
def list_merchants() -> tuple[dict[str, object], int]:
    """Browse approved merchants.
    ---
    tags:
      - Merchants
    parameters:
      - name: category
        in: query
        type: string
      - name: search
        in: query
        type: string
      - name: sort_by
        in: query
        type: string
        enum: [rating, newest, services]
    responses:
      200:
        description: List of merchants
    """
    service_count = func.count(Service.service_id).label("service_count")
    query = (
        db.session.query(Merchant, service_count)
        .outerjoin(
            Service,
            (Service.merchant_id == Merchant.merchant_id) & Service.availability.is_(True),
        )
        .filter(Merchant.status == "approved")
    )

    category = request.args.get("category")
    if category:
        query = query.filter(Merchant.category_id == category)

    search = (request.args.get("search") or "").strip()
    if search:
        query = query.filter(
            or_(Merchant.business_name.ilike(_like(search)), Merchant.description.ilike(_like(search)))
        )

    query = query.group_by(Merchant.merchant_id)

    sort_by = request.args.get("sort_by") or request.args.get("sortBy")
    if sort_by == "rating":
        query = query.order_by(Merchant.rating.desc())
    elif sort_by == "newest":
        query = query.order_by(Merchant.created_at.desc())
    elif sort_by == "services":
        query = query.order_by(service_count.desc())
    else:
        query = query.order_by(Merchant.rating.desc(), Merchant.business_name)

    merchants = [{**merchant.to_public_dict(), "service_count": count} for merchant, count in query.all()]
    return jsonify({"count": len(merchants), "merchants": merchants}), 200


def _approved_merchant(merchant_id: str) -> Merchant:
    merchant = Merchant.query.filter_by(merchant_id=merchant_id, status="approved").first()
    if merchant is None:
        raise NotFound("Merchant not found")
    return merchant


@bp.get("/merchants/<merchant_id>")
def get_merchant_profile(merchant_id: str) -> tuple[dict[str, object], int]:
    """View an approved merchant's profile with its services and latest reviews."""
    merchant = _approved_merchant(merchant_id)

    services = (
        Service.query.filter_by(merchant_id=merchant_id, availability=True)
        .order_by(Service.title)
        .all()
    )
    reviews = (
        Review.query.join(Order, Review.order_id == Order.order_id)
        .filter(Order.merchant_id == merchant_id)
        .order_by(Review.created_at.desc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    return jsonify({
        "merchant": merchant.to_public_dict(),
        "services": {"count": len(services), "data": [s.to_dict() for s in services]},
        "reviews": {"count": len(reviews), "data": [r.to_dict() for r in reviews]},
    }), 200


@bp.get("/merchants/<merchant_id>/services")
def get_merchant_services(merchant_id: str) -> tuple[dict[str, object], int]:
    """List the available services of an approved merchant, cheapest first."""
    merchant = _approved_merchant(merchant_id)

    services = (
        Service.query.filter_by(merchant_id=merchant_id, availability=True)
        .order_by(Service.price)
        .all()
    )
    return jsonify({
        "merchant": merchant.business_name,
        "count": len(services),
        "services": [s.to_dict() for s in services],
    }), 200


def _price_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number", error="invalid_query") from None
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number", error="invalid_query")
    return value


@bp.get("/services")
def list_public_services() -> tuple[dict[str, object], int]:
    """Browse all available services.
    ---
    tags:
      - Services
    parameters:
      - name: category
        in: query
        type: string
      - name: search
        in: query
        type: string
      - name: min_price
        in: query
        type: number
      - name: max_price
        in: query
        type: number
    responses:
      200:
        description: List of services
      400:
        description: Invalid price filter
    """
    query = _public_services()

    category = request.args.get("category")
    if category:
        query = query.filter(Merchant.category_id == category)

    search = (request.args.get("search") or "").strip()
    if search:
        query = query.filter(or_(Service.title.ilike(_like(search)), Service.description.ilike(_like(search))))

    min_price = _price_arg("min_price")
    if min_price is not None:
        query = query.filter(Service.price >= min_price)

    max_price = _price_arg("max_price")
    if max_price is not None:
        query = query.filter(Service.price <= max_price)

    services = query.order_by(Merchant.rating.desc(), Service.title).all()
    return jsonify({"count": len(services), "services": [s.to_public_dict() for s in services]}), 200


@bp.get("/services/<service_id>")
def get_public_service(service_id: str) -> tuple[dict[str, object], int]:
    """View a single public service."""
    service = _public_services().filter(Service.service_id == service_id).first()
    if service is None:
        raise NotFound("Service not found")

    payload = service.to_public_dict()
    payload["merchant_description"] = service.merchant.description
    return jsonify(payload), 200


@bp.get("/search")
def global_search() -> tuple[dict[str, object], int]:
    """Search services and merchants by keyword.
    ---
    tags:
      - Search
    parameters:
      - name: q
        in: query
        type: string
        required: true
    responses:
      200:
        description: Matching services and merchants
      400:
        description: Query shorter than 2 characters
    """
    q = (request.args.get("q") or "").strip()
    if len(q) < 2:
        raise ValidationError("Search query must be at least 2 characters", error="invalid_query")

    term = _like(q)
    services = (
        _public_services()
        .filter(or_(Service.title.ilike(term), Service.description.ilike(term)))
        .order_by(Merchant.rating.desc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    merchants = (
        Merchant.query.filter(
            Merchant.status == "approved",
            or_(Merchant.business_name.ilike(term), Merchant.description.ilike(term)),
        )
        .order_by(Merchant.rating.desc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    return jsonify({
        "query": q,
        "results": {
            "services": {"count": len(services), "data": [s.to_public_dict() for s in services]},
            "merchants": {"count": len(merchants), "data": [m.to_public_dict() for m in merchants]},
        },
    }), 200

# --- END: Public catalog ---
