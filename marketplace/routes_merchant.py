"""Merchant-only routes: service listings and incoming orders.

Every route here requires a merchant token, and every query is filtered by
the merchant id taken from that token. Ids in the URL only select among the
caller's own rows.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from . import orders as lifecycle
from .auth import current_identity, require_role
from .extensions import db
from .models import Order, Service
from .schemas import (ServiceCreateRequest, ServiceUpdateRequest, StatusUpdateRequest,
                      json_object, parse_status_filter)
from .scoping import get_owned_service, orders_for_merchant, services_owned_by

bp_merchant = Blueprint("api_merchant", __name__, url_prefix="/merchant")


# --- BEGIN: Merchant services ---

@bp_merchant.post("/services")
@require_role("merchant")
def create_service() -> tuple[dict[str, object], int]:
    """Create a new service for the authenticated merchant.
    ---
    tags:
      - Merchant Services
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            title:
              type: string
            price:
              type: number
            duration:
              type: integer
            description:
              type: string
            availability:
              type: boolean
    responses:
      201:
        description: Service created successfully
      400:
        description: Invalid input
      401:
        description: Missing or invalid token
    """
    merchant_id = current_identity().subject_id
    data = ServiceCreateRequest.from_payload(json_object())

    service = Service(
        merchant_id=merchant_id,
        title=data.title,
        price=data.price,
        duration=data.duration,
        description=data.description,
        availability=data.availability,
    )
    db.session.add(service)
    db.session.commit()

    return jsonify({"message": "Service created successfully", "service": service.to_dict()}), 201


@bp_merchant.get("/services")
@require_role("merchant")
def list_my_services() -> tuple[dict[str, object], int]:
    """List the authenticated merchant's services, ordered by title."""
    services = services_owned_by(current_identity().subject_id).order_by(Service.title).all()
    return jsonify({"count": len(services), "services": [s.to_dict() for s in services]}), 200


@bp_merchant.get("/services/<service_id>")
@require_role("merchant")
def get_my_service(service_id: str) -> tuple[dict[str, object], int]:
    service = get_owned_service(service_id, current_identity().subject_id)
    return jsonify(service.to_dict()), 200


@bp_merchant.put("/services/<service_id>")
@require_role("merchant")
def update_service(service_id: str) -> tuple[dict[str, object], int]:
    """Update a service; fields missing from the body keep their current value.
    ---
    tags:
      - Merchant Services
    responses:
      200:
        description: Service updated successfully
      400:
        description: Invalid input
      404:
        description: Service not found
    """
    data = ServiceUpdateRequest.from_payload(json_object())
    service = get_owned_service(service_id, current_identity().subject_id)

    for key, value in data.changes.items():
        setattr(service, key, value)
    db.session.commit()

    return jsonify({"message": "Service updated successfully", "service": service.to_dict()}), 200


@bp_merchant.delete("/services/<service_id>")
@require_role("merchant")
def delete_service(service_id: str) -> tuple[dict[str, object], int]:
    """Delete one of the merchant's services.
    ---
    tags:
      - Merchant Services
    responses:
      200:
        description: Service deleted, returns the deleted row
      404:
        description: Service not found
    """
    service = get_owned_service(service_id, current_identity().subject_id)
    snapshot = service.to_dict()

    db.session.delete(service)
    db.session.commit()

    return jsonify({"message": "Service deleted successfully", "deleted": snapshot}), 200

# --- END: Merchant services ---


# --- BEGIN: Merchant orders ---

@bp_merchant.get("/orders/stats")
@require_role("merchant")
def get_order_stats() -> tuple[dict[str, object], int]:
    """Dashboard counts per status plus earnings from completed orders."""
    return jsonify(lifecycle.merchant_stats(current_identity().subject_id)), 200


@bp_merchant.get("/orders")
@require_role("merchant")
def list_merchant_orders() -> tuple[dict[str, object], int]:
    """List orders for the authenticated merchant's services.
    ---
    tags:
      - Merchant Orders
    parameters:
      - name: status
        in: query
        type: string
        enum: [pending, confirmed, in_progress, completed, cancelled]
    responses:
      200:
        description: List of orders
      400:
        description: Unknown status filter
    """
    status = parse_status_filter(request.args.get("status"))
    orders = (
        orders_for_merchant(current_identity().subject_id, status)
        .order_by(Order.created_at.desc())
        .all()
    )
    return jsonify({"count": len(orders), "orders": [o.to_merchant_dict() for o in orders]}), 200


@bp_merchant.put("/orders/<order_id>/status")
@require_role("merchant")
def update_order_status(order_id: str) -> tuple[dict[str, object], int]:
    """Confirm, start, complete or cancel one of the merchant's orders.
    ---
    tags:
      - Merchant Orders
    parameters:
      - in: path
        name: order_id
        required: true
        schema:
          type: string
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [confirmed, in_progress, completed, cancelled]
    responses:
      200:
        description: Status changed, returns previous and new status
      400:
        description: Invalid status value or transition not allowed
      404:
        description: Order not found
      409:
        description: Order changed concurrently; retry
    """
    data = StatusUpdateRequest.from_payload(json_object())
    change = lifecycle.update_status(order_id, current_identity().subject_id, data.status)
    return jsonify({"message": f"Order {change.new_status}", **change.to_dict()}), 200

# --- END: Merchant orders ---
