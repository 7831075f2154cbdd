"""Customer order routes: booking, order history and cancellation."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from . import orders as lifecycle
from .auth import current_identity, require_role
from .models import Order
from .schemas import OrderCreateRequest, json_object, parse_status_filter
from .scoping import get_customer_order, orders_for_customer

bp_orders = Blueprint("api_orders", __name__, url_prefix="/orders")


@bp_orders.post("")
@require_role("customer")
def create_order() -> tuple[dict[str, object], int]:
    """Book a service.
    ---
    tags:
      - Orders
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            service_id:
              type: string
            notes:
              type: string
            scheduled_date:
              type: string
              format: date-time
          required:
            - service_id
    responses:
      201:
        description: Order created with status pending
      400:
        description: Invalid input
      404:
        description: Service not found or unavailable
    """
    data = OrderCreateRequest.from_payload(json_object())
    order = lifecycle.create_order(
        current_identity().subject_id,
        data.service_id,
        notes=data.notes,
        scheduled_date=data.scheduled_date,
    )
    return jsonify({"message": "Order created successfully", "order": order.to_customer_dict()}), 201


@bp_orders.get("")
@require_role("customer")
def list_my_orders() -> tuple[dict[str, object], int]:
    """List the authenticated customer's orders, newest first."""
    status = parse_status_filter(request.args.get("status"))
    orders = (
        orders_for_customer(current_identity().subject_id, status)
        .order_by(Order.created_at.desc())
        .all()
    )
    return jsonify({"count": len(orders), "orders": [o.to_customer_dict() for o in orders]}), 200


@bp_orders.get("/<order_id>")
@require_role("customer")
def get_my_order(order_id: str) -> tuple[dict[str, object], int]:
    order = get_customer_order(order_id, current_identity().subject_id)
    return jsonify(order.to_customer_dict()), 200


@bp_orders.put("/<order_id>/cancel")
@require_role("customer")
def cancel_order(order_id: str) -> tuple[dict[str, object], int]:
    """Cancel one of the customer's orders while it is still pending.
    ---
    tags:
      - Orders
    responses:
      200:
        description: Order cancelled
      400:
        description: Order is no longer pending
      404:
        description: Order not found
      409:
        description: Order changed concurrently; retry
    """
    change = lifecycle.cancel_by_customer(order_id, current_identity().subject_id)
    return jsonify({"message": "Order cancelled successfully", **change.to_dict()}), 200
