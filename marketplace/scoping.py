"""Owner-scoped queries for services and orders.

Every lookup here takes the caller's id and uses it as an equality predicate,
so a row owned by someone else is indistinguishable from a missing one.
"""
from __future__ import annotations

from sqlalchemy.orm import Query

from .errors import NotFound
from .models import Order, Service


def services_owned_by(merchant_id: str) -> Query:
    return Service.query.filter(Service.merchant_id == merchant_id)


def orders_for_merchant(merchant_id: str, status: str | None = None) -> Query:
    query = Order.query.filter(Order.merchant_id == merchant_id)
    if status:
        query = query.filter(Order.order_status == status)
    return query


def orders_for_customer(user_id: str, status: str | None = None) -> Query:
    query = Order.query.filter(Order.user_id == user_id)
    if status:
        query = query.filter(Order.order_status == status)
    return query


def get_owned_service(service_id: str, merchant_id: str) -> Service:
    service = services_owned_by(merchant_id).filter(Service.service_id == service_id).first()
    if service is None:
        raise NotFound("Service not found")
    return service


def get_merchant_order(order_id: str, merchant_id: str) -> Order:
    order = orders_for_merchant(merchant_id).filter(Order.order_id == order_id).first()
    if order is None:
        raise NotFound("Order not found")
    return order


def get_customer_order(order_id: str, user_id: str) -> Order:
    order = orders_for_customer(user_id).filter(Order.order_id == order_id).first()
    if order is None:
        raise NotFound("Order not found")
    return order
