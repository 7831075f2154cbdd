"""Two status updates racing from the same state: only one may win."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from marketplace import orders as lifecycle
from marketplace.errors import Conflict
from marketplace.extensions import db
from marketplace.models import Order
from marketplace.scoping import get_merchant_order


@pytest.fixture
def pending_order(make_customer, make_merchant, make_service, make_order):
    merchant = make_merchant()
    customer = make_customer()
    order = make_order(customer, make_service(merchant))
    return merchant, customer, order.order_id


def test_second_writer_with_stale_status_conflicts(app, pending_order) -> None:
    merchant, _, order_id = pending_order

    # Both requests read the order while it is still pending.
    seen_by_first = get_merchant_order(order_id, merchant.merchant_id).order_status
    seen_by_second = get_merchant_order(order_id, merchant.merchant_id).order_status
    assert seen_by_first == seen_by_second == "pending"

    lifecycle.compare_and_set_status(order_id, Order.merchant_id, merchant.merchant_id, seen_by_first, "confirmed")
    with pytest.raises(Conflict):
        lifecycle.compare_and_set_status(
            order_id, Order.merchant_id, merchant.merchant_id, seen_by_second, "cancelled"
        )

    db.session.expire_all()
    assert db.session.get(Order, order_id).order_status == "confirmed"


def test_compare_and_set_respects_owner(app, pending_order, make_merchant) -> None:
    _, _, order_id = pending_order
    intruder = make_merchant()

    with pytest.raises(Conflict):
        lifecycle.compare_and_set_status(order_id, Order.merchant_id, intruder.merchant_id, "pending", "confirmed")

    db.session.expire_all()
    assert db.session.get(Order, order_id).order_status == "pending"


def test_lost_race_surfaces_as_409(client, pending_order, auth_headers, monkeypatch) -> None:
    merchant, _, order_id = pending_order

    def read_then_lose_race(oid, mid):
        # This request saw "pending"; a concurrent request cancels before we write.
        lifecycle.compare_and_set_status(oid, Order.merchant_id, mid, "pending", "cancelled")
        return SimpleNamespace(order_status="pending")

    monkeypatch.setattr(lifecycle, "get_merchant_order", read_then_lose_race)

    response = client.put(
        f"/merchant/orders/{order_id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 409
    body = response.get_json()
    assert body["error"] == "conflict"
    assert body["retryable"] is True
    db.session.expire_all()
    assert db.session.get(Order, order_id).order_status == "cancelled"


def test_customer_cancel_racing_merchant_confirm(client, pending_order, auth_headers, monkeypatch) -> None:
    merchant, customer, order_id = pending_order
    real_lookup = lifecycle.get_customer_order

    def read_then_merchant_confirms(oid, uid):
        order = real_lookup(oid, uid)
        seen = order.order_status
        lifecycle.compare_and_set_status(oid, Order.merchant_id, merchant.merchant_id, "pending", "confirmed")
        return SimpleNamespace(order_status=seen)

    monkeypatch.setattr(lifecycle, "get_customer_order", read_then_merchant_confirms)

    response = client.put(f"/orders/{order_id}/cancel", headers=auth_headers(customer))

    assert response.status_code == 409
    db.session.expire_all()
    assert db.session.get(Order, order_id).order_status == "confirmed"
