"""Tests for PUT /merchant/orders/<id>/status."""
from __future__ import annotations

import pytest

from marketplace.extensions import db
from marketplace.models import Order


@pytest.fixture
def setup_order(make_customer, make_merchant, make_service, make_order):
    merchant = make_merchant(business_name="Merchant A")
    customer = make_customer()
    service = make_service(merchant, price="150.00")
    order = make_order(customer, service)
    return merchant, customer, order.order_id


def _stored_status(order_id: str) -> str:
    db.session.expire_all()
    return db.session.get(Order, order_id).order_status


def test_confirm_pending_order_200(client, setup_order, auth_headers) -> None:
    merchant, _, order_id = setup_order

    response = client.put(
        f"/merchant/orders/{order_id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["previous_status"] == "pending"
    assert body["new_status"] == "confirmed"
    assert body["order_id"] == order_id
    assert _stored_status(order_id) == "confirmed"


def test_full_lifecycle_to_completed(client, setup_order, auth_headers) -> None:
    merchant, _, order_id = setup_order
    headers = auth_headers(merchant)

    for status in ("confirmed", "in_progress", "completed"):
        response = client.put(f"/merchant/orders/{order_id}/status", json={"status": status}, headers=headers)
        assert response.status_code == 200

    assert _stored_status(order_id) == "completed"


def test_skip_ahead_is_invalid_transition(client, setup_order, auth_headers) -> None:
    merchant, customer, order_id = setup_order
    headers = auth_headers(merchant)

    client.put(f"/merchant/orders/{order_id}/status", json={"status": "confirmed"}, headers=headers)
    response = client.put(f"/merchant/orders/{order_id}/status", json={"status": "completed"}, headers=headers)

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "invalid_transition"
    assert body["from"] == "confirmed"
    assert body["to"] == "completed"
    assert _stored_status(order_id) == "confirmed"

    # The customer can no longer cancel once the merchant has confirmed.
    response = client.put(f"/orders/{order_id}/cancel", headers=auth_headers(customer))
    assert response.status_code == 400


@pytest.mark.parametrize("terminal", ["completed", "cancelled"])
@pytest.mark.parametrize("requested", ["confirmed", "in_progress", "completed", "cancelled"])
def test_terminal_orders_never_change(client, make_customer, make_merchant, make_service, make_order,
                                      auth_headers, terminal, requested) -> None:
    merchant = make_merchant()
    customer = make_customer()
    order = make_order(customer, make_service(merchant), status=terminal)

    response = client.put(
        f"/merchant/orders/{order.order_id}/status",
        json={"status": requested},
        headers=auth_headers(merchant),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_transition"

    response = client.put(f"/orders/{order.order_id}/cancel", headers=auth_headers(customer))
    assert response.status_code == 400

    assert _stored_status(order.order_id) == terminal


def test_merchant_cannot_cancel_in_progress(client, make_customer, make_merchant, make_service,
                                            make_order, auth_headers) -> None:
    merchant = make_merchant()
    order = make_order(make_customer(), make_service(merchant), status="in_progress")

    response = client.put(
        f"/merchant/orders/{order.order_id}/status",
        json={"status": "cancelled"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 400
    assert _stored_status(order.order_id) == "in_progress"


@pytest.mark.parametrize("status", ["shipped", "pending", ""])
def test_invalid_status_value_400(client, setup_order, auth_headers, status) -> None:
    merchant, _, order_id = setup_order

    response = client.put(
        f"/merchant/orders/{order_id}/status",
        json={"status": status},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 400
    assert response.get_json()["error"] in {"invalid_status", "invalid_payload"}
    assert _stored_status(order_id) == "pending"


def test_missing_body_400(client, setup_order, auth_headers) -> None:
    merchant, _, order_id = setup_order

    response = client.put(f"/merchant/orders/{order_id}/status", headers=auth_headers(merchant))

    assert response.status_code == 400


def test_unknown_order_404(client, make_merchant, auth_headers) -> None:
    response = client.put(
        "/merchant/orders/does-not-exist/status",
        json={"status": "confirmed"},
        headers=auth_headers(make_merchant()),
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_other_merchants_order_is_404_and_untouched(client, setup_order, make_merchant, auth_headers) -> None:
    _, _, order_id = setup_order
    intruder = make_merchant(business_name="Merchant B")

    response = client.put(
        f"/merchant/orders/{order_id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(intruder),
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"
    assert _stored_status(order_id) == "pending"


def test_customer_id_used_as_merchant_token_is_404(client, setup_order, auth_headers) -> None:
    _, customer, order_id = setup_order

    # A merchant-role token whose subject is not the owning merchant sees nothing.
    response = client.put(
        f"/merchant/orders/{order_id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(customer.user_id, "merchant"),
    )

    assert response.status_code == 404


def test_non_object_body_400(client, setup_order, auth_headers) -> None:
    merchant, _, order_id = setup_order

    response = client.put(
        f"/merchant/orders/{order_id}/status",
        data='["confirmed"]',
        content_type="application/json",
        headers=auth_headers(merchant),
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"
    assert _stored_status(order_id) == "pending"
