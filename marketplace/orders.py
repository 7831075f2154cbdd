"""Order status workflow.

ORDER STATUS FLOW::

    pending -> confirmed -> in_progress -> completed
       |           |
       +-----------+--> cancelled

Merchants move orders along ``MERCHANT_TRANSITIONS``. Customers have a single,
narrower rule: they may cancel their own order while it is still pending.
Writes are compare-and-swap on the status the caller read, so two racing
requests can never both move the same order out of one state.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func, update

from .errors import Conflict, InvalidTransition, NotFound, ValidationError
from .extensions import db
from .models import ORDER_STATUSES, Order, Service, utc_now
from .scoping import get_customer_order, get_merchant_order

PENDING = "pending"
CONFIRMED = "confirmed"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

MERCHANT_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({IN_PROGRESS, CANCELLED}),
    IN_PROGRESS: frozenset({COMPLETED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

# Statuses a merchant may ask for; "pending" is only ever the initial state.
MERCHANT_SETTABLE_STATUSES = (CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED)

TERMINAL_STATUSES = frozenset(status for status, nxt in MERCHANT_TRANSITIONS.items() if not nxt)


@dataclass(frozen=True)
class StatusChange:
    order_id: str
    previous_status: str
    new_status: str

    def to_dict(self) -> dict[str, str]:
        return {
            "order_id": self.order_id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
        }


def check_merchant_transition(current: str, requested: str) -> None:
    """Raise InvalidTransition unless a merchant may move ``current`` to ``requested``."""
    if requested not in MERCHANT_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(current, requested)


def check_customer_cancel(current: str) -> None:
    if current != PENDING:
        raise InvalidTransition(
            current,
            CANCELLED,
            "Cannot cancel order. Only pending orders can be cancelled.",
        )


def compare_and_set_status(order_id: str, owner_column, owner_id: str, expected: str, new_status: str) -> None:
    """Persist ``new_status`` only if the order still has ``expected``.

    The owner predicate is repeated in the UPDATE so the write stays scoped
    even if the caller skipped the scoped read. Raises Conflict when no row
    matched, leaving the stored status untouched.
    """
    result = db.session.execute(
        update(Order)
        .where(
            Order.order_id == order_id,
            owner_column == owner_id,
            Order.order_status == expected,
        )
        .values(order_status=new_status, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        current_app.logger.warning(
            "Lost status race on order %s (expected %s, wanted %s)", order_id, expected, new_status
        )
        raise Conflict("Order status changed while updating; re-fetch the order and retry")
    db.session.commit()


def update_status(order_id: str, merchant_id: str, new_status: str) -> StatusChange:
    """Advance an order owned by ``merchant_id`` to ``new_status``."""
    if new_status not in MERCHANT_SETTABLE_STATUSES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(MERCHANT_SETTABLE_STATUSES)}",
            error="invalid_status",
        )

    order = get_merchant_order(order_id, merchant_id)
    current = order.order_status
    check_merchant_transition(current, new_status)

    compare_and_set_status(order_id, Order.merchant_id, merchant_id, current, new_status)
    current_app.logger.info("Order %s moved %s -> %s by merchant %s", order_id, current, new_status, merchant_id)
    return StatusChange(order_id=order_id, previous_status=current, new_status=new_status)


def cancel_by_customer(order_id: str, user_id: str) -> StatusChange:
    order = get_customer_order(order_id, user_id)
    current = order.order_status
    check_customer_cancel(current)

    compare_and_set_status(order_id, Order.user_id, user_id, current, CANCELLED)
    current_app.logger.info("Order %s cancelled by customer %s", order_id, user_id)
    return StatusChange(order_id=order_id, previous_status=current, new_status=CANCELLED)


def create_order(
    user_id: str,
    service_id: str,
    notes: str | None = None,
    scheduled_date: datetime | None = None,
) -> Order:
    """Book ``service_id`` for ``user_id``.

    The merchant, price, title and duration all come from the service row;
    nothing about ownership or price is taken from the request.
    """
    service = Service.query.filter(Service.service_id == service_id, Service.availability.is_(True)).first()
    if service is None:
        raise NotFound("Service not found or unavailable")

    order = Order(
        user_id=user_id,
        merchant_id=service.merchant_id,
        service_id=service.service_id,
        service_title=service.title,
        service_duration=service.duration,
        total_amount=service.price,
        payment_status=PENDING,
        order_status=PENDING,
        notes=notes,
        scheduled_date=scheduled_date,
    )
    db.session.add(order)
    db.session.commit()

    current_app.logger.info("Order %s created for service %s by customer %s", order.order_id, service_id, user_id)
    return order


def merchant_stats(merchant_id: str) -> dict[str, object]:
    """Order counts per status and earnings from completed orders only."""
    rows = (
        db.session.query(Order.order_status, func.count(Order.order_id), func.sum(Order.total_amount))
        .filter(Order.merchant_id == merchant_id)
        .group_by(Order.order_status)
        .all()
    )
    counts = {status: 0 for status in ORDER_STATUSES}
    total_earnings = 0.0
    for status, count, amount in rows:
        counts[status] = count
        if status == COMPLETED and amount is not None:
            total_earnings = float(amount)

    stats: dict[str, object] = {"total_orders": sum(counts.values())}
    stats.update({f"{status}_orders": counts[status] for status in ORDER_STATUSES})
    stats["total_earnings"] = round(total_earnings, 2)
    return stats
