from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from storefront.errors import Conflict, ValidationFailed
from storefront.models.order import Order, OrderStatus
from storefront.utils.clock import utcnow


@dataclass(frozen=True)
class StatusEffects:
    # None leaves the column untouched
    is_paid: Optional[bool] = None
    stamp_paid_at: bool = False
    is_delivered: Optional[bool] = None
    stamp_delivered_at: bool = False


TRANSITIONS = {
    OrderStatus.PENDING: StatusEffects(),
    OrderStatus.PROCESSING: StatusEffects(is_paid=True, stamp_paid_at=True),
    OrderStatus.SHIPPED: StatusEffects(is_paid=True, is_delivered=False),
    OrderStatus.DELIVERED: StatusEffects(is_paid=True, is_delivered=True, stamp_delivered_at=True),
    OrderStatus.CANCELLED: StatusEffects(is_delivered=False),
}


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationFailed(f"Unknown order status: {value}")


def apply_status(order: Order, status, now: Optional[datetime] = None) -> Order:
    """
    Move an order to ``status`` and write the paid/delivered side effects.

    Timestamps are only stamped when unset, so re-applying the current
    status changes nothing. Delivered and cancelled orders cannot move to
    another status.
    """
    target = parse_status(status)
    current = parse_status(order.status) if order.status is not None else OrderStatus.PENDING
    if current.is_terminal and target != current:
        raise Conflict(f"Cannot change a {current.value} order to {target.value}")

    now = now or utcnow()
    effects = TRANSITIONS[target]
    order.status = target
    if effects.is_paid is not None:
        order.is_paid = effects.is_paid
    if effects.stamp_paid_at and order.paid_at is None:
        order.paid_at = now
    if effects.is_delivered is not None:
        order.is_delivered = effects.is_delivered
    if effects.stamp_delivered_at and order.delivered_at is None:
        order.delivered_at = now
    return order
