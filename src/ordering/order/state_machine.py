"""Order lifecycle state machine.

The transition table below is the only encoding of the lifecycle. The
aggregate, the API's "valid transitions" query and the coordinator's path
finding all read from it.
"""

from collections import deque
from enum import Enum


class OrderStatus(Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    PAYMENT_PENDING = "PaymentPending"
    PAID = "Paid"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"
    FAILED = "Failed"


TRANSITIONS = {
    OrderStatus.DRAFT: (OrderStatus.PENDING, OrderStatus.CANCELLED),
    OrderStatus.PENDING: (OrderStatus.PAYMENT_PENDING, OrderStatus.CANCELLED),
    OrderStatus.PAYMENT_PENDING: (OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.CANCELLED),
    OrderStatus.PAID: (OrderStatus.CONFIRMED, OrderStatus.REFUNDED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PROCESSING, OrderStatus.REFUNDED, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (OrderStatus.COMPLETED, OrderStatus.REFUNDED),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
    OrderStatus.REFUNDED: (),
    OrderStatus.FAILED: (),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Outbound event announced when an order enters a status. Statuses not
# listed here change silently.
EVENT_ON_ENTRY = {
    OrderStatus.PAID: "order.paid",
    OrderStatus.CONFIRMED: "order.confirmed",
    OrderStatus.PROCESSING: "order.processing",
    OrderStatus.SHIPPED: "order.shipped",
    OrderStatus.DELIVERED: "order.delivered",
    OrderStatus.CANCELLED: "order.cancelled",
    OrderStatus.REFUNDED: "order.refunded",
}

# Lifecycle timestamp stamped on the order when it enters a status.
TIMESTAMP_ON_ENTRY = {
    OrderStatus.PAID: "paid_at",
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REFUNDED: "refunded_at",
    OrderStatus.FAILED: "failed_at",
}

PRE_PAYMENT_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PAYMENT_PENDING})


def _status(value) -> OrderStatus:
    return value if isinstance(value, OrderStatus) else OrderStatus(value)


def valid_transitions(current) -> list[OrderStatus]:
    return list(TRANSITIONS[_status(current)])


def can_transition(current, target) -> bool:
    return _status(target) in TRANSITIONS[_status(current)]


def is_terminal(status) -> bool:
    return _status(status) in TERMINAL_STATUSES


def event_for(current, target) -> str | None:
    """Outbound event name for a legal edge, or None for silent or illegal edges."""
    if not can_transition(current, target):
        return None
    return EVENT_ON_ENTRY.get(_status(target))


def path_to(current, target) -> list[OrderStatus] | None:
    """Shortest legal sequence of statuses leading from ``current`` to ``target``.

    The result excludes ``current``; an empty list means the order is
    already there. None means ``target`` is unreachable.
    """
    start, goal = _status(current), _status(target)
    if start == goal:
        return []

    previous = {start: None}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for nxt in TRANSITIONS[node]:
            if nxt in previous:
                continue
            previous[nxt] = node
            if nxt == goal:
                path = [nxt]
                while previous[path[-1]] != start:
                    path.append(previous[path[-1]])
                return list(reversed(path))
            queue.append(nxt)
    return None
