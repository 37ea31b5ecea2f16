"""Checkout coordinator — the saga that keeps orders and stock in step.

Inbound events drive the OrderLifecycle and the ReservationEngine. The two
stores are never committed together: a shortfall while reserving is
compensated by releasing whatever was already held, and anything the
compensation misses stays Pending until the expiry sweeper reclaims it.

Flow:
    order.created          → Pending, reserve every line
                             (shortfall: release holds, → Failed)
    payment.initiated      → PaymentPending
    payment.succeeded      → Paid, confirm holds, → Confirmed
    payment.failed         → Failed, release holds
    order.cancel_requested → Cancelled, release holds
    order.shipped          → Shipped (confirmed orders only)
    order.delivered        → Delivered

Each event is handled under the order's write lock, so the sweeper and
other handlers never interleave with it. Payment events only walk an
order forward from Pending or PaymentPending; a Draft order has no stock
held and is rejected with InvalidTransition.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.concurrency import TransientFailure
from shared.logging import log_context

from inventory.stock.engine import ReservationEngine
from inventory.stock.errors import InsufficientStock, InvalidReservationState
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.state_machine import PRE_PAYMENT_STATUSES, OrderStatus

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = "system:coordinator"

FULFILMENT_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}
)


class Coordinator:
    def __init__(self, orders: OrderLifecycle, stock: ReservationEngine):
        self.orders = orders
        self.stock = stock
        self._handlers = {
            "order.created": self.on_order_created,
            "payment.initiated": self.on_payment_initiated,
            "payment.succeeded": self.on_payment_succeeded,
            "payment.failed": self.on_payment_failed,
            "order.cancel_requested": self.on_cancel_requested,
            "order.shipped": self.on_order_shipped,
            "order.delivered": self.on_order_delivered,
        }

    @property
    def handled_events(self):
        return list(self._handlers)

    def handle(self, event_type: str, payload: dict):
        """Dispatch one inbound event. Unknown types are ignored."""
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.warning("Ignoring unknown event", event_type=event_type)
            return None

        if not isinstance(payload, dict):
            raise ValidationError({"payload": [f"{event_type} payload must be an object"]})

        order_id = payload.get("orderId") or payload.get("order_id")
        if not order_id:
            raise ValidationError({"orderId": [f"{event_type} payload is missing orderId"]})

        order_id = str(order_id)
        with log_context(event_type=event_type, order_id=order_id), self.orders.hold(order_id):
            return handler(order_id, payload)

    # -------------------------------------------------------------------
    # order.created
    # -------------------------------------------------------------------
    def on_order_created(self, order_id, payload):  # noqa: ARG002
        # The stored order, not the message, is authoritative for what to reserve.
        order = self.orders.get_order(order_id)
        self.orders.transition(order_id, OrderStatus.PENDING, actor=SYSTEM_ACTOR, reason="Checkout submitted")

        held, failures = [], []
        for product_id, sku, quantity in ((str(i.product_id), i.sku, i.quantity) for i in order.items):
            try:
                reservation = self.stock.reserve(product_id, quantity, order_id=order_id)
                held.append(reservation["reservation_id"])
            except InsufficientStock:
                failures.append(f"insufficient stock for {sku}")
            except ObjectNotFoundError:
                failures.append(f"no inventory for {sku}")

        if not failures:
            logger.info("Stock held for order", reservations=len(held))
            return {"status": OrderStatus.PENDING.value, "reservations": held}

        self._compensate(held)
        reason = "; ".join(failures)
        self.orders.advance_to(order_id, OrderStatus.FAILED, actor=SYSTEM_ACTOR, reason=reason)
        logger.warning("Order failed on stock shortfall", reason=reason, compensated=len(held))
        return {"status": OrderStatus.FAILED.value, "reason": reason, "reservations": []}

    def _compensate(self, reservation_ids):
        """Best-effort rollback of holds. Anything left Pending is the sweeper's."""
        for reservation_id in reservation_ids:
            try:
                self.stock.release(reservation_id, reason="order failed")
            except (TransientFailure, InvalidReservationState) as exc:
                logger.error(
                    "Compensating release failed, leaving for expiry",
                    reservation_id=reservation_id,
                    error=str(exc),
                )

    # -------------------------------------------------------------------
    # Payment outcomes
    # -------------------------------------------------------------------
    def on_payment_initiated(self, order_id, payload):  # noqa: ARG002
        self._advance_payment(order_id, OrderStatus.PAYMENT_PENDING, reason="Payment initiated")
        return {"status": OrderStatus.PAYMENT_PENDING.value}

    def on_payment_succeeded(self, order_id, payload):  # noqa: ARG002
        self._advance_payment(order_id, OrderStatus.PAID, reason="Payment succeeded")

        confirmed = []
        for reservation in self.stock.pending_reservations_for_order(order_id):
            self.stock.confirm(reservation.reservation_id)
            confirmed.append(str(reservation.reservation_id))

        self.orders.transition(
            order_id, OrderStatus.CONFIRMED, actor=SYSTEM_ACTOR, reason="Stock committed after payment"
        )
        logger.info("Order confirmed", confirmed_reservations=len(confirmed))
        return {"status": OrderStatus.CONFIRMED.value, "confirmed": confirmed}

    def on_payment_failed(self, order_id, payload):
        reason = f"payment failed: {payload.get('reason') or 'unknown'}"
        self._advance_payment(order_id, OrderStatus.FAILED, reason=reason)
        released = self._release_pending(order_id, reason="payment failed")
        return {"status": OrderStatus.FAILED.value, "released": released}

    def _advance_payment(self, order_id, target, reason):
        # Only orders whose stock is held may be walked through payment.
        current = OrderStatus(self.orders.status_of(order_id))
        if current in PRE_PAYMENT_STATUSES:
            self.orders.advance_to(order_id, target, actor=SYSTEM_ACTOR, reason=reason)
        else:
            self.orders.transition(order_id, target, actor=SYSTEM_ACTOR, reason=reason)

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def on_cancel_requested(self, order_id, payload):
        actor = payload.get("actor") or SYSTEM_ACTOR
        self.orders.transition(
            order_id, OrderStatus.CANCELLED, actor=actor, reason=payload.get("reason") or "Cancellation requested"
        )
        # Confirmed holds are sold stock; they go through the refund flow instead.
        released = self._release_pending(order_id, reason="order cancelled")
        return {"status": OrderStatus.CANCELLED.value, "released": released}

    def _release_pending(self, order_id, reason):
        released = []
        for reservation in self.stock.pending_reservations_for_order(order_id):
            self.stock.release(reservation.reservation_id, reason=reason)
            released.append(str(reservation.reservation_id))
        return released

    # -------------------------------------------------------------------
    # Shipping
    # -------------------------------------------------------------------
    def on_order_shipped(self, order_id, payload):  # noqa: ARG002
        self._advance_fulfilment(order_id, OrderStatus.SHIPPED, reason="Shipment dispatched")
        return {"status": OrderStatus.SHIPPED.value}

    def on_order_delivered(self, order_id, payload):  # noqa: ARG002
        self._advance_fulfilment(order_id, OrderStatus.DELIVERED, reason="Shipment delivered")
        return {"status": OrderStatus.DELIVERED.value}

    def _advance_fulfilment(self, order_id, target, reason):
        # Shipping never walks an order through payment: only confirmed
        # orders may be advanced along several hops.
        current = OrderStatus(self.orders.status_of(order_id))
        if current in FULFILMENT_STATUSES:
            self.orders.advance_to(order_id, target, actor=SYSTEM_ACTOR, reason=reason)
        else:
            self.orders.transition(order_id, target, actor=SYSTEM_ACTOR, reason=reason)
