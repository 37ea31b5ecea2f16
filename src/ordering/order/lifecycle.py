"""OrderLifecycle — the entry point for creating orders and changing their status.

Writes to one order are serialized on a per-order lock and retried on
store contention, like stock writes. Outbound ``order.*`` events are
published after the transition commits; a failed publish is logged and
the transition stands.
"""

import json

import structlog
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError
from shared.concurrency import get_lock_registry, serialized
from shared.publisher import publish_safely
from shared.settings import custom_setting

from ordering.order.creation import CreateOrder
from ordering.order.errors import InvalidTransition
from ordering.order.order import Order
from ordering.order.state_machine import OrderStatus, path_to
from ordering.order.transition import TransitionOrder
from ordering.projections.order_summary import OrderSummary

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100
AUTO_ADVANCE_REASON = "auto-advance"


class OrderLifecycle:
    def __init__(self, domain: Domain, publisher=None, locks=None):
        self.domain = domain
        self.publisher = publisher
        self.locks = locks or get_lock_registry()
        self.attempts = int(custom_setting(domain, "RETRY_ATTEMPTS"))
        self.backoff = float(custom_setting(domain, "RETRY_BACKOFF_SECONDS"))

    def _process(self, key, command):
        def operation():
            with self.domain.domain_context():
                return self.domain.process(command, asynchronous=False)

        return serialized(
            operation,
            key=f"ordering:{key}",
            attempts=self.attempts,
            backoff=self.backoff,
            registry=self.locks,
        )

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create_order(
        self,
        customer_id,
        items,
        shipping_address,
        billing_address=None,
        discount="0",
        currency=None,
        actor=None,
    ) -> Order:
        """Create a Draft order and announce it with ``order.created``."""
        order_id = self._process(
            "order-number-sequence",
            CreateOrder(
                customer_id=str(customer_id),
                items=json.dumps(items, default=str),
                shipping_address=json.dumps(shipping_address),
                billing_address=json.dumps(billing_address) if billing_address else None,
                discount=str(discount),
                currency=currency,
                actor=actor,
            ),
        )
        order = self.get_order(order_id)
        logger.info(
            "Order created",
            order_id=order_id,
            order_number=order.order_number,
            customer_id=str(customer_id),
            grand_total=order.totals.grand_total,
        )
        publish_safely(
            self.publisher,
            "order.created",
            {
                "orderId": order_id,
                "orderNumber": order.order_number,
                "customerId": str(order.customer_id),
                "items": [
                    {"productId": str(item.product_id), "sku": item.sku, "quantity": item.quantity}
                    for item in order.items
                ],
            },
        )
        return order

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def transition(self, order_id, target, actor, reason=None):
        """Apply one legal edge. Returns the outbound event name, or None."""
        target_value = target.value if isinstance(target, OrderStatus) else target
        result = self._process(
            order_id,
            TransitionOrder(order_id=str(order_id), to_status=target_value, actor=actor, reason=reason),
        )
        logger.info(
            "Order transitioned",
            order_id=str(order_id),
            from_status=result["previous_status"],
            to_status=result["status"],
            actor=actor,
            reason=reason,
        )
        if result["event"]:
            publish_safely(
                self.publisher,
                result["event"],
                {
                    "orderId": result["order_id"],
                    "orderNumber": result["order_number"],
                    "status": result["status"],
                    "previousStatus": result["previous_status"],
                },
            )
        return result["event"]

    def hold(self, order_id):
        """Hold the order's write lock across several reads and transitions."""
        return self.locks.hold(f"ordering:{order_id}")

    def advance_to(self, order_id, target, actor, reason=None):
        """Walk the shortest legal path to ``target``, one transition per hop.

        Only the final hop carries ``reason``; intermediate hops are recorded
        as AUTO_ADVANCE_REASON. Returns the event names produced along the
        way. Raises InvalidTransition when ``target`` cannot be reached.
        """
        target_status = target if isinstance(target, OrderStatus) else OrderStatus(target)
        with self.hold(order_id):
            current = self.get_order(order_id).status
            path = path_to(current, target_status)
            if path is None:
                raise InvalidTransition(
                    current,
                    target_status.value,
                    detail=f"No legal path from {current} to {target_status.value}",
                )

            events = []
            for hop in path:
                hop_reason = reason if hop is path[-1] else AUTO_ADVANCE_REASON
                events.append(self.transition(order_id, hop, actor=actor, reason=hop_reason))
            return events

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id) -> Order:
        with self.domain.domain_context():
            return self.domain.repository_for(Order).get(str(order_id))

    def get_order_by_number(self, order_number) -> Order:
        with self.domain.domain_context():
            summary = (
                self.domain.repository_for(OrderSummary)
                ._dao.query.filter(order_number=order_number)
                .all()
                .first
            )
            if summary is None:
                raise ObjectNotFoundError(f"Order {order_number} does not exist")
            return self.domain.repository_for(Order).get(str(summary.order_id))

    def status_of(self, order_id) -> str:
        return self.get_order(order_id).status

    def valid_transitions(self, order_id) -> list[str]:
        return self.get_order(order_id).valid_transitions()

    def history(self, order_id):
        return list(self.get_order(order_id).history)

    def list_orders(self, status=None, customer_id=None, page=1, limit=20) -> dict:
        """Newest first, filtered by status and/or owner."""
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 20), 1), MAX_PAGE_SIZE)

        filters = {}
        if status:
            filters["status"] = status
        if customer_id:
            filters["customer_id"] = str(customer_id)

        with self.domain.domain_context():
            query = self.domain.repository_for(OrderSummary)._dao.query
            if filters:
                query = query.filter(**filters)
            results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()

        return {
            "orders": list(results.items),
            "total": results.total,
            "page": page,
            "limit": limit,
        }
