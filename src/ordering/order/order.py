"""Order aggregate (Event Sourced) — the core of the ordering domain.

Orders are created in Draft and only ever change status through
``transition``, which consults the table in ``state_machine`` and raises
OrderStatusChanged. Replaying that event appends the history entry and
stamps the lifecycle timestamp, so the history can never disagree with
the status.

Money is held as decimal strings; see ``pricing``.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from protean import apply, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.errors import InvalidTransition
from ordering.order.events import OrderCreated, OrderStatusChanged
from ordering.order.state_machine import (
    TIMESTAMP_ON_ENTRY,
    OrderStatus,
    can_transition,
    event_for,
    valid_transitions,
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A shipping or billing address captured at checkout time."""

    name = String(max_length=200)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=50)


@ordering.value_object(part_of="Order")
class OrderTotals:
    """Monetary summary of an order, in decimal strings."""

    subtotal = String(default="0.00")
    tax = String(default="0.00")
    shipping = String(default="0.00")
    discount = String(default="0.00")
    grand_total = String(default="0.00")

    @invariant.post
    def grand_total_must_add_up(self):
        expected = Decimal(self.subtotal) + Decimal(self.tax) + Decimal(self.shipping) - Decimal(self.discount)
        if Decimal(self.grand_total) != expected:
            raise ValidationError(
                {"grand_total": [f"Grand total {self.grand_total} does not equal computed total {expected}"]}
            )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLineItem:
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=50)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = String(required=True)
    subtotal = String(required=True)
    tax = String(default="0.00")
    total = String(required=True)


@ordering.entity(part_of="Order")
class OrderHistoryEntry:
    """One status change. ``from_status`` is empty for the creation entry."""

    from_status = String(max_length=20)
    to_status = String(required=True, max_length=20)
    actor = String(required=True, max_length=100)
    reason = String(max_length=1000)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@ordering.aggregate(is_event_sourced=True)
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.DRAFT.value,
    )
    currency = String(max_length=3, default="USD")
    totals = ValueObject(OrderTotals)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    items = HasMany(OrderLineItem)
    history = HasMany(OrderHistoryEntry)
    failure_reason = String(max_length=1000)
    paid_at = DateTime()
    confirmed_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    completed_at = DateTime()
    cancelled_at = DateTime()
    refunded_at = DateTime()
    failed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        customer_id,
        lines,
        totals,
        shipping_address,
        billing_address=None,
        currency="USD",
        actor=None,
    ):
        """Create a Draft order from already-priced lines (see ``pricing``).

        Args:
            lines: list of dicts with product_id, sku, name, quantity,
                   unit_price, subtotal, tax, total.
            totals: dict with subtotal, tax, shipping, discount, grand_total.
            shipping_address / billing_address: address dicts.
        """
        lines_with_ids = [{**line, "id": str(uuid4())} for line in lines]

        order = cls._create_new()
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                items=json.dumps(lines_with_ids),
                shipping_address=json.dumps(shipping_address),
                billing_address=json.dumps(billing_address) if billing_address else None,
                subtotal=totals["subtotal"],
                tax=totals["tax"],
                shipping=totals["shipping"],
                discount=totals["discount"],
                grand_total=totals["grand_total"],
                currency=currency,
                actor=actor or str(customer_id),
                history_entry_id=str(uuid4()),
                created_at=datetime.now(UTC),
            )
        )
        return order

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def valid_transitions(self) -> list[str]:
        return [status.value for status in valid_transitions(self.status)]

    def transition(self, target, actor, reason=None):
        """Move to ``target`` and return the outbound event name for the edge, if any."""
        try:
            target_status = OrderStatus(target.value if isinstance(target, OrderStatus) else target)
        except ValueError:
            raise InvalidTransition(self.status, target, detail=f"Unknown order status: {target}") from None

        if not can_transition(self.status, target_status):
            raise InvalidTransition(self.status, target_status.value)

        event_name = event_for(self.status, target_status)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=self.status,
                to_status=target_status.value,
                actor=actor,
                reason=reason,
                event_name=event_name,
                history_entry_id=str(uuid4()),
                occurred_at=datetime.now(UTC),
            )
        )
        return event_name

    def line_totals_match(self) -> bool:
        line_total = sum((Decimal(item.total) for item in self.items), Decimal("0"))
        expected = line_total + Decimal(self.totals.tax) + Decimal(self.totals.shipping) - Decimal(self.totals.discount)
        return Decimal(self.totals.grand_total) == expected

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_order_created(self, event: OrderCreated):
        self.id = event.order_id
        self.order_number = event.order_number
        self.customer_id = event.customer_id
        self.status = OrderStatus.DRAFT.value
        self.currency = event.currency
        self.created_at = event.created_at
        self.updated_at = event.created_at

        # Reconstruct items from JSON (includes IDs for deterministic replay)
        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderLineItem(**item_data) for item_data in items_data]

        ship_data = json.loads(event.shipping_address) if isinstance(event.shipping_address, str) else {}
        if ship_data:
            self.shipping_address = Address(**ship_data)

        bill_data = json.loads(event.billing_address) if isinstance(event.billing_address, str) else {}
        if bill_data:
            self.billing_address = Address(**bill_data)

        self.totals = OrderTotals(
            subtotal=event.subtotal,
            tax=event.tax,
            shipping=event.shipping,
            discount=event.discount,
            grand_total=event.grand_total,
        )
        self.add_history(
            OrderHistoryEntry(
                id=event.history_entry_id,
                from_status=None,
                to_status=OrderStatus.DRAFT.value,
                actor=event.actor,
                reason="Order created",
                occurred_at=event.created_at,
            )
        )

    @apply
    def _on_order_status_changed(self, event: OrderStatusChanged):
        self.status = event.to_status
        self.updated_at = event.occurred_at

        timestamp_field = TIMESTAMP_ON_ENTRY.get(OrderStatus(event.to_status))
        if timestamp_field:
            setattr(self, timestamp_field, event.occurred_at)
        if event.to_status == OrderStatus.FAILED.value:
            self.failure_reason = event.reason

        self.add_history(
            OrderHistoryEntry(
                id=event.history_entry_id,
                from_status=event.from_status,
                to_status=event.to_status,
                actor=event.actor,
                reason=event.reason,
                occurred_at=event.occurred_at,
            )
        )
