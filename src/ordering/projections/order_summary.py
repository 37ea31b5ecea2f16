"""Order summary — listing view, and the lookup table for order numbers."""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.events import OrderCreated, OrderStatusChanged
from ordering.order.order import Order
from ordering.order.state_machine import OrderStatus


@ordering.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    status = String(required=True)
    item_count = Integer(default=0)
    grand_total = String()
    currency = String(default="USD")
    created_at = DateTime()
    updated_at = DateTime()


@ordering.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                order_number=event.order_number,
                customer_id=event.customer_id,
                status=OrderStatus.DRAFT.value,
                item_count=sum(int(item["quantity"]) for item in items),
                grand_total=event.grand_total,
                currency=event.currency,
                created_at=event.created_at,
                updated_at=event.created_at,
            )
        )

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.status = event.to_status
        summary.updated_at = event.occurred_at
        repo.add(summary)
