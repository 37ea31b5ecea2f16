"""Domain events for the Order aggregate.

OrderStatusChanged is the only event that moves an order between
statuses; each one produces exactly one history entry on replay.
"""

from protean.fields import DateTime, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """A new order was submitted at checkout, in Draft."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of priced line dicts
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict
    subtotal = String(required=True)  # decimal strings from here on
    tax = String(required=True)
    shipping = String(required=True)
    discount = String(required=True)
    grand_total = String(required=True)
    currency = String(required=True, max_length=3)
    actor = String(required=True)
    history_entry_id = Identifier(required=True)
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """An order moved along a legal edge of the lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor = String(required=True)
    reason = String()
    event_name = String()  # outbound event for this edge, if any
    history_entry_id = Identifier(required=True)
    occurred_at = DateTime(required=True)
