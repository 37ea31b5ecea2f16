"""Order creation — command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from shared.settings import custom_setting, decimal_setting

from ordering.domain import ordering
from ordering.order.numbering import next_order_number
from ordering.order.order import Order
from ordering.order.pricing import compute_totals, price_lines


@ordering.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, sku, name, quantity, unit_price}
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict
    discount = String(default="0")
    currency = String(max_length=3)
    actor = String(max_length=100)


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        lines = price_lines(_load(command.items) or [])
        totals = compute_totals(
            lines,
            tax_rate=decimal_setting(current_domain, "TAX_RATE"),
            shipping=decimal_setting(current_domain, "SHIPPING_FLAT_RATE"),
            discount=command.discount or "0",
        )

        order = Order.create(
            order_number=next_order_number(custom_setting(current_domain, "ORDER_NUMBER_PREFIX")),
            customer_id=command.customer_id,
            lines=lines,
            totals=totals,
            shipping_address=_load(command.shipping_address),
            billing_address=_load(command.billing_address),
            currency=command.currency or custom_setting(current_domain, "DEFAULT_CURRENCY"),
            actor=command.actor,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
