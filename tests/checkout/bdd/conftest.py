"""Shared BDD fixtures and step definitions for the checkout saga."""

import pytest
from ordering.order.errors import InvalidTransition
from pytest_bdd import given, parsers, then

ADDRESS = {"line1": "1 Main St", "city": "Springfield", "postal_code": "62701", "country": "US"}


def _parse_lines(lines):
    """``"prod-1:3, prod-2:2"`` -> order items."""
    items = []
    for line in lines.split(","):
        product_id, quantity = line.strip().split(":")
        items.append(
            {"product_id": product_id, "sku": f"SKU-{product_id}", "quantity": int(quantity), "unit_price": "10.00"}
        )
    return items


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for a captured invalid transition."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{product_id}" with {quantity:d} units in stock'))
def _(services, product_id, quantity):
    services.engine.get_or_create_item(product_id, f"SKU-{product_id}", initial_quantity=quantity)


@given(parsers.cfparse('an order for "{lines}"'), target_fixture="order_id")
def _(services, lines):
    order = services.lifecycle.create_order(customer_id="cust-001", items=_parse_lines(lines), shipping_address=ADDRESS)
    return str(order.id)


@given("payment has succeeded for the order")
def _(services, order_id):
    services.coordinator.handle("payment.succeeded", {"orderId": order_id})


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(services, order_id, status):
    assert services.lifecycle.status_of(order_id) == status


@then(parsers.cfparse('the order failure reason is "{reason}"'))
def _(services, order_id, reason):
    assert services.lifecycle.get_order(order_id).failure_reason == reason


@then(parsers.cfparse('the last history entry reason is "{reason}"'))
def _(services, order_id, reason):
    assert services.lifecycle.history(order_id)[-1].reason == reason


@then(
    parsers.cfparse(
        '"{product_id}" has {available:d} available, {reserved:d} reserved and {total:d} in total'
    )
)
def _(services, product_id, available, reserved, total):
    inventory = services.engine.get_inventory(product_id)
    assert (inventory["available"], inventory["reserved"], inventory["total"]) == (available, reserved, total)


@then(parsers.cfparse('a "{event_type}" event is published'))
def _(publisher, event_type):
    assert event_type in publisher.names()


@then("the action fails with an invalid transition")
def _(error):
    assert error["exc"] is not None, "Expected an invalid transition but none was raised"
    assert isinstance(error["exc"], InvalidTransition)
