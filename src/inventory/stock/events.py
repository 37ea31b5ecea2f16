"""Domain events for the InventoryItem aggregate.

Every event carries the resulting stock levels so projections never have
to recompute them, and so replay reproduces exactly what was committed.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from inventory.domain import inventory


@inventory.event(part_of="InventoryItem")
class StockInitialized:
    """Stock was registered for a product for the first time."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    sku = String(required=True)
    initial_quantity = Integer(required=True)
    low_stock_threshold = Integer(required=True)
    movement_id = Identifier(required=True)
    initialized_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class StockReserved:
    """Stock was held for an order: available down, reserved up."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reservation_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    new_available = Integer(required=True)
    new_reserved = Integer(required=True)
    new_total = Integer(required=True)
    movement_id = Identifier(required=True)
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class ReservationConfirmed:
    """A hold became a permanent deduction: reserved and total both down."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reservation_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    new_available = Integer(required=True)
    new_reserved = Integer(required=True)
    new_total = Integer(required=True)
    movement_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class ReservationReleased:
    """A hold was cancelled and its quantity returned to available.

    ``expired`` is set when the release was forced by the reservation
    passing its deadline.
    """

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reservation_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    reason = String(required=True)
    expired = Boolean(default=False)
    new_available = Integer(required=True)
    new_reserved = Integer(required=True)
    new_total = Integer(required=True)
    movement_id = Identifier(required=True)
    released_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class StockAdjusted:
    """Stock was restocked or written down outside of any reservation."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    delta = Integer(required=True)
    movement_type = String(required=True)  # restock, adjustment
    reason = String()
    new_available = Integer(required=True)
    new_reserved = Integer(required=True)
    new_total = Integer(required=True)
    movement_id = Identifier(required=True)
    adjusted_at = DateTime(required=True)


@inventory.event(part_of="InventoryItem")
class LowStockDetected:
    """Available stock was at or below the threshold during a scan."""

    __version__ = 1

    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    sku = String(required=True)
    current_stock = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime(required=True)
