"""Inventory level — current stock per product, used for lookups and listings."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.stock.events import (
    ReservationConfirmed,
    ReservationReleased,
    StockAdjusted,
    StockInitialized,
    StockReserved,
)
from inventory.stock.stock import InventoryItem


@inventory.projection
class InventoryLevel:
    inventory_item_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    sku = String(required=True)
    available = Integer(default=0)
    reserved = Integer(default=0)
    total = Integer(default=0)
    low_stock_threshold = Integer(default=10)
    updated_at = DateTime()


def _update_levels(event, occurred_at):
    repo = current_domain.repository_for(InventoryLevel)
    level = repo.get(event.inventory_item_id)
    level.available = event.new_available
    level.reserved = event.new_reserved
    level.total = event.new_total
    level.updated_at = occurred_at
    repo.add(level)


@inventory.projector(projector_for=InventoryLevel, aggregates=[InventoryItem])
class InventoryLevelProjector:
    @on(StockInitialized)
    def on_stock_initialized(self, event):
        current_domain.repository_for(InventoryLevel).add(
            InventoryLevel(
                inventory_item_id=event.inventory_item_id,
                product_id=event.product_id,
                sku=event.sku,
                available=event.initial_quantity,
                reserved=0,
                total=event.initial_quantity,
                low_stock_threshold=event.low_stock_threshold,
                updated_at=event.initialized_at,
            )
        )

    @on(StockReserved)
    def on_stock_reserved(self, event):
        _update_levels(event, event.reserved_at)

    @on(ReservationConfirmed)
    def on_reservation_confirmed(self, event):
        _update_levels(event, event.confirmed_at)

    @on(ReservationReleased)
    def on_reservation_released(self, event):
        _update_levels(event, event.released_at)

    @on(StockAdjusted)
    def on_stock_adjusted(self, event):
        _update_levels(event, event.adjusted_at)


def find_level_by_product(product_id):
    """Return the InventoryLevel row for ``product_id``, or None."""
    return (
        current_domain.repository_for(InventoryLevel)._dao.query.filter(product_id=str(product_id)).all().first
    )
