"""Stock movement log — append-only audit trail of every ledger change."""

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
from inventory.stock.stock import InventoryItem, MovementType


@inventory.projection
class StockMovementLog:
    entry_id = Identifier(identifier=True, required=True)
    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    movement_type = String(required=True)
    quantity = Integer(required=True)
    reason = String()
    reference = String()
    available_after = Integer(default=0)
    reserved_after = Integer(default=0)
    total_after = Integer(default=0)
    occurred_at = DateTime(required=True)


def _add_entry(event, movement_type, quantity, occurred_at, reason=None, reference=None):
    current_domain.repository_for(StockMovementLog).add(
        StockMovementLog(
            entry_id=event.movement_id,
            inventory_item_id=event.inventory_item_id,
            product_id=event.product_id,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
            available_after=getattr(event, "new_available", 0),
            reserved_after=getattr(event, "new_reserved", 0),
            total_after=getattr(event, "new_total", 0),
            occurred_at=occurred_at,
        )
    )


@inventory.projector(projector_for=StockMovementLog, aggregates=[InventoryItem])
class StockMovementLogProjector:
    @on(StockInitialized)
    def on_stock_initialized(self, event):
        current_domain.repository_for(StockMovementLog).add(
            StockMovementLog(
                entry_id=event.movement_id,
                inventory_item_id=event.inventory_item_id,
                product_id=event.product_id,
                movement_type=MovementType.INITIAL.value,
                quantity=event.initial_quantity,
                reason="Initial stock",
                available_after=event.initial_quantity,
                reserved_after=0,
                total_after=event.initial_quantity,
                occurred_at=event.initialized_at,
            )
        )

    @on(StockReserved)
    def on_stock_reserved(self, event):
        _add_entry(
            event,
            MovementType.RESERVE.value,
            -event.quantity,
            event.reserved_at,
            reference=str(event.reservation_id),
        )

    @on(ReservationConfirmed)
    def on_reservation_confirmed(self, event):
        _add_entry(
            event,
            MovementType.COMMIT.value,
            -event.quantity,
            event.confirmed_at,
            reference=str(event.reservation_id),
        )

    @on(ReservationReleased)
    def on_reservation_released(self, event):
        _add_entry(
            event,
            MovementType.RELEASE.value,
            event.quantity,
            event.released_at,
            reason=event.reason,
            reference=str(event.reservation_id),
        )

    @on(StockAdjusted)
    def on_stock_adjusted(self, event):
        _add_entry(event, event.movement_type, event.delta, event.adjusted_at, reason=event.reason)
