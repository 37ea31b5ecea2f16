"""Reservation status — one row per reservation, for lookups by id, order and deadline."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.stock.events import (
    ReservationConfirmed,
    ReservationReleased,
    StockReserved,
)
from inventory.stock.stock import InventoryItem, ReservationState


@inventory.projection
class ReservationStatus:
    reservation_id = Identifier(identifier=True, required=True)
    inventory_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    status = String(required=True)
    reason = String()
    reserved_at = DateTime()
    expires_at = DateTime()
    updated_at = DateTime()


def _mark(reservation_id, status, occurred_at, reason=None):
    repo = current_domain.repository_for(ReservationStatus)
    reservation = repo.get(reservation_id)
    reservation.status = status
    reservation.updated_at = occurred_at
    if reason:
        reservation.reason = reason
    repo.add(reservation)


@inventory.projector(projector_for=ReservationStatus, aggregates=[InventoryItem])
class ReservationStatusProjector:
    @on(StockReserved)
    def on_stock_reserved(self, event):
        current_domain.repository_for(ReservationStatus).add(
            ReservationStatus(
                reservation_id=event.reservation_id,
                inventory_item_id=event.inventory_item_id,
                product_id=event.product_id,
                order_id=event.order_id,
                quantity=event.quantity,
                status=ReservationState.PENDING.value,
                reserved_at=event.reserved_at,
                expires_at=event.expires_at,
                updated_at=event.reserved_at,
            )
        )

    @on(ReservationConfirmed)
    def on_reservation_confirmed(self, event):
        _mark(event.reservation_id, ReservationState.CONFIRMED.value, event.confirmed_at)

    @on(ReservationReleased)
    def on_reservation_released(self, event):
        status = ReservationState.EXPIRED if event.expired else ReservationState.RELEASED
        _mark(event.reservation_id, status.value, event.released_at, reason=event.reason)


def reservations_for_order(order_id, status=None):
    filters = {"order_id": str(order_id)}
    if status is not None:
        filters["status"] = status
    return current_domain.repository_for(ReservationStatus)._dao.query.filter(**filters).all().items
