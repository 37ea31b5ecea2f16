"""Stock reservation — commands and handler.

Reserve addresses an item by product. Confirm, release and expire address
a reservation by id and find the owning item through the ReservationStatus
read model.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.projections.inventory_level import find_level_by_product
from inventory.projections.reservation_status import ReservationStatus
from inventory.stock.stock import InventoryItem


@inventory.command(part_of="InventoryItem")
class ReserveStock:
    """Hold stock of a product, optionally for an order."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    order_id = Identifier()
    expires_at = DateTime()


@inventory.command(part_of="InventoryItem")
class ConfirmReservation:
    """Convert a Pending reservation into a permanent deduction."""

    reservation_id = Identifier(required=True)


@inventory.command(part_of="InventoryItem")
class ReleaseReservation:
    """Return a Pending reservation's stock to available."""

    reservation_id = Identifier(required=True)
    reason = String(default="released", max_length=255)


@inventory.command(part_of="InventoryItem")
class ExpireReservation:
    """Release a Pending reservation that has passed its deadline."""

    reservation_id = Identifier(required=True)


def snapshot(item, reservation):
    """Plain-dict view of a reservation, as returned to callers."""
    return {
        "reservation_id": str(reservation.id),
        "inventory_item_id": str(item.id),
        "product_id": str(item.product_id),
        "sku": item.sku,
        "order_id": str(reservation.order_id) if reservation.order_id else None,
        "quantity": reservation.quantity,
        "status": reservation.status,
        "reserved_at": reservation.reserved_at,
        "expires_at": reservation.expires_at,
        "confirmed_at": reservation.confirmed_at,
        "released_at": reservation.released_at,
    }


def _load_item_for_product(product_id):
    level = find_level_by_product(product_id)
    if level is None:
        raise ObjectNotFoundError(f"No inventory registered for product {product_id}")
    repo = current_domain.repository_for(InventoryItem)
    return repo, repo.get(level.inventory_item_id)


def _load_item_for_reservation(reservation_id):
    view = current_domain.repository_for(ReservationStatus).get(reservation_id)
    repo = current_domain.repository_for(InventoryItem)
    return repo, repo.get(view.inventory_item_id)


@inventory.command_handler(part_of=InventoryItem)
class ReservationHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        repo, item = _load_item_for_product(command.product_id)
        reservation = item.reserve(
            quantity=command.quantity,
            order_id=command.order_id,
            expires_at=command.expires_at,
        )
        repo.add(item)
        return snapshot(item, reservation)

    @handle(ConfirmReservation)
    def confirm_reservation(self, command):
        repo, item = _load_item_for_reservation(command.reservation_id)
        reservation = item.confirm_reservation(command.reservation_id)
        repo.add(item)
        return snapshot(item, reservation)

    @handle(ReleaseReservation)
    def release_reservation(self, command):
        repo, item = _load_item_for_reservation(command.reservation_id)
        reservation = item.release_reservation(command.reservation_id, reason=command.reason or "released")
        repo.add(item)
        return snapshot(item, reservation)

    @handle(ExpireReservation)
    def expire_reservation(self, command):
        repo, item = _load_item_for_reservation(command.reservation_id)
        reservation = item.release_reservation(command.reservation_id, reason="expired", expired=True)
        repo.add(item)
        return snapshot(item, reservation)
