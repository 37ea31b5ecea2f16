"""ReservationEngine — the entry point for every write to the stock ledger.

Each mutating operation holds the per-product lock for the whole
load-check-commit cycle, so two reservations against the same product
never both pass the ``available`` floor. Version conflicts from the event
store are retried with backoff; exhausting the budget raises
TransientFailure and leaves the ledger at its last committed state.

Outbound events are published only after the command has committed.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError
from shared.concurrency import get_lock_registry, serialized
from shared.publisher import publish_safely
from shared.settings import custom_setting

from inventory.projections.inventory_level import InventoryLevel, find_level_by_product
from inventory.projections.reservation_status import ReservationStatus, reservations_for_order
from inventory.projections.stock_movement_log import StockMovementLog
from inventory.stock.adjustment import AdjustStock
from inventory.stock.expiry import due_reservations
from inventory.stock.initialization import RegisterStock
from inventory.stock.low_stock import CheckLowStock, low_stock_levels
from inventory.stock.reservation import (
    ConfirmReservation,
    ExpireReservation,
    ReleaseReservation,
    ReserveStock,
)
from inventory.stock.stock import InventoryItem, ReservationState

logger = structlog.get_logger(__name__)


class ReservationEngine:
    def __init__(self, domain: Domain, publisher=None, locks=None):
        self.domain = domain
        self.publisher = publisher
        self.locks = locks or get_lock_registry()
        self.attempts = int(custom_setting(domain, "RETRY_ATTEMPTS"))
        self.backoff = float(custom_setting(domain, "RETRY_BACKOFF_SECONDS"))
        self.reservation_timeout = timedelta(minutes=int(custom_setting(domain, "RESERVATION_TIMEOUT_MINUTES")))

    # -------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------
    def _process(self, product_id, command):
        def operation():
            with self.domain.domain_context():
                return self.domain.process(command, asynchronous=False)

        return serialized(
            operation,
            key=f"inventory:{product_id}",
            attempts=self.attempts,
            backoff=self.backoff,
            registry=self.locks,
        )

    def _product_for_reservation(self, reservation_id):
        with self.domain.domain_context():
            view = self.domain.repository_for(ReservationStatus).get(str(reservation_id))
            return str(view.product_id)

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def get_or_create_item(self, product_id, sku, initial_quantity=0, low_stock_threshold=None):
        """Return the item id for ``product_id``, registering it on first sight."""
        item_id = self._process(
            product_id,
            RegisterStock(
                product_id=str(product_id),
                sku=sku,
                initial_quantity=initial_quantity,
                low_stock_threshold=low_stock_threshold,
            ),
        )
        logger.info("Stock registered", product_id=str(product_id), inventory_item_id=item_id)
        return item_id

    def adjust_stock(self, product_id, delta, reason=None):
        self._process(product_id, AdjustStock(product_id=str(product_id), delta=delta, reason=reason))
        logger.info("Stock adjusted", product_id=str(product_id), delta=delta, reason=reason)
        return self.get_inventory(product_id)

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, product_id, quantity, order_id=None, expires_at=None):
        if expires_at is None:
            expires_at = datetime.now(UTC) + self.reservation_timeout

        reservation = self._process(
            product_id,
            ReserveStock(
                product_id=str(product_id),
                quantity=quantity,
                order_id=str(order_id) if order_id else None,
                expires_at=expires_at,
            ),
        )
        logger.info(
            "Stock reserved",
            reservation_id=reservation["reservation_id"],
            product_id=str(product_id),
            quantity=quantity,
            order_id=reservation["order_id"],
        )
        publish_safely(
            self.publisher,
            "inventory.reserved",
            {
                "reservationId": reservation["reservation_id"],
                "productId": reservation["product_id"],
                "quantity": reservation["quantity"],
                "orderId": reservation["order_id"],
            },
        )
        return reservation

    def confirm(self, reservation_id):
        product_id = self._product_for_reservation(reservation_id)
        reservation = self._process(product_id, ConfirmReservation(reservation_id=str(reservation_id)))
        logger.info("Reservation confirmed", reservation_id=str(reservation_id), product_id=product_id)
        return reservation

    def release(self, reservation_id, reason="released"):
        product_id = self._product_for_reservation(reservation_id)
        reservation = self._process(
            product_id,
            ReleaseReservation(reservation_id=str(reservation_id), reason=reason),
        )
        logger.info("Reservation released", reservation_id=str(reservation_id), reason=reason)
        self._announce_release(reservation)
        return reservation

    def expire(self, reservation_id):
        product_id = self._product_for_reservation(reservation_id)
        reservation = self._process(product_id, ExpireReservation(reservation_id=str(reservation_id)))
        logger.info("Reservation expired", reservation_id=str(reservation_id), product_id=product_id)
        self._announce_release(reservation)
        return reservation

    def _announce_release(self, reservation):
        publish_safely(
            self.publisher,
            "inventory.released",
            {
                "reservationId": reservation["reservation_id"],
                "productId": reservation["product_id"],
                "quantity": reservation["quantity"],
            },
        )

    # -------------------------------------------------------------------
    # Low stock
    # -------------------------------------------------------------------
    def check_low_stock(self, threshold=None):
        """Emit one ``inventory.low_stock`` per item at or below the threshold."""

        alerts = self._process("low-stock-scan", CheckLowStock(threshold=threshold))
        for alert in alerts:
            publish_safely(
                self.publisher,
                "inventory.low_stock",
                {
                    "productId": alert["product_id"],
                    "sku": alert["sku"],
                    "currentStock": alert["current_stock"],
                    "threshold": alert["threshold"],
                },
            )
        return alerts

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_item(self, product_id) -> InventoryItem:
        with self.domain.domain_context():
            level = find_level_by_product(product_id)
            if level is None:
                raise ObjectNotFoundError(f"No inventory registered for product {product_id}")
            return self.domain.repository_for(InventoryItem).get(level.inventory_item_id)

    def get_inventory(self, product_id) -> dict:
        """Current levels of a product together with its Pending reservations."""
        item = self.get_item(product_id)
        return {
            "inventory_item_id": str(item.id),
            "product_id": str(item.product_id),
            "sku": item.sku,
            "available": item.levels.available,
            "reserved": item.levels.reserved,
            "total": item.levels.total,
            "low_stock_threshold": item.low_stock_threshold,
            "pending_reservations": [
                {
                    "reservation_id": str(r.id),
                    "order_id": str(r.order_id) if r.order_id else None,
                    "quantity": r.quantity,
                    "expires_at": r.expires_at,
                }
                for r in item.pending_reservations()
            ],
        }

    def reservation(self, reservation_id) -> ReservationStatus:
        with self.domain.domain_context():
            return self.domain.repository_for(ReservationStatus).get(str(reservation_id))

    def reservations_for_order(self, order_id, status=None):
        with self.domain.domain_context():
            return reservations_for_order(order_id, status)

    def pending_reservations_for_order(self, order_id):
        return self.reservations_for_order(order_id, ReservationState.PENDING.value)

    def due_reservations(self, now=None):
        with self.domain.domain_context():
            return due_reservations(now)

    def low_stock_items(self, threshold=None) -> list[InventoryLevel]:
        with self.domain.domain_context():
            return low_stock_levels(threshold)

    def movements(self, product_id) -> list[StockMovementLog]:
        with self.domain.domain_context():
            level = find_level_by_product(product_id)
            if level is None:
                raise ObjectNotFoundError(f"No inventory registered for product {product_id}")
            entries = (
                self.domain.repository_for(StockMovementLog)
                ._dao.query.filter(inventory_item_id=str(level.inventory_item_id))
                .all()
                .items
            )
            return sorted(entries, key=lambda e: e.occurred_at)
