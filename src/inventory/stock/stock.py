"""InventoryItem aggregate (Event Sourced): the stock ledger for one product.

Stock Level Model:
    available: free to be reserved
    reserved:  held by Pending reservations
    total:     available + reserved, always

A reservation's quantity sits in ``reserved`` only while it is Pending.
Confirming moves it out of ``reserved`` and ``total`` (the stock is sold);
releasing or expiring moves it back to ``available``. Every change also
appends a StockMovement row, so the movement log and the levels are
written by the same event.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean import apply, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from inventory.domain import inventory
from inventory.stock.errors import InsufficientStock, InvalidAdjustment, InvalidReservationState
from inventory.stock.events import (
    LowStockDetected,
    ReservationConfirmed,
    ReservationReleased,
    StockAdjusted,
    StockInitialized,
    StockReserved,
)

DEFAULT_RESERVATION_TIMEOUT = timedelta(minutes=15)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReservationState(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    RELEASED = "Released"
    EXPIRED = "Expired"


class MovementType(Enum):
    INITIAL = "initial"
    RESERVE = "reserve"
    COMMIT = "commit"
    RELEASE = "release"
    RESTOCK = "restock"
    ADJUSTMENT = "adjustment"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@inventory.value_object(part_of="InventoryItem")
class StockLevels:
    """Quantities of one item. Rejects any combination that breaks the ledger."""

    available = Integer(default=0)
    reserved = Integer(default=0)
    total = Integer(default=0)

    @invariant.post
    def quantities_must_not_be_negative(self):
        if (self.available or 0) < 0 or (self.reserved or 0) < 0:
            raise ValidationError(
                {"levels": [f"Stock levels cannot be negative: available={self.available}, reserved={self.reserved}"]}
            )

    @invariant.post
    def ledger_must_balance(self):
        if (self.available or 0) + (self.reserved or 0) != (self.total or 0):
            raise ValidationError(
                {
                    "levels": [
                        f"available ({self.available}) + reserved ({self.reserved}) must equal total ({self.total})"
                    ]
                }
            )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@inventory.entity(part_of="InventoryItem")
class Reservation:
    """A time-bounded hold on stock, optionally on behalf of an order."""

    order_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    status = String(
        choices=ReservationState,
        default=ReservationState.PENDING.value,
    )
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)
    confirmed_at = DateTime()
    released_at = DateTime()
    release_reason = String(max_length=255)

    @property
    def is_pending(self):
        return ReservationState(self.status) == ReservationState.PENDING


@inventory.entity(part_of="InventoryItem")
class StockMovement:
    """Immutable ledger row.

    The signed quantity is the change to ``total`` for initial, restock,
    adjustment and commit rows, and the change to ``available`` for reserve
    and release rows.
    """

    movement_type = String(choices=MovementType, required=True)
    quantity = Integer(required=True)
    reason = String(max_length=255)
    reference = String(max_length=255)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@inventory.aggregate(is_event_sourced=True)
class InventoryItem:
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=50)
    levels = ValueObject(StockLevels)
    low_stock_threshold = Integer(default=10)
    reservations = HasMany(Reservation)
    movements = HasMany(StockMovement)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, sku, initial_quantity=0, low_stock_threshold=10):
        """Create the ledger for a product with ``available = total = initial_quantity``."""
        if initial_quantity is None or initial_quantity < 0:
            raise InvalidAdjustment("Initial quantity cannot be negative")

        item = cls._create_new()
        item.raise_(
            StockInitialized(
                inventory_item_id=str(item.id),
                product_id=str(product_id),
                sku=sku,
                initial_quantity=initial_quantity,
                low_stock_threshold=low_stock_threshold,
                movement_id=str(uuid4()),
                initialized_at=datetime.now(UTC),
            )
        )
        return item

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def find_reservation(self, reservation_id):
        return next(
            (r for r in (self.reservations or []) if str(r.id) == str(reservation_id)),
            None,
        )

    def _pending_reservation(self, reservation_id, action):
        reservation = self.find_reservation(reservation_id)
        if reservation is None:
            raise ValidationError({"reservation_id": ["Reservation not found"]})
        if not reservation.is_pending:
            raise InvalidReservationState(reservation_id, reservation.status, action)
        return reservation

    def pending_reservations(self, order_id=None):
        return [
            r
            for r in (self.reservations or [])
            if r.is_pending and (order_id is None or str(r.order_id) == str(order_id))
        ]

    def is_low_on_stock(self, threshold=None):
        limit = self.low_stock_threshold if threshold is None else threshold
        return self.levels.available <= limit

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, quantity, order_id=None, expires_at=None):
        """Hold ``quantity`` units. Check and decrement happen in one event."""
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        levels = self.levels
        if levels.available < quantity:
            raise InsufficientStock(self.sku, levels.available, quantity)

        now = datetime.now(UTC)
        if expires_at is None:
            expires_at = now + DEFAULT_RESERVATION_TIMEOUT

        reservation_id = str(uuid4())
        self.raise_(
            StockReserved(
                inventory_item_id=str(self.id),
                product_id=str(self.product_id),
                reservation_id=reservation_id,
                order_id=str(order_id) if order_id else None,
                quantity=quantity,
                new_available=levels.available - quantity,
                new_reserved=levels.reserved + quantity,
                new_total=levels.total,
                movement_id=str(uuid4()),
                reserved_at=now,
                expires_at=expires_at,
            )
        )
        return self.find_reservation(reservation_id)

    def confirm_reservation(self, reservation_id):
        """Turn a Pending hold into a permanent deduction."""
        reservation = self._pending_reservation(reservation_id, "confirm")
        levels = self.levels

        self.raise_(
            ReservationConfirmed(
                inventory_item_id=str(self.id),
                product_id=str(self.product_id),
                reservation_id=str(reservation.id),
                order_id=str(reservation.order_id) if reservation.order_id else None,
                quantity=reservation.quantity,
                new_available=levels.available,
                new_reserved=levels.reserved - reservation.quantity,
                new_total=levels.total - reservation.quantity,
                movement_id=str(uuid4()),
                confirmed_at=datetime.now(UTC),
            )
        )
        return reservation

    def release_reservation(self, reservation_id, reason, expired=False):
        """Return a Pending hold to available stock.

        With ``expired`` set the reservation ends Expired instead of Released.
        """
        action = "expire" if expired else "release"
        reservation = self._pending_reservation(reservation_id, action)
        levels = self.levels

        self.raise_(
            ReservationReleased(
                inventory_item_id=str(self.id),
                product_id=str(self.product_id),
                reservation_id=str(reservation.id),
                order_id=str(reservation.order_id) if reservation.order_id else None,
                quantity=reservation.quantity,
                reason=reason,
                expired=expired,
                new_available=levels.available + reservation.quantity,
                new_reserved=levels.reserved - reservation.quantity,
                new_total=levels.total,
                movement_id=str(uuid4()),
                released_at=datetime.now(UTC),
            )
        )
        return reservation

    # -------------------------------------------------------------------
    # Stock adjustment
    # -------------------------------------------------------------------
    def adjust_stock(self, delta, reason=None):
        """Add ``delta`` to available and total. Negative deltas model shrinkage."""
        if not delta:
            raise InvalidAdjustment("Adjustment delta must be non-zero")

        levels = self.levels
        new_available = levels.available + delta
        if new_available < 0:
            raise InvalidAdjustment(
                f"Adjustment of {delta} would drive available stock negative ({levels.available} available)"
            )

        movement_type = MovementType.RESTOCK if delta > 0 else MovementType.ADJUSTMENT
        self.raise_(
            StockAdjusted(
                inventory_item_id=str(self.id),
                product_id=str(self.product_id),
                delta=delta,
                movement_type=movement_type.value,
                reason=reason,
                new_available=new_available,
                new_reserved=levels.reserved,
                new_total=levels.total + delta,
                movement_id=str(uuid4()),
                adjusted_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Low stock
    # -------------------------------------------------------------------
    def flag_low_stock(self, threshold=None):
        """Raise LowStockDetected if available is at or below the threshold.

        Returns the raised event, or None when stock is healthy.
        """
        limit = self.low_stock_threshold if threshold is None else threshold
        if not self.is_low_on_stock(limit):
            return None

        event = LowStockDetected(
            inventory_item_id=str(self.id),
            product_id=str(self.product_id),
            sku=self.sku,
            current_stock=self.levels.available,
            threshold=limit,
            detected_at=datetime.now(UTC),
        )
        self.raise_(event)
        return event

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    def _record_movement(self, movement_id, movement_type, quantity, occurred_at, reason=None, reference=None):
        self.add_movements(
            StockMovement(
                id=movement_id,
                movement_type=movement_type.value,
                quantity=quantity,
                reason=reason,
                reference=reference,
                occurred_at=occurred_at,
            )
        )

    @apply
    def _on_stock_initialized(self, event: StockInitialized):
        self.id = event.inventory_item_id
        self.product_id = event.product_id
        self.sku = event.sku
        self.low_stock_threshold = event.low_stock_threshold
        self.levels = StockLevels(
            available=event.initial_quantity,
            reserved=0,
            total=event.initial_quantity,
        )
        self._record_movement(
            event.movement_id,
            MovementType.INITIAL,
            event.initial_quantity,
            event.initialized_at,
            reason="Initial stock",
        )
        self.created_at = event.initialized_at
        self.updated_at = event.initialized_at

    @apply
    def _on_stock_reserved(self, event: StockReserved):
        self.add_reservations(
            Reservation(
                id=event.reservation_id,
                order_id=event.order_id,
                quantity=event.quantity,
                reserved_at=event.reserved_at,
                expires_at=event.expires_at,
            )
        )
        self.levels = StockLevels(
            available=event.new_available,
            reserved=event.new_reserved,
            total=event.new_total,
        )
        self._record_movement(
            event.movement_id,
            MovementType.RESERVE,
            -event.quantity,
            event.reserved_at,
            reference=str(event.reservation_id),
        )
        self.updated_at = event.reserved_at

    @apply
    def _on_reservation_confirmed(self, event: ReservationConfirmed):
        reservation = self.find_reservation(event.reservation_id)
        if reservation:
            reservation.status = ReservationState.CONFIRMED.value
            reservation.confirmed_at = event.confirmed_at

        self.levels = StockLevels(
            available=event.new_available,
            reserved=event.new_reserved,
            total=event.new_total,
        )
        self._record_movement(
            event.movement_id,
            MovementType.COMMIT,
            -event.quantity,
            event.confirmed_at,
            reference=str(event.reservation_id),
        )
        self.updated_at = event.confirmed_at

    @apply
    def _on_reservation_released(self, event: ReservationReleased):
        reservation = self.find_reservation(event.reservation_id)
        if reservation:
            final_state = ReservationState.EXPIRED if event.expired else ReservationState.RELEASED
            reservation.status = final_state.value
            reservation.released_at = event.released_at
            reservation.release_reason = event.reason

        self.levels = StockLevels(
            available=event.new_available,
            reserved=event.new_reserved,
            total=event.new_total,
        )
        self._record_movement(
            event.movement_id,
            MovementType.RELEASE,
            event.quantity,
            event.released_at,
            reason=event.reason,
            reference=str(event.reservation_id),
        )
        self.updated_at = event.released_at

    @apply
    def _on_stock_adjusted(self, event: StockAdjusted):
        self.levels = StockLevels(
            available=event.new_available,
            reserved=event.new_reserved,
            total=event.new_total,
        )
        self._record_movement(
            event.movement_id,
            MovementType(event.movement_type),
            event.delta,
            event.adjusted_at,
            reason=event.reason,
        )
        self.updated_at = event.adjusted_at

    @apply
    def _on_low_stock_detected(self, event: LowStockDetected):  # noqa: ARG002
        # Notification only, no state change
        pass
