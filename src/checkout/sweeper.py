"""Expiry sweeper — reclaims stock held past its reservation deadline.

Each pass first collects every Pending reservation whose ``expires_at``
has passed, then expires them one by one. Orders still waiting for
payment (Pending / PaymentPending) whose hold lapsed are cancelled with
reason "reservation expired", and their remaining holds are released.

Due holds are grouped by order. An order's holds are expired and the
order cancelled while its write lock is held, so a payment handled
concurrently either lands first (the holds are then confirmed and the
order is left alone) or finds the order already Cancelled.

A failure on one reservation is logged and the pass moves on; whatever
was skipped is picked up again on the next pass. The pass is run on an
interval by the worker's scheduler (see ``checkout.scheduler``).
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.concurrency import TransientFailure
from shared.logging import log_context
from shared.settings import custom_setting

from inventory.stock.engine import ReservationEngine
from inventory.stock.stock import ReservationState
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.state_machine import PRE_PAYMENT_STATUSES, OrderStatus

logger = structlog.get_logger(__name__)

SWEEPER_ACTOR = "system:sweeper"
EXPIRED_REASON = "reservation expired"


@dataclass
class SweepResult:
    expired: list[str] = field(default_factory=list)
    cancelled_orders: list[str] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)


class ExpirySweeper:
    def __init__(self, orders: OrderLifecycle, stock: ReservationEngine, interval_seconds=None):
        self.orders = orders
        self.stock = stock
        if interval_seconds is None:
            interval_seconds = custom_setting(orders.domain, "SWEEP_INTERVAL_SECONDS")
        self.interval_seconds = float(interval_seconds)

    # -------------------------------------------------------------------
    # One pass
    # -------------------------------------------------------------------
    def sweep_once(self, now=None) -> SweepResult:
        now = now or datetime.now(UTC)
        result = SweepResult()

        due = self.stock.due_reservations(now)
        if not due:
            logger.debug("No expired reservations")
            return result

        by_order = {}
        for reservation in due:
            order_id = str(reservation.order_id) if reservation.order_id else None
            by_order.setdefault(order_id, []).append(reservation)

        for order_id, reservations in by_order.items():
            if order_id is None:
                self._expire_all(reservations, result)
                continue

            with self.orders.hold(order_id):
                if self._expire_all(reservations, result) and self._cancel_abandoned_order(order_id):
                    result.cancelled_orders.append(order_id)

        logger.info(
            "Expiry sweep complete",
            expired=len(result.expired),
            cancelled_orders=len(result.cancelled_orders),
            failures=len(result.failures),
        )
        return result

    def _expire_all(self, reservations, result) -> int:
        expired = 0
        for reservation in reservations:
            reservation_id = str(reservation.reservation_id)
            # Re-read: a payment may have confirmed the hold since the scan.
            if self.stock.reservation(reservation_id).status != ReservationState.PENDING.value:
                continue
            try:
                with log_context(reservation_id=reservation_id, order_id=reservation.order_id):
                    self.stock.expire(reservation_id)
            except (ValidationError, ObjectNotFoundError, TransientFailure) as exc:
                logger.warning("Failed to expire reservation", reservation_id=reservation_id, error=str(exc))
                result.failures.append({"reservation_id": reservation_id, "error": str(exc)})
                continue

            result.expired.append(reservation_id)
            expired += 1
        return expired

    def _cancel_abandoned_order(self, order_id) -> bool:
        try:
            status = OrderStatus(self.orders.status_of(order_id))
        except ObjectNotFoundError:
            logger.warning("Expired reservation references unknown order", order_id=order_id)
            return False

        if status not in PRE_PAYMENT_STATUSES:
            return False

        try:
            self.orders.transition(order_id, OrderStatus.CANCELLED, actor=SWEEPER_ACTOR, reason=EXPIRED_REASON)
        except (ValidationError, TransientFailure) as exc:
            logger.warning("Failed to cancel order with expired hold", order_id=order_id, error=str(exc))
            return False

        for reservation in self.stock.pending_reservations_for_order(order_id):
            try:
                self.stock.release(reservation.reservation_id, reason="order cancelled")
            except (ValidationError, TransientFailure) as exc:
                logger.warning(
                    "Failed to release remaining hold",
                    reservation_id=str(reservation.reservation_id),
                    error=str(exc),
                )
        logger.info("Order cancelled after reservation expiry", order_id=order_id)
        return True

