"""Tests for stock reservation lifecycle — reserve, confirm, release, expire."""

from datetime import UTC, datetime, timedelta

import pytest
from inventory.stock.errors import InsufficientStock, InvalidReservationState
from inventory.stock.events import ReservationConfirmed, ReservationReleased, StockReserved
from inventory.stock.stock import InventoryItem, MovementType, ReservationState
from protean.exceptions import ValidationError


def _make_item(**overrides):
    defaults = {
        "product_id": "prod-001",
        "sku": "TSHIRT-BLK-M",
        "initial_quantity": 100,
    }
    defaults.update(overrides)
    return InventoryItem.register(**defaults)


def _assert_balanced(item):
    levels = item.levels
    assert levels.available >= 0
    assert levels.reserved >= 0
    assert levels.available + levels.reserved == levels.total


class TestRegister:
    def test_register_sets_available_and_total(self):
        item = _make_item(initial_quantity=25)
        assert item.levels.available == 25
        assert item.levels.reserved == 0
        assert item.levels.total == 25

    def test_register_logs_one_initial_movement(self):
        item = _make_item(initial_quantity=25)
        assert len(item.movements) == 1
        assert item.movements[0].movement_type == MovementType.INITIAL.value
        assert item.movements[0].quantity == 25

    def test_register_rejects_negative_quantity(self):
        with pytest.raises(ValidationError) as exc_info:
            _make_item(initial_quantity=-1)
        assert "delta" in exc_info.value.messages


class TestReserveStock:
    def test_reserve_moves_quantity_from_available_to_reserved(self):
        item = _make_item(initial_quantity=100)
        item.reserve(20, order_id="ord-001")
        assert item.levels.available == 80
        assert item.levels.reserved == 20
        assert item.levels.total == 100
        _assert_balanced(item)

    def test_reserve_creates_pending_reservation(self):
        item = _make_item()
        reservation = item.reserve(20, order_id="ord-001")
        assert reservation.status == ReservationState.PENDING.value
        assert str(reservation.order_id) == "ord-001"
        assert reservation.quantity == 20
        assert reservation.expires_at > reservation.reserved_at

    def test_reserve_without_order(self):
        item = _make_item()
        reservation = item.reserve(5)
        assert reservation.order_id is None

    def test_reserve_logs_negative_reserve_movement(self):
        item = _make_item()
        reservation = item.reserve(20)
        movement = item.movements[-1]
        assert movement.movement_type == MovementType.RESERVE.value
        assert movement.quantity == -20
        assert movement.reference == str(reservation.id)

    def test_reserve_raises_stock_reserved_event(self):
        item = _make_item(initial_quantity=100)
        item.reserve(20, order_id="ord-001")
        events = [e for e in item._events if isinstance(e, StockReserved)]
        assert len(events) == 1
        assert events[0].new_available == 80
        assert events[0].new_reserved == 20

    def test_reserve_with_custom_expiry(self):
        item = _make_item()
        expires = datetime.now(UTC) + timedelta(hours=2)
        reservation = item.reserve(10, expires_at=expires)
        assert reservation.expires_at > datetime.now(UTC) + timedelta(hours=1)

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_reserve_rejects_non_positive_quantity(self, quantity):
        item = _make_item()
        with pytest.raises(ValidationError) as exc_info:
            item.reserve(quantity)
        assert "quantity" in exc_info.value.messages

    def test_reserve_exact_available(self):
        item = _make_item(initial_quantity=10)
        item.reserve(10)
        assert item.levels.available == 0
        assert item.levels.reserved == 10

    def test_reserve_one_more_than_available_fails(self):
        item = _make_item(initial_quantity=10)
        with pytest.raises(InsufficientStock) as exc_info:
            item.reserve(11)
        assert "quantity" in exc_info.value.messages
        assert exc_info.value.available == 10
        assert exc_info.value.requested == 11

    def test_failed_reserve_leaves_levels_untouched(self):
        item = _make_item(initial_quantity=10)
        with pytest.raises(InsufficientStock):
            item.reserve(11)
        assert item.levels.available == 10
        assert item.levels.reserved == 0
        assert len(item.movements) == 1


class TestConfirmReservation:
    def test_confirm_deducts_reserved_and_total(self):
        item = _make_item(initial_quantity=10)
        reservation = item.reserve(5)
        item.confirm_reservation(reservation.id)
        assert item.levels.available == 5
        assert item.levels.reserved == 0
        assert item.levels.total == 5
        _assert_balanced(item)

    def test_confirm_marks_reservation_confirmed(self):
        item = _make_item()
        reservation = item.reserve(5)
        item.confirm_reservation(reservation.id)
        assert item.find_reservation(reservation.id).status == ReservationState.CONFIRMED.value
        assert item.find_reservation(reservation.id).confirmed_at is not None

    def test_confirm_logs_commit_movement(self):
        item = _make_item()
        reservation = item.reserve(5)
        item.confirm_reservation(reservation.id)
        assert item.movements[-1].movement_type == MovementType.COMMIT.value
        assert item.movements[-1].quantity == -5

    def test_confirm_raises_event(self):
        item = _make_item()
        reservation = item.reserve(5)
        item.confirm_reservation(reservation.id)
        assert any(isinstance(e, ReservationConfirmed) for e in item._events)

    def test_confirm_twice_fails(self):
        item = _make_item()
        reservation = item.reserve(5)
        item.confirm_reservation(reservation.id)
        with pytest.raises(InvalidReservationState) as exc_info:
            item.confirm_reservation(reservation.id)
        assert "reservation_id" in exc_info.value.messages

    def test_confirm_unknown_reservation_fails(self):
        item = _make_item()
        with pytest.raises(ValidationError) as exc_info:
            item.confirm_reservation("missing")
        assert "reservation_id" in exc_info.value.messages


class TestReleaseReservation:
    def test_release_restores_available(self):
        item = _make_item(initial_quantity=10)
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="customer cancelled")
        assert item.levels.available == 10
        assert item.levels.reserved == 0
        assert item.levels.total == 10

    def test_release_marks_reservation_released(self):
        item = _make_item()
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="customer cancelled")
        released = item.find_reservation(reservation.id)
        assert released.status == ReservationState.RELEASED.value
        assert released.release_reason == "customer cancelled"

    def test_expire_marks_reservation_expired(self):
        item = _make_item()
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="expired", expired=True)
        assert item.find_reservation(reservation.id).status == ReservationState.EXPIRED.value
        events = [e for e in item._events if isinstance(e, ReservationReleased)]
        assert events[-1].expired is True

    def test_release_logs_positive_release_movement(self):
        item = _make_item()
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="done")
        assert item.movements[-1].movement_type == MovementType.RELEASE.value
        assert item.movements[-1].quantity == 4

    def test_release_after_confirm_fails(self):
        item = _make_item()
        reservation = item.reserve(4)
        item.confirm_reservation(reservation.id)
        with pytest.raises(InvalidReservationState):
            item.release_reservation(reservation.id, reason="too late")

    def test_release_twice_fails_without_double_credit(self):
        item = _make_item(initial_quantity=10)
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="first")
        with pytest.raises(InvalidReservationState):
            item.release_reservation(reservation.id, reason="second")
        assert item.levels.available == 10

    def test_confirm_after_expiry_fails(self):
        item = _make_item()
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="expired", expired=True)
        with pytest.raises(InvalidReservationState):
            item.confirm_reservation(reservation.id)


class TestPendingReservations:
    def test_only_pending_reservations_are_listed(self):
        item = _make_item()
        kept = item.reserve(1, order_id="ord-1")
        confirmed = item.reserve(1, order_id="ord-1")
        item.confirm_reservation(confirmed.id)
        item.reserve(1, order_id="ord-2")

        pending = item.pending_reservations(order_id="ord-1")
        assert [str(r.id) for r in pending] == [str(kept.id)]
        assert len(item.pending_reservations()) == 2


class TestLedgerScenario:
    def test_reserve_confirm_then_reject_overdraw(self):
        item = _make_item(initial_quantity=10)

        first = item.reserve(3)
        assert (item.levels.available, item.levels.reserved, item.levels.total) == (7, 3, 10)

        item.confirm_reservation(first.id)
        assert (item.levels.available, item.levels.reserved, item.levels.total) == (7, 0, 7)

        with pytest.raises(InsufficientStock):
            item.reserve(8)
        assert (item.levels.available, item.levels.reserved, item.levels.total) == (7, 0, 7)

    def test_reserve_release_returns_to_start(self):
        item = _make_item(initial_quantity=10)
        reservation = item.reserve(4)
        item.release_reservation(reservation.id, reason="order failed")
        assert (item.levels.available, item.levels.reserved, item.levels.total) == (10, 0, 10)
        assert [m.movement_type for m in item.movements] == [
            MovementType.INITIAL.value,
            MovementType.RESERVE.value,
            MovementType.RELEASE.value,
        ]
