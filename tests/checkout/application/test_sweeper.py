"""Application tests for the ExpirySweeper."""

import threading
from datetime import UTC, datetime, timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from checkout.scheduler import EXPIRY_SWEEP_JOB_ID, init_scheduler
from checkout.sweeper import EXPIRED_REASON, ExpirySweeper
from ordering.order.errors import InvalidTransition
from ordering.order.state_machine import OrderStatus
from shared.concurrency import TransientFailure


def _later(minutes=16):
    return datetime.now(UTC) + timedelta(minutes=minutes)


class TestSweepOnce:
    def test_nothing_due(self, services, stock, place_order):
        stock("prod-1", 10)
        place_order({"prod-1": 2})

        result = services.sweeper.sweep_once()
        assert result.expired == []
        assert result.cancelled_orders == []

    def test_lapsed_hold_expires_and_cancels_order(self, services, publisher, stock, place_order):
        stock("prod-1", 10)
        order = place_order({"prod-1": 2})
        [hold] = services.engine.pending_reservations_for_order(order.id)

        result = services.sweeper.sweep_once(now=_later())

        assert result.expired == [str(hold.reservation_id)]
        assert result.cancelled_orders == [str(order.id)]
        assert services.engine.reservation(hold.reservation_id).status == "Expired"
        assert services.engine.get_inventory("prod-1")["available"] == 10

        entry = services.lifecycle.history(order.id)[-1]
        assert entry.to_status == "Cancelled"
        assert entry.reason == EXPIRED_REASON
        assert entry.actor == "system:sweeper"
        assert "order.cancelled" in publisher.names()

    def test_remaining_holds_of_cancelled_order_are_released(self, services, stock, place_order):
        stock("prod-1", 10)
        stock("prod-2", 10)
        order = place_order({"prod-1": 1})
        late_hold = services.engine.reserve("prod-2", 3, order_id=order.id, expires_at=_later(minutes=60))

        result = services.sweeper.sweep_once(now=_later())

        assert len(result.expired) == 1
        assert services.engine.reservation(late_hold["reservation_id"]).status == "Released"
        assert services.engine.get_inventory("prod-2")["available"] == 10

    def test_confirmed_holds_are_left_alone(self, services, stock, place_order):
        stock("prod-1", 10)
        order = place_order({"prod-1": 2})
        services.coordinator.handle("payment.succeeded", {"orderId": str(order.id)})

        result = services.sweeper.sweep_once(now=_later())

        assert result.expired == []
        assert services.lifecycle.status_of(order.id) == "Confirmed"
        assert services.engine.get_inventory("prod-1")["total"] == 8

    def test_orders_past_payment_are_not_cancelled(self, services, stock, place_order):
        stock("prod-1", 10)
        order = place_order({"prod-1": 2})
        services.lifecycle.advance_to(order.id, OrderStatus.PAID, actor="test")

        result = services.sweeper.sweep_once(now=_later())

        assert len(result.expired) == 1
        assert result.cancelled_orders == []
        assert services.lifecycle.status_of(order.id) == "Paid"

    def test_hold_without_order_only_expires(self, services, stock):
        stock("prod-1", 10)
        services.engine.reserve("prod-1", 4, expires_at=datetime.now(UTC) - timedelta(seconds=1))

        result = services.sweeper.sweep_once()

        assert len(result.expired) == 1
        assert result.cancelled_orders == []
        assert services.engine.get_inventory("prod-1")["available"] == 10

    def test_one_failure_does_not_stop_the_pass(self, services, stock, place_order, monkeypatch):
        stock("prod-1", 10)
        first = place_order({"prod-1": 1})
        second = place_order({"prod-1": 1})
        [bad] = services.engine.pending_reservations_for_order(first.id)

        original_expire = services.engine.expire

        def flaky_expire(reservation_id):
            if str(reservation_id) == str(bad.reservation_id):
                raise TransientFailure(f"inventory:{reservation_id}", 3)
            return original_expire(reservation_id)

        monkeypatch.setattr(services.engine, "expire", flaky_expire)
        result = services.sweeper.sweep_once(now=_later())

        assert [f["reservation_id"] for f in result.failures] == [str(bad.reservation_id)]
        assert result.cancelled_orders == [str(second.id)]
        assert services.lifecycle.status_of(first.id) == "Pending"


    def test_payment_cannot_slip_between_status_check_and_cancel(self, services, stock, place_order, monkeypatch):
        stock("prod-1", 10)
        order = place_order({"prod-1": 2})
        status_of = services.lifecycle.status_of
        outcome = {}

        def pay():
            try:
                services.coordinator.handle("payment.succeeded", {"orderId": str(order.id)})
            except InvalidTransition as exc:
                outcome["error"] = exc

        payment = threading.Thread(target=pay)

        def status_then_payment_arrives(order_id):
            status = status_of(order_id)
            if "started" not in outcome:
                outcome["started"] = True
                payment.start()
                payment.join(timeout=0.2)
                # The payment waits on the order lock held by the sweeper.
                assert payment.is_alive()
            return status

        monkeypatch.setattr(services.lifecycle, "status_of", status_then_payment_arrives)
        result = services.sweeper.sweep_once(now=_later())
        payment.join(timeout=5)

        assert result.cancelled_orders == [str(order.id)]
        assert services.lifecycle.status_of(order.id) == "Cancelled"
        assert isinstance(outcome.get("error"), InvalidTransition)
        inventory = services.engine.get_inventory("prod-1")
        assert (inventory["available"], inventory["reserved"], inventory["total"]) == (10, 0, 10)

    def test_hold_confirmed_after_the_scan_is_skipped(self, services, stock, place_order, monkeypatch):
        stock("prod-1", 10)
        order = place_order({"prod-1": 2})
        due_reservations = services.engine.due_reservations

        def scan_then_pay(now=None):
            due = due_reservations(now)
            services.coordinator.handle("payment.succeeded", {"orderId": str(order.id)})
            return due

        monkeypatch.setattr(services.engine, "due_reservations", scan_then_pay)
        result = services.sweeper.sweep_once(now=_later())

        assert result.expired == []
        assert result.failures == []
        assert result.cancelled_orders == []
        assert services.lifecycle.status_of(order.id) == "Confirmed"


class TestScheduling:
    def test_interval_defaults_to_configuration(self, services):
        assert services.sweeper.interval_seconds == 60

    def test_sweep_is_registered_as_interval_job(self, services):
        scheduler = init_scheduler(services.sweeper)

        assert isinstance(scheduler, AsyncIOScheduler)
        [job] = scheduler.get_jobs()
        assert job.id == EXPIRY_SWEEP_JOB_ID
        assert job.func == services.sweeper.sweep_once
        assert job.trigger.interval == timedelta(seconds=60)
        assert job.max_instances == 1
        assert job.coalesce is True

    @pytest.mark.parametrize("seconds", [5, 0.5])
    def test_interval_override(self, services, seconds):
        sweeper = ExpirySweeper(services.lifecycle, services.engine, interval_seconds=seconds)
        [job] = init_scheduler(sweeper).get_jobs()
        assert job.trigger.interval == timedelta(seconds=seconds)
